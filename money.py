from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[int, Decimal]


def cents_to_decimal(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def decimal_to_cents(amount: Decimal) -> int:
    cents = (Decimal(amount) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(cents)


def percent_of(part: Amount, whole: Amount) -> Decimal:
    """Return ``part / whole * 100`` rounded half-up to two places.

    A zero denominator yields zero instead of raising.
    """
    if whole == 0:
        return ZERO
    ratio = Decimal(part) * 100 / Decimal(whole)
    return ratio.quantize(CENT, rounding=ROUND_HALF_UP)


def divide_cents(total_cents: int, count: int) -> Decimal:
    """Average of a cents total over ``count`` items, half-up to the cent."""
    if count <= 0:
        return ZERO
    return (cents_to_decimal(total_cents) / count).quantize(CENT, rounding=ROUND_HALF_UP)


def apportion_percentages(
    parts_cents: list[int], whole_cents: int
) -> list[Decimal]:
    """Share of ``whole`` for each part, in hundredths of a percent.

    Each share is floored, then the leftover hundredths go to the parts with
    the largest remainders, so the shares sum to the rounded share of the
    parts combined: exactly 100.00 when the parts make up the whole, and never
    more than that.
    """
    if whole_cents <= 0:
        return [ZERO for _ in parts_cents]
    scaled = [part * 10_000 for part in parts_cents]
    floors = [value // whole_cents for value in scaled]
    remainders = [value % whole_cents for value in scaled]
    target = (sum(parts_cents) * 10_000 * 2 + whole_cents) // (2 * whole_cents)
    leftover = target - sum(floors)
    order = sorted(
        range(len(parts_cents)), key=lambda idx: (-remainders[idx], idx)
    )
    for idx in order[:leftover]:
        floors[idx] += 1
    return [Decimal(value).scaleb(-2) for value in floors]
