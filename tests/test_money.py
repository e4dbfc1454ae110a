from decimal import Decimal

from money import apportion_percentages, decimal_to_cents, divide_cents, percent_of


def test_percent_of_rounds_half_up_and_handles_zero() -> None:
    assert percent_of(1, 8) == Decimal("12.50")
    assert percent_of(2, 3) == Decimal("66.67")
    assert percent_of(5, 0) == Decimal("0")


def test_divide_cents() -> None:
    assert divide_cents(1_000, 3) == Decimal("3.33")
    assert divide_cents(500, 0) == Decimal("0")


def test_decimal_to_cents() -> None:
    assert decimal_to_cents(Decimal("12.345")) == 1_235
    assert decimal_to_cents(Decimal("0.01")) == 1


def test_apportioned_shares_add_up() -> None:
    shares = apportion_percentages([1, 1, 1, 1, 1, 1, 1], 7)
    assert sum(shares) == Decimal("100.00")
    assert max(shares) - min(shares) == Decimal("0.01")


def test_apportioned_shares_of_a_partial_whole() -> None:
    shares = apportion_percentages([333, 333], 1_000)
    assert shares == [Decimal("33.30"), Decimal("33.30")]
    assert apportion_percentages([10], 0) == [Decimal("0")]
