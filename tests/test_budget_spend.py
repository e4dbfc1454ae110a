from datetime import date, datetime
from decimal import Decimal

from budgets import BudgetService, compute_spent
from models import EntryType
from schemas import BudgetIn, LedgerEntryIn, UserIn, WalletIn
from services import LedgerService, UserService, WalletService


def _january_budget(session, user, category=None, amount="100.00"):
    return BudgetService(session, user.id).create(
        BudgetIn(
            name="January",
            amount=Decimal(amount),
            category_id=category.id if category else None,
            starts_at=datetime(2024, 1, 1),
            ends_at=datetime(2024, 1, 31),
        )
    )


def test_spent_counts_category_expenses_inside_window(
    session, user, add_category, add_entry
) -> None:
    food = add_category("Food")
    travel = add_category("Travel")
    add_entry("50.00", date(2024, 1, 10), category=food)
    add_entry("35.00", date(2024, 1, 31), category=food)
    add_entry("20.00", date(2024, 2, 1), category=food)
    add_entry("12.00", date(2023, 12, 31), category=food)
    add_entry("40.00", date(2024, 1, 12), category=travel)
    add_entry("100.00", date(2024, 1, 15), category=food, type=EntryType.income)
    add_entry("9.00", date(2024, 1, 16), category=food, type=EntryType.transfer)

    budget = _january_budget(session, user, food)

    assert compute_spent(session, budget) == Decimal("85.00")


def test_overall_budget_counts_every_expense(
    session, user, add_category, add_entry
) -> None:
    food = add_category("Food")
    travel = add_category("Travel")
    add_entry("50.00", date(2024, 1, 10), category=food)
    add_entry("40.00", date(2024, 1, 12), category=travel)
    add_entry("5.25", date(2024, 1, 20))
    add_entry("300.00", date(2024, 1, 21), type=EntryType.income)

    budget = _january_budget(session, user)

    assert compute_spent(session, budget) == Decimal("95.25")


def test_spent_is_zero_without_matching_entries(session, user, add_category) -> None:
    budget = _january_budget(session, user, add_category("Food"))
    assert compute_spent(session, budget) == Decimal("0")


def test_time_of_day_on_bounds_is_ignored(session, user, add_category, add_entry) -> None:
    food = add_category("Food")
    add_entry("10.00", date(2024, 1, 1), category=food)
    add_entry("15.00", date(2024, 1, 31), category=food)
    budget = BudgetService(session, user.id).create(
        BudgetIn(
            name="Afternoon window",
            amount=Decimal("100.00"),
            category_id=food.id,
            starts_at=datetime(2024, 1, 1, 18, 30),
            ends_at=datetime(2024, 1, 31, 6, 0),
        )
    )
    assert compute_spent(session, budget) == Decimal("25.00")


def test_other_users_entries_are_ignored(session, user, add_entry) -> None:
    add_entry("10.00", date(2024, 1, 5))
    other = UserService(session).create(UserIn(name="Bo", email="bo@example.com"))
    other_wallet = WalletService(session, other.id).create(WalletIn(name="Cash"))
    LedgerService(session, other.id).create(
        LedgerEntryIn(
            wallet_id=other_wallet.id,
            amount=Decimal("70.00"),
            transaction_date=date(2024, 1, 6),
        )
    )

    budget = _january_budget(session, user)

    assert compute_spent(session, budget) == Decimal("10.00")


def test_computing_spend_does_not_touch_the_budget(
    session, user, add_category, add_entry
) -> None:
    food = add_category("Food")
    add_entry("30.00", date(2024, 1, 3), category=food)
    budget = _january_budget(session, user, food)
    updated_at = budget.updated_at

    first = compute_spent(session, budget)
    second = compute_spent(session, budget)

    assert first == second == Decimal("30.00")
    assert budget.amount_cents == 10_000
    assert budget.updated_at == updated_at
    assert not session.dirty


def test_spend_follows_ledger_edits(session, user, add_category, add_entry) -> None:
    food = add_category("Food")
    entry = add_entry("30.00", date(2024, 1, 3), category=food)
    budget = _january_budget(session, user, food)
    assert compute_spent(session, budget) == Decimal("30.00")

    LedgerService(session, user.id).delete(entry.id)

    assert compute_spent(session, budget) == Decimal("0")
