from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from errors import NotFoundError
from models import EntryType, LedgerEntry, Wallet
from schemas import LedgerEntryIn, UserIn, WalletIn
from services import LedgerService, UserService, WalletService


def _balance(session, wallet_id):
    return session.get(Wallet, wallet_id).balance_cents


def test_expense_and_income_move_the_wallet(session, user, wallet, add_entry) -> None:
    add_entry("25.50", date(2024, 1, 2))
    add_entry("100.00", date(2024, 1, 3), type=EntryType.income)
    add_entry("40.00", date(2024, 1, 4), type=EntryType.transfer)

    assert _balance(session, wallet.id) == 100_000 - 2_550 + 10_000


def test_update_reverts_then_reapplies(session, user, wallet, add_entry) -> None:
    entry = add_entry("25.00", date(2024, 1, 2))
    savings = WalletService(session, user.id).create(WalletIn(name="Savings"))

    LedgerService(session, user.id).update(
        entry.id,
        LedgerEntryIn(
            wallet_id=savings.id,
            amount=Decimal("10.00"),
            transaction_date=date(2024, 1, 2),
            type=EntryType.income,
        ),
    )

    assert _balance(session, wallet.id) == 100_000
    assert _balance(session, savings.id) == 1_000


def test_delete_restores_the_balance(session, user, wallet, add_entry) -> None:
    entry = add_entry("25.00", date(2024, 1, 2))
    LedgerService(session, user.id).delete(entry.id)

    assert _balance(session, wallet.id) == 100_000
    with pytest.raises(NotFoundError):
        LedgerService(session, user.id).get(entry.id)


def test_entries_are_private_to_their_owner(session, user, add_entry) -> None:
    entry = add_entry("5.00", date(2024, 1, 2))
    other = UserService(session).create(UserIn(name="Bo", email="bo@example.com"))

    with pytest.raises(NotFoundError):
        LedgerService(session, other.id).get(entry.id)
    assert LedgerService(session, other.id).list() == []


def test_unknown_wallet_is_rejected(session, user) -> None:
    with pytest.raises(NotFoundError, match="Wallet not found"):
        LedgerService(session, user.id).create(
            LedgerEntryIn(wallet_id=123, amount=Decimal("1.00"), transaction_date=date(2024, 1, 1))
        )


def test_list_filters_by_date(session, user, add_entry) -> None:
    add_entry("1.00", date(2024, 1, 1))
    add_entry("2.00", date(2024, 1, 15))
    add_entry("3.00", date(2024, 2, 1))

    entries = LedgerService(session, user.id).list(start=date(2024, 1, 10), end=date(2024, 1, 31))

    assert [e.amount_cents for e in entries] == [200]


def test_duplicate_user_email_is_rejected(session, user) -> None:
    with pytest.raises(ValueError, match="already exists"):
        UserService(session).create(UserIn(name="Ada 2", email="ADA@example.com"))


def _failing_commit(session):
    def commit():
        session.flush()
        raise RuntimeError("database went away")

    return commit


def _entry_count(session):
    return session.scalar(select(func.count()).select_from(LedgerEntry))


def test_failed_create_leaves_no_entry_and_no_balance_change(
    session, user, wallet, monkeypatch
) -> None:
    monkeypatch.setattr(session, "commit", _failing_commit(session))

    with pytest.raises(RuntimeError):
        LedgerService(session, user.id).create(
            LedgerEntryIn(
                wallet_id=wallet.id,
                amount=Decimal("25.00"),
                transaction_date=date(2024, 1, 2),
            )
        )

    assert _entry_count(session) == 0
    assert _balance(session, wallet.id) == 100_000


def test_failed_update_keeps_entry_and_balance(
    session, user, wallet, add_entry, monkeypatch
) -> None:
    entry = add_entry("25.00", date(2024, 1, 2))
    monkeypatch.setattr(session, "commit", _failing_commit(session))

    with pytest.raises(RuntimeError):
        LedgerService(session, user.id).update(
            entry.id,
            LedgerEntryIn(
                wallet_id=wallet.id,
                amount=Decimal("90.00"),
                transaction_date=date(2024, 1, 2),
            ),
        )

    assert session.get(LedgerEntry, entry.id).amount_cents == 2_500
    assert _balance(session, wallet.id) == 100_000 - 2_500


def test_failed_delete_keeps_entry_and_balance(
    session, user, wallet, add_entry, monkeypatch
) -> None:
    entry = add_entry("25.00", date(2024, 1, 2))
    monkeypatch.setattr(session, "commit", _failing_commit(session))

    with pytest.raises(RuntimeError):
        LedgerService(session, user.id).delete(entry.id)

    assert _entry_count(session) == 1
    assert _balance(session, wallet.id) == 100_000 - 2_500
