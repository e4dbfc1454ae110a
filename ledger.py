from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from errors import NotFoundError
from models import Budget, Category, LedgerEntry, User, Wallet

UNCATEGORIZED = "Uncategorized"
UNCATEGORIZED_COLOR = "#808080"
UNKNOWN_WALLET = "Unknown"
OVERALL = "Overall"


def require_owner(session: Session, owner_id: int) -> User:
    user = session.get(User, owner_id)
    if not user:
        raise NotFoundError(f"User not found with id: {owner_id}")
    return user


def category_label(category: Optional[Category]) -> str:
    return category.name if category else UNCATEGORIZED


def category_color(category: Optional[Category]) -> str:
    if category and category.color:
        return category.color
    return UNCATEGORIZED_COLOR


def wallet_label(wallet: Optional[Wallet]) -> str:
    return wallet.name if wallet else UNKNOWN_WALLET


def budget_scope_label(category: Optional[Category]) -> str:
    return category.name if category else OVERALL


class LedgerQuery:
    """Read-only access to a user's ledger entries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def entries_for_owner_in_range(
        self,
        owner_id: int,
        start: date,
        end: date,
        *,
        category_id: Optional[int] = None,
    ) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .options(joinedload(LedgerEntry.category), joinedload(LedgerEntry.wallet))
            .where(
                LedgerEntry.user_id == owner_id,
                LedgerEntry.transaction_date.between(start, end),
            )
            .order_by(LedgerEntry.transaction_date.desc(), LedgerEntry.id.desc())
        )
        if category_id is not None:
            stmt = stmt.where(LedgerEntry.category_id == category_id)
        return list(self.session.scalars(stmt).all())

    def recent_entries_for_owner(self, owner_id: int, limit: int) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .options(joinedload(LedgerEntry.category), joinedload(LedgerEntry.wallet))
            .where(LedgerEntry.user_id == owner_id)
            .order_by(LedgerEntry.transaction_date.desc(), LedgerEntry.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt).all())


class BudgetQuery:
    def __init__(self, session: Session) -> None:
        self.session = session

    def active_budgets_for_owner(self, owner_id: int) -> list[Budget]:
        stmt = (
            select(Budget)
            .options(joinedload(Budget.category))
            .where(Budget.user_id == owner_id, Budget.is_active.is_(True))
            .order_by(Budget.starts_at, Budget.id)
        )
        return list(self.session.scalars(stmt).all())

    def active_budgets_for_owner_in_window(
        self, owner_id: int, as_of: datetime
    ) -> list[Budget]:
        stmt = (
            select(Budget)
            .options(joinedload(Budget.category))
            .where(
                Budget.user_id == owner_id,
                Budget.is_active.is_(True),
                Budget.starts_at <= as_of,
                Budget.ends_at >= as_of,
            )
            .order_by(Budget.starts_at, Budget.id)
        )
        return list(self.session.scalars(stmt).all())
