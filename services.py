from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from errors import NotFoundError
from ledger import category_label, require_owner, wallet_label
from models import Category, EntryType, LedgerEntry, User, Wallet
from money import cents_to_decimal, decimal_to_cents
from schemas import (
    CategoryIn,
    CategoryOut,
    LedgerEntryIn,
    LedgerEntryOut,
    UserIn,
    WalletIn,
    WalletOut,
)

logger = logging.getLogger(__name__)


def resolve_category(
    session: Session, user_id: int, category_id: Optional[int]
) -> Optional[Category]:
    if category_id is None:
        return None
    category = session.get(Category, category_id)
    if not category or not category.is_visible_to(user_id):
        raise NotFoundError(f"Category not found with id: {category_id}")
    return category


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: UserIn) -> User:
        existing = self.session.scalar(
            select(User).where(func.lower(User.email) == data.email.lower())
        )
        if existing:
            raise ValueError("User with this email already exists")
        user = User(name=data.name.strip(), email=data.email.strip())
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info(f"user_created: user_id={user.id}")
        return user


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Category]:
        stmt = (
            select(Category)
            .where(
                or_(Category.user_id == self.user_id, Category.user_id.is_(None)),
                Category.is_active.is_(True),
            )
            .order_by(Category.name)
        )
        return list(self.session.scalars(stmt).all())

    def create(self, data: CategoryIn, *, system: bool = False) -> Category:
        if not system:
            require_owner(self.session, self.user_id)
        owner_id = None if system else self.user_id
        owner_filter = (
            Category.user_id.is_(None) if system else Category.user_id == owner_id
        )
        existing = self.session.scalar(
            select(Category).where(
                owner_filter, func.lower(Category.name) == data.name.strip().lower()
            )
        )
        if existing:
            raise ValueError("Category with this name already exists")
        category = Category(
            user_id=owner_id,
            name=data.name.strip(),
            color=data.color,
            icon=data.icon,
            description=data.description,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    @staticmethod
    def to_out(category: Category) -> CategoryOut:
        return CategoryOut.model_validate(category)


class WalletService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Wallet]:
        stmt = (
            select(Wallet)
            .where(Wallet.user_id == self.user_id, Wallet.is_active.is_(True))
            .order_by(Wallet.is_default.desc(), Wallet.name)
        )
        return list(self.session.scalars(stmt).all())

    def get(self, wallet_id: int) -> Wallet:
        wallet = self.session.get(Wallet, wallet_id)
        if not wallet or wallet.user_id != self.user_id or not wallet.is_active:
            raise NotFoundError(f"Wallet not found with id: {wallet_id}")
        return wallet

    def create(self, data: WalletIn) -> Wallet:
        require_owner(self.session, self.user_id)
        existing = self.session.scalar(
            select(Wallet).where(
                Wallet.user_id == self.user_id,
                func.lower(Wallet.name) == data.name.strip().lower(),
            )
        )
        if existing:
            raise ValueError("Wallet with this name already exists")
        wallet = Wallet(
            user_id=self.user_id,
            name=data.name.strip(),
            currency=data.currency.upper(),
            balance_cents=decimal_to_cents(data.balance),
            is_default=data.is_default,
            description=data.description,
        )
        self.session.add(wallet)
        self.session.commit()
        self.session.refresh(wallet)
        return wallet

    @staticmethod
    def to_out(wallet: Wallet) -> WalletOut:
        return WalletOut(
            id=wallet.id,
            name=wallet.name,
            currency=wallet.currency,
            balance=cents_to_decimal(wallet.balance_cents),
            is_default=wallet.is_default,
            is_active=wallet.is_active,
        )


def apply_to_wallet(
    wallet: Optional[Wallet], entry: LedgerEntry, *, revert: bool = False
) -> None:
    """Move a wallet balance by the effect of ``entry``.

    Expenses subtract, income adds, transfers leave the balance alone.
    """
    if wallet is None:
        return
    if entry.type == EntryType.expense:
        delta = -entry.amount_cents
    elif entry.type == EntryType.income:
        delta = entry.amount_cents
    else:
        return
    if revert:
        delta = -delta
    wallet.balance_cents += delta


class LedgerService:
    """Records ledger entries and keeps wallet balances in step.

    Every write commits the entry and its wallet adjustment together, or rolls
    both back.
    """

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def get(self, entry_id: int) -> LedgerEntry:
        stmt = (
            select(LedgerEntry)
            .options(joinedload(LedgerEntry.category), joinedload(LedgerEntry.wallet))
            .where(LedgerEntry.user_id == self.user_id, LedgerEntry.id == entry_id)
        )
        entry = self.session.scalar(stmt)
        if not entry:
            raise NotFoundError(f"Expense not found with id: {entry_id}")
        return entry

    def list(
        self, *, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[LedgerEntry]:
        require_owner(self.session, self.user_id)
        stmt = (
            select(LedgerEntry)
            .options(joinedload(LedgerEntry.category), joinedload(LedgerEntry.wallet))
            .where(LedgerEntry.user_id == self.user_id)
            .order_by(LedgerEntry.transaction_date.desc(), LedgerEntry.id.desc())
        )
        if start is not None:
            stmt = stmt.where(LedgerEntry.transaction_date >= start)
        if end is not None:
            stmt = stmt.where(LedgerEntry.transaction_date <= end)
        return list(self.session.scalars(stmt).all())

    def create(self, data: LedgerEntryIn) -> LedgerEntry:
        require_owner(self.session, self.user_id)
        wallet = WalletService(self.session, self.user_id).get(data.wallet_id)
        category = resolve_category(self.session, self.user_id, data.category_id)
        entry = LedgerEntry(
            user_id=self.user_id,
            wallet=wallet,
            category=category,
            amount_cents=decimal_to_cents(data.amount),
            currency=data.currency.upper(),
            transaction_date=data.transaction_date,
            merchant=data.merchant,
            description=data.description,
            type=data.type,
            is_recurring=data.is_recurring,
        )
        try:
            self.session.add(entry)
            apply_to_wallet(wallet, entry)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(entry)
        logger.info(
            f"entry_created: user_id={self.user_id} entry_id={entry.id} "
            f"type={entry.type.value} wallet_id={wallet.id}"
        )
        return entry

    def update(self, entry_id: int, data: LedgerEntryIn) -> LedgerEntry:
        entry = self.get(entry_id)
        new_wallet = WalletService(self.session, self.user_id).get(data.wallet_id)
        category = resolve_category(self.session, self.user_id, data.category_id)
        try:
            apply_to_wallet(entry.wallet, entry, revert=True)
            entry.wallet = new_wallet
            entry.category = category
            entry.amount_cents = decimal_to_cents(data.amount)
            entry.currency = data.currency.upper()
            entry.transaction_date = data.transaction_date
            entry.merchant = data.merchant
            entry.description = data.description
            entry.type = data.type
            entry.is_recurring = data.is_recurring
            apply_to_wallet(new_wallet, entry)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(entry)
        logger.info(f"entry_updated: user_id={self.user_id} entry_id={entry.id}")
        return entry

    def delete(self, entry_id: int) -> None:
        entry = self.get(entry_id)
        try:
            apply_to_wallet(entry.wallet, entry, revert=True)
            self.session.delete(entry)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info(f"entry_deleted: user_id={self.user_id} entry_id={entry_id}")

    @staticmethod
    def to_out(entry: LedgerEntry) -> LedgerEntryOut:
        return LedgerEntryOut(
            id=entry.id,
            wallet_id=entry.wallet_id,
            wallet_name=wallet_label(entry.wallet),
            category_id=entry.category_id,
            category_name=category_label(entry.category),
            amount=cents_to_decimal(entry.amount_cents),
            currency=entry.currency,
            transaction_date=entry.transaction_date,
            merchant=entry.merchant,
            description=entry.description,
            type=entry.type,
            is_recurring=entry.is_recurring,
        )
