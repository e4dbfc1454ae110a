from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class EntryType(str, Enum):
    expense = "expense"
    income = "income"
    transfer = "transfer"


class BudgetPeriod(str, Enum):
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"
    custom = "custom"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Wallet(Base, TimestampMixin):
    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    balance_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    entries: Mapped[list["LedgerEntry"]] = relationship(
        "LedgerEntry", back_populates="wallet"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_wallet_user_name"),
    )


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # NULL owner marks a system category shared by every user.
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(7), default="#6B7280")
    icon: Mapped[Optional[str]] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    entries: Mapped[list["LedgerEntry"]] = relationship(
        "LedgerEntry", back_populates="category"
    )

    @property
    def is_system(self) -> bool:
        return self.user_id is None

    def is_visible_to(self, user_id: int) -> bool:
        return self.user_id is None or self.user_id == user_id


class LedgerEntry(Base, TimestampMixin):
    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    wallet_id: Mapped[Optional[int]] = mapped_column(ForeignKey("wallets.id"))
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    merchant: Mapped[Optional[str]] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[EntryType] = mapped_column(
        SAEnum(EntryType), nullable=False, default=EntryType.expense
    )
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    wallet: Mapped[Optional["Wallet"]] = relationship(
        "Wallet", back_populates="entries"
    )
    category: Mapped[Optional["Category"]] = relationship(
        "Category", back_populates="entries"
    )

    __table_args__ = (
        Index("ix_ledger_user_date", "user_id", "transaction_date"),
        Index("ix_ledger_user_category_date", "user_id", "category_id", "transaction_date"),
        CheckConstraint("amount_cents >= 0", name="ck_ledger_amount_positive"),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    # NULL category is an overall budget covering every category.
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(
        SAEnum(BudgetPeriod), nullable=False, default=BudgetPeriod.monthly
    )
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Percent scaled by 100: 8000 == 80.00%.
    alert_threshold_bps: Mapped[int] = mapped_column(
        Integer, nullable=False, default=8000
    )
    alert_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    category: Mapped[Optional["Category"]] = relationship("Category")

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_budget_amount_positive"),
        CheckConstraint("starts_at <= ends_at", name="ck_budget_window_ordered"),
        CheckConstraint(
            "alert_threshold_bps BETWEEN 0 AND 10000",
            name="ck_budget_alert_threshold_range",
        ),
        Index("ix_budget_user_active", "user_id", "is_active"),
        Index("ix_budget_user_category_window", "user_id", "category_id", "starts_at", "ends_at"),
    )
