from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from config import get_settings
from errors import BudgetValidationError, NotFoundError
from ledger import BudgetQuery, LedgerQuery, budget_scope_label, require_owner
from models import Budget, Category, EntryType
from money import ZERO, cents_to_decimal, decimal_to_cents, percent_of
from periods import naive_local
from schemas import (
    BudgetEvaluation,
    BudgetIn,
    BudgetPerformance,
    BudgetSummary,
    BudgetUpdateIn,
)
from services import resolve_category

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    return naive_local(datetime.now(timezone.utc))


def spent_cents(session: Session, budget: Budget) -> int:
    entries = LedgerQuery(session).entries_for_owner_in_range(
        budget.user_id, budget.starts_at.date(), budget.ends_at.date()
    )
    total = 0
    for entry in entries:
        if budget.category_id is not None and entry.category_id != budget.category_id:
            continue
        if entry.type != EntryType.expense:
            continue
        total += entry.amount_cents
    return total


def compute_spent(session: Session, budget: Budget) -> Decimal:
    """Sum of the expenses that count against ``budget``, read fresh from the ledger.

    Only EXPENSE entries dated within the budget window (time of day on the
    bounds is ignored) and, for a category budget, in that category.
    """
    return cents_to_decimal(spent_cents(session, budget))


def windows_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    return start_a <= end_b and end_a >= start_b


def threshold_from_bps(bps: int) -> Decimal:
    return Decimal(bps).scaleb(-2)


def alert_message(evaluation: BudgetEvaluation) -> str:
    if evaluation.is_over_budget:
        return (
            "You have exceeded your budget by "
            f"{evaluation.spent - evaluation.amount}"
        )
    return f"You have spent {evaluation.spent_percentage}% of your budget"


def evaluate_budget(
    budget: Budget, spent: int, *, now: Optional[datetime] = None
) -> BudgetEvaluation:
    now = now or local_now()
    spent_pct = percent_of(spent, budget.amount_cents)
    threshold = threshold_from_bps(budget.alert_threshold_bps)
    if budget.ends_at > now:
        days_remaining = (budget.ends_at - now).days
    else:
        days_remaining = 0
    return BudgetEvaluation(
        id=budget.id,
        name=budget.name,
        category_id=budget.category_id,
        category_name=budget_scope_label(budget.category),
        amount=cents_to_decimal(budget.amount_cents),
        spent=cents_to_decimal(spent),
        remaining=cents_to_decimal(budget.amount_cents - spent),
        spent_percentage=spent_pct,
        period=budget.period,
        starts_at=budget.starts_at,
        ends_at=budget.ends_at,
        is_active=budget.is_active,
        alert_threshold=threshold,
        alert_enabled=budget.alert_enabled,
        description=budget.description,
        created_at=budget.created_at,
        updated_at=budget.updated_at,
        is_over_budget=spent > budget.amount_cents,
        # Threshold only; alert listings OR in over-budget status themselves.
        should_alert=bool(budget.alert_enabled) and spent_pct >= threshold,
        is_expired=budget.ends_at < now,
        days_remaining=max(0, days_remaining),
    )


def performance(evaluation: BudgetEvaluation) -> BudgetPerformance:
    return BudgetPerformance(
        budget_id=evaluation.id,
        budget_name=evaluation.name,
        category_name=evaluation.category_name,
        budget_amount=evaluation.amount,
        spent_amount=evaluation.spent,
        remaining_amount=evaluation.remaining,
        spent_percentage=evaluation.spent_percentage,
        is_over_budget=evaluation.is_over_budget,
        should_alert=evaluation.should_alert,
    )


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.budgets = BudgetQuery(session)

    def get(self, budget_id: int) -> Budget:
        require_owner(self.session, self.user_id)
        budget = self.session.scalar(
            select(Budget)
            .options(joinedload(Budget.category))
            .where(Budget.id == budget_id)
        )
        if not budget or budget.user_id != self.user_id:
            raise NotFoundError(f"Budget not found with id: {budget_id}")
        return budget

    def list_active(self) -> list[Budget]:
        require_owner(self.session, self.user_id)
        return self.budgets.active_budgets_for_owner(self.user_id)

    def list_active_in_window(self, now: Optional[datetime] = None) -> list[Budget]:
        require_owner(self.session, self.user_id)
        return self.budgets.active_budgets_for_owner_in_window(
            self.user_id, now or local_now()
        )

    def has_overlap(
        self,
        category_id: Optional[int],
        starts_at: datetime,
        ends_at: datetime,
        exclude_budget_id: Optional[int] = None,
    ) -> bool:
        """True when another active budget of this user and category shares a day.

        Overall budgets (no category) are never checked against anything.
        """
        require_owner(self.session, self.user_id)
        if category_id is None:
            return False
        starts_at, ends_at = naive_local(starts_at), naive_local(ends_at)
        stmt = select(Budget).where(
            Budget.user_id == self.user_id,
            Budget.category_id == category_id,
            Budget.is_active.is_(True),
        )
        if exclude_budget_id is not None:
            stmt = stmt.where(Budget.id != exclude_budget_id)
        for other in self.session.scalars(stmt):
            if windows_overlap(starts_at, ends_at, other.starts_at, other.ends_at):
                return True
        return False

    def _validate(
        self, data: BudgetIn, exclude_budget_id: Optional[int]
    ) -> Optional[Category]:
        if data.ends_at < data.starts_at:
            raise BudgetValidationError("End date must be after start date")
        category = resolve_category(self.session, self.user_id, data.category_id)
        if self.has_overlap(
            data.category_id, data.starts_at, data.ends_at, exclude_budget_id
        ):
            raise BudgetValidationError(
                "A budget already exists for this category in the specified period"
            )
        return category

    def _threshold_bps(self, threshold: Optional[Decimal]) -> int:
        if threshold is None:
            return get_settings().default_alert_threshold * 100
        return int((threshold * 100).to_integral_value())

    def create(self, data: BudgetIn) -> Budget:
        require_owner(self.session, self.user_id)
        category = self._validate(data, None)
        budget = Budget(
            user_id=self.user_id,
            category=category,
            name=data.name.strip(),
            amount_cents=decimal_to_cents(data.amount),
            period=data.period,
            starts_at=data.starts_at,
            ends_at=data.ends_at,
            alert_threshold_bps=self._threshold_bps(data.alert_threshold),
            alert_enabled=True if data.alert_enabled is None else data.alert_enabled,
            description=data.description,
            is_active=True,
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        logger.info(f"budget_created: user_id={self.user_id} budget_id={budget.id}")
        return budget

    def update(self, budget_id: int, data: BudgetUpdateIn) -> Budget:
        budget = self.get(budget_id)
        category = self._validate(data, budget.id)
        budget.name = data.name.strip()
        budget.amount_cents = decimal_to_cents(data.amount)
        budget.category = category
        budget.period = data.period
        budget.starts_at = data.starts_at
        budget.ends_at = data.ends_at
        budget.alert_threshold_bps = self._threshold_bps(data.alert_threshold)
        if data.alert_enabled is not None:
            budget.alert_enabled = data.alert_enabled
        budget.description = data.description
        if data.is_active is not None:
            budget.is_active = data.is_active
        self.session.commit()
        self.session.refresh(budget)
        logger.info(f"budget_updated: user_id={self.user_id} budget_id={budget.id}")
        return budget

    def soft_delete(self, budget_id: int) -> None:
        budget = self.get(budget_id)
        budget.is_active = False
        self.session.commit()
        logger.info(f"budget_deactivated: user_id={self.user_id} budget_id={budget_id}")

    def compute_spent(self, budget: Budget) -> Decimal:
        return compute_spent(self.session, budget)

    def evaluate(
        self, budget: Budget, *, now: Optional[datetime] = None
    ) -> BudgetEvaluation:
        return evaluate_budget(budget, spent_cents(self.session, budget), now=now)

    def evaluate_all(
        self, budgets: list[Budget], *, now: Optional[datetime] = None
    ) -> list[BudgetEvaluation]:
        now = now or local_now()
        return [self.evaluate(budget, now=now) for budget in budgets]

    def summary(self, now: Optional[datetime] = None) -> BudgetSummary:
        now = now or local_now()
        in_window = self.evaluate_all(self.list_active_in_window(now), now=now)
        active = self.evaluate_all(self.list_active(), now=now)
        over = [e for e in active if e.is_over_budget]
        alerting = [e for e in active if e.should_alert]

        total_budgeted = sum((e.amount for e in in_window), ZERO)
        total_spent = sum((e.spent for e in in_window), ZERO)
        return BudgetSummary(
            total_budgeted=total_budgeted,
            total_spent=total_spent,
            total_remaining=total_budgeted - total_spent,
            overall_spent_percentage=percent_of(total_spent, total_budgeted),
            total_budgets=len(in_window),
            active_budgets=len(in_window),
            over_budget_count=len(over),
            alerting_budgets=len(alerting),
            budgets=in_window,
            over_budgets=over,
            alerting_budgets_list=alerting,
        )
