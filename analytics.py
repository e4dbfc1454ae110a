from __future__ import annotations

import calendar
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from budgets import BudgetService, alert_message, local_now, performance
from config import get_settings
from ledger import LedgerQuery, category_color, category_label, require_owner, wallet_label
from models import Category, EntryType, LedgerEntry
from money import (
    ZERO,
    apportion_percentages,
    cents_to_decimal,
    divide_cents,
    percent_of,
)
from periods import (
    Period,
    add_months,
    days_in_month,
    month_period,
    month_start,
    week_start,
)
from schemas import (
    BudgetAlert,
    BudgetEvaluation,
    CategorySpendSummary,
    CategoryTrend,
    DailyTrendPoint,
    DashboardBudgetSummary,
    DashboardSnapshot,
    DayOfWeekSpending,
    ExpenseAnalytics,
    MonthlyTrendPoint,
    QuickStats,
    RecentTransaction,
    SpendingPatterns,
    SpendingTrends,
    WeeklyTrendPoint,
)

logger = logging.getLogger(__name__)


@dataclass
class Totals:
    expense_cents: int = 0
    income_cents: int = 0
    count: int = 0

    def add(self, entry: LedgerEntry) -> None:
        self.count += 1
        if entry.type == EntryType.expense:
            self.expense_cents += entry.amount_cents
        elif entry.type == EntryType.income:
            self.income_cents += entry.amount_cents

    @property
    def net_cents(self) -> int:
        return self.income_cents - self.expense_cents

    def as_fields(self) -> dict[str, object]:
        return {
            "total_expenses": cents_to_decimal(self.expense_cents),
            "total_income": cents_to_decimal(self.income_cents),
            "net_amount": cents_to_decimal(self.net_cents),
            "transaction_count": self.count,
        }


def fold(entries: Iterable[LedgerEntry]) -> Totals:
    totals = Totals()
    for entry in entries:
        totals.add(entry)
    return totals


def expense_cents(entries: Iterable[LedgerEntry]) -> int:
    return sum(e.amount_cents for e in entries if e.type == EntryType.expense)


def category_breakdown(entries: list[LedgerEntry]) -> list[CategorySpendSummary]:
    """Expenses grouped by category, largest first.

    Percentages are shares of all expenses in ``entries``, including the
    uncategorized ones, which get no row of their own.
    """
    expenses = [e for e in entries if e.type == EntryType.expense]
    total = expense_cents(expenses)
    grouped: dict[int, list[LedgerEntry]] = defaultdict(list)
    categories: dict[int, Category] = {}
    for entry in expenses:
        if entry.category is None:
            continue
        grouped[entry.category.id].append(entry)
        categories[entry.category.id] = entry.category

    rows = sorted(
        (
            (category_id, sum(e.amount_cents for e in items), len(items))
            for category_id, items in grouped.items()
        ),
        key=lambda row: (-row[1], categories[row[0]].name, row[0]),
    )
    shares = apportion_percentages([row[1] for row in rows], total)
    breakdown = []
    for (category_id, amount, count), share in zip(rows, shares):
        category = categories[category_id]
        breakdown.append(
            CategorySpendSummary(
                category_id=category_id,
                category_name=category_label(category),
                category_color=category_color(category),
                category_icon=category.icon,
                total_amount=cents_to_decimal(amount),
                percentage=share,
                transaction_count=count,
                average_transaction=divide_cents(amount, count),
            )
        )
    return breakdown


def daily_trend(entries: list[LedgerEntry], period: Period) -> list[DailyTrendPoint]:
    by_day: dict[date, Totals] = defaultdict(Totals)
    for entry in entries:
        by_day[entry.transaction_date].add(entry)
    return [
        DailyTrendPoint(date=day, **by_day.get(day, Totals()).as_fields())
        for day in period.days()
    ]


def month_starts(start: date, end: date) -> list[date]:
    months = []
    current = month_start(start)
    while current <= end:
        months.append(current)
        current = add_months(current, 1)
    return months


def monthly_trend(
    entries: list[LedgerEntry], months: list[date]
) -> list[MonthlyTrendPoint]:
    by_month: dict[date, Totals] = defaultdict(Totals)
    for entry in entries:
        by_month[month_start(entry.transaction_date)].add(entry)
    points = []
    for first in months:
        totals = by_month.get(first, Totals())
        points.append(
            MonthlyTrendPoint(
                year=first.year,
                month=first.month,
                month_name=calendar.month_name[first.month],
                average_daily=divide_cents(totals.expense_cents, days_in_month(first)),
                **totals.as_fields(),
            )
        )
    return points


def weekly_trend(
    entries: list[LedgerEntry], first_week: date, weeks: int
) -> list[WeeklyTrendPoint]:
    by_week: dict[date, Totals] = defaultdict(Totals)
    for entry in entries:
        by_week[week_start(entry.transaction_date)].add(entry)
    points = []
    for offset in range(weeks):
        start = first_week + timedelta(weeks=offset)
        iso_year, iso_week, _ = start.isocalendar()
        points.append(
            WeeklyTrendPoint(
                year=iso_year,
                week=iso_week,
                week_start=start,
                week_end=start + timedelta(days=6),
                **by_week.get(start, Totals()).as_fields(),
            )
        )
    return points


def spending_patterns(
    entries: list[LedgerEntry], period: Period, month_count: int
) -> SpendingPatterns:
    expenses = [e for e in entries if e.type == EntryType.expense]
    total = expense_cents(expenses)
    day_count = period.length_days + 1
    average_daily = divide_cents(total, day_count)

    occurrences = Counter(day.weekday() for day in period.days())
    weekday_cents: dict[int, int] = defaultdict(int)
    weekday_counts: dict[int, int] = defaultdict(int)
    for entry in expenses:
        weekday = entry.transaction_date.weekday()
        weekday_cents[weekday] += entry.amount_cents
        weekday_counts[weekday] += 1

    pattern = [
        DayOfWeekSpending(
            day_name=calendar.day_name[weekday],
            day_number=weekday + 1,
            average_amount=divide_cents(
                weekday_cents[weekday], occurrences.get(weekday, 0)
            ),
            transaction_count=weekday_counts[weekday],
        )
        for weekday in range(7)
    ]

    if expenses:
        highest = max(pattern, key=lambda row: row.average_amount)
        lowest = min(pattern, key=lambda row: row.average_amount)
        highest_name, highest_amount = highest.day_name, highest.average_amount
        lowest_name, lowest_amount = lowest.day_name, lowest.average_amount
    else:
        highest_name = lowest_name = "None"
        highest_amount = lowest_amount = ZERO

    return SpendingPatterns(
        average_daily_spending=average_daily,
        average_weekly_spending=average_daily * 7,
        average_monthly_spending=divide_cents(total, month_count),
        highest_spending_day=highest_name,
        lowest_spending_day=lowest_name,
        highest_day_amount=highest_amount,
        lowest_day_amount=lowest_amount,
        day_of_week_pattern=pattern,
    )


class AnalyticsService:
    """Request-time aggregation over a user's ledger.

    Nothing is cached between calls: each method re-reads the ledger slice it
    needs and re-evaluates budgets from scratch.
    """

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.settings = get_settings()
        self.ledger = LedgerQuery(session)
        self.budgets = BudgetService(session, user_id)

    def _entries(self, period: Period) -> list[LedgerEntry]:
        return self.ledger.entries_for_owner_in_range(
            self.user_id, period.start, period.end
        )

    def expense_analytics(
        self, start: date, end: date, *, now: Optional[datetime] = None
    ) -> ExpenseAnalytics:
        require_owner(self.session, self.user_id)
        if start > end:
            raise ValueError("Start date must be before end date")
        now = now or local_now()
        period = Period("custom", start, end)
        logger.info(
            f"expense_analytics: user_id={self.user_id} start={start} end={end}"
        )

        entries = self._entries(period)
        totals = fold(entries)

        previous = period.previous()
        previous_cents = expense_cents(self._entries(previous))
        change_cents = totals.expense_cents - previous_cents

        breakdown = category_breakdown(entries)
        evaluations = self.budgets.evaluate_all(
            self.budgets.list_active_in_window(now), now=now
        )
        return ExpenseAnalytics(
            total_expenses=cents_to_decimal(totals.expense_cents),
            total_income=cents_to_decimal(totals.income_cents),
            net_amount=cents_to_decimal(totals.net_cents),
            transaction_count=totals.count,
            previous_period_start=previous.start,
            previous_period_end=previous.end,
            previous_period_expenses=cents_to_decimal(previous_cents),
            expense_change=cents_to_decimal(change_cents),
            expense_change_percentage=percent_of(change_cents, previous_cents),
            category_breakdown=breakdown,
            daily_trends=daily_trend(entries, period),
            top_categories=breakdown[: self.settings.top_categories],
            budget_performance=[performance(e) for e in evaluations],
            period_start=period.start,
            period_end=period.end,
        )

    def spending_trends(
        self, months: int = 12, *, today: Optional[date] = None
    ) -> SpendingTrends:
        require_owner(self.session, self.user_id)
        if months < 1:
            raise ValueError("Months must be at least 1")
        today = today or local_now().date()
        period = Period("trends", add_months(today, -months), today)
        weeks = self.settings.trend_weeks
        first_week = week_start(today) - timedelta(weeks=weeks - 1)
        logger.info(f"spending_trends: user_id={self.user_id} months={months}")

        entries = self.ledger.entries_for_owner_in_range(
            self.user_id, min(period.start, first_week), today
        )
        in_period = [e for e in entries if e.transaction_date >= period.start]
        months_in_period = month_starts(period.start, period.end)

        by_category: dict[int, list[LedgerEntry]] = defaultdict(list)
        names: dict[int, str] = {}
        for entry in in_period:
            if entry.type != EntryType.expense or entry.category is None:
                continue
            by_category[entry.category.id].append(entry)
            names[entry.category.id] = category_label(entry.category)
        category_trends = [
            CategoryTrend(
                category_id=category_id,
                category_name=names[category_id],
                monthly_data=monthly_trend(items, months_in_period),
            )
            for category_id, items in sorted(
                by_category.items(), key=lambda item: -expense_cents(item[1])
            )
        ]

        return SpendingTrends(
            period_start=period.start,
            period_end=period.end,
            monthly_trends=monthly_trend(in_period, months_in_period),
            weekly_trends=weekly_trend(
                [e for e in entries if e.transaction_date >= first_week],
                first_week,
                weeks,
            ),
            category_trends=category_trends,
            spending_patterns=spending_patterns(
                in_period, period, len(months_in_period)
            ),
        )

    def _budget_summary(
        self, evaluations: list[BudgetEvaluation]
    ) -> DashboardBudgetSummary:
        total_budgeted = sum((e.amount for e in evaluations), ZERO)
        total_spent = sum((e.spent for e in evaluations), ZERO)
        return DashboardBudgetSummary(
            total_budgeted=total_budgeted,
            total_spent=total_spent,
            total_remaining=total_budgeted - total_spent,
            budget_utilization=percent_of(total_spent, total_budgeted),
            active_budgets=len(evaluations),
            over_budgets=sum(1 for e in evaluations if e.is_over_budget),
            alerting_budgets=sum(1 for e in evaluations if e.should_alert),
        )

    def _quick_stats(
        self,
        entries: list[LedgerEntry],
        month: Period,
        today: date,
        evaluations: list[BudgetEvaluation],
    ) -> QuickStats:
        expenses = [e for e in entries if e.type == EntryType.expense]
        breakdown = category_breakdown(entries)
        if evaluations:
            days_until_reset = min(e.days_remaining for e in evaluations)
        else:
            days_until_reset = (month.end - today).days
        wallets = Counter(wallet_label(e.wallet) for e in entries if e.wallet)
        return QuickStats(
            average_daily_spending=divide_cents(
                expense_cents(expenses), days_in_month(month.start)
            ),
            largest_expense=cents_to_decimal(
                max((e.amount_cents for e in expenses), default=0)
            ),
            top_category=breakdown[0].category_name if breakdown else "None",
            top_category_amount=breakdown[0].total_amount if breakdown else ZERO,
            days_until_next_budget_reset=days_until_reset,
            most_used_wallet=wallets.most_common(1)[0][0] if wallets else "None",
        )

    def _alerts(
        self, evaluations: list[BudgetEvaluation], now: datetime
    ) -> list[BudgetAlert]:
        alerts = []
        for evaluation in evaluations:
            if not (evaluation.should_alert or evaluation.is_over_budget):
                continue
            alerts.append(
                BudgetAlert(
                    budget_id=evaluation.id,
                    budget_name=evaluation.name,
                    category_name=evaluation.category_name,
                    spent_percentage=evaluation.spent_percentage,
                    remaining_amount=evaluation.remaining,
                    alert_type="OVERBUDGET" if evaluation.is_over_budget else "THRESHOLD",
                    message=alert_message(evaluation),
                    alert_date=now,
                )
            )
        return alerts

    def dashboard(self, *, now: Optional[datetime] = None) -> DashboardSnapshot:
        require_owner(self.session, self.user_id)
        now = now or local_now()
        today = now.date()
        month = month_period(today, "this_month")
        previous_month = month_period(add_months(month.start, -1), "last_month")

        entries = self._entries(month)
        totals = fold(entries)
        previous_cents = expense_cents(self._entries(previous_month))
        change_cents = totals.expense_cents - previous_cents

        in_window = self.budgets.evaluate_all(
            self.budgets.list_active_in_window(now), now=now
        )
        active = self.budgets.evaluate_all(self.budgets.list_active(), now=now)
        alerts = self._alerts(active, now)

        recent = self.ledger.recent_entries_for_owner(
            self.user_id, self.settings.recent_transactions
        )
        logger.info(
            f"dashboard: user_id={self.user_id} month={month.start:%Y-%m} "
            f"entries={totals.count} budgets={len(active)} alerts={len(alerts)}"
        )
        return DashboardSnapshot(
            month_start=month.start,
            month_end=month.end,
            current_month_expenses=cents_to_decimal(totals.expense_cents),
            current_month_income=cents_to_decimal(totals.income_cents),
            current_month_net=cents_to_decimal(totals.net_cents),
            current_month_transactions=totals.count,
            previous_month_expenses=cents_to_decimal(previous_cents),
            expense_change=cents_to_decimal(change_cents),
            expense_change_percentage=percent_of(change_cents, previous_cents),
            budget_summary=self._budget_summary(in_window),
            quick_stats=self._quick_stats(entries, month, today, in_window),
            recent_transactions=[recent_transaction(e) for e in recent],
            budget_alerts=alerts,
        )


def recent_transaction(entry: LedgerEntry) -> RecentTransaction:
    return RecentTransaction(
        id=entry.id,
        description=entry.description or entry.merchant or "",
        amount=cents_to_decimal(entry.amount_cents),
        type=entry.type,
        category_name=category_label(entry.category),
        category_color=category_color(entry.category),
        wallet_name=wallet_label(entry.wallet),
        date=entry.transaction_date,
    )
