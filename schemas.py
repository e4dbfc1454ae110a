import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import BudgetPeriod, EntryType
from periods import naive_local

Money = Decimal


class UserIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(default="#6B7280", max_length=7)
    icon: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None


class WalletIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    balance: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    is_default: bool = False
    description: Optional[str] = None


class LedgerEntryIn(BaseModel):
    wallet_id: int
    category_id: Optional[int] = None
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    transaction_date: date
    merchant: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    type: EntryType = EntryType.expense
    is_recurring: bool = False


class BudgetIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    category_id: Optional[int] = None
    period: BudgetPeriod = BudgetPeriod.monthly
    starts_at: datetime
    ends_at: datetime
    alert_threshold: Optional[Decimal] = Field(
        default=None, ge=0, le=100, max_digits=5, decimal_places=2
    )
    alert_enabled: Optional[bool] = None
    description: Optional[str] = None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _local_wall_clock(cls, value: datetime) -> datetime:
        return naive_local(value)


class BudgetUpdateIn(BudgetIn):
    is_active: Optional[bool] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: Optional[str]
    icon: Optional[str]
    is_system: bool


class WalletOut(BaseModel):
    id: int
    name: str
    currency: str
    balance: Money
    is_default: bool
    is_active: bool


class LedgerEntryOut(BaseModel):
    id: int
    wallet_id: Optional[int]
    wallet_name: str
    category_id: Optional[int]
    category_name: str
    amount: Money
    currency: str
    transaction_date: date
    merchant: Optional[str]
    description: Optional[str]
    type: EntryType
    is_recurring: bool


class BudgetEvaluation(BaseModel):
    id: int
    name: str
    category_id: Optional[int]
    category_name: str
    amount: Money
    spent: Money
    remaining: Money
    spent_percentage: Money
    period: BudgetPeriod
    starts_at: datetime
    ends_at: datetime
    is_active: bool
    alert_threshold: Money
    alert_enabled: bool
    description: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    is_over_budget: bool
    should_alert: bool
    is_expired: bool
    days_remaining: int


class BudgetSummary(BaseModel):
    total_budgeted: Money
    total_spent: Money
    total_remaining: Money
    overall_spent_percentage: Money
    total_budgets: int
    active_budgets: int
    over_budget_count: int
    alerting_budgets: int
    budgets: list[BudgetEvaluation]
    over_budgets: list[BudgetEvaluation]
    alerting_budgets_list: list[BudgetEvaluation]


class OverlapCheck(BaseModel):
    category_id: Optional[int]
    starts_at: datetime
    ends_at: datetime
    exclude_budget_id: Optional[int]
    overlaps: bool


class CategorySpendSummary(BaseModel):
    category_id: int
    category_name: str
    category_color: str
    category_icon: Optional[str]
    total_amount: Money
    percentage: Money
    transaction_count: int
    average_transaction: Money


class TrendTotals(BaseModel):
    total_expenses: Money
    total_income: Money
    net_amount: Money
    transaction_count: int


class DailyTrendPoint(TrendTotals):
    date: dt.date


class WeeklyTrendPoint(TrendTotals):
    year: int
    week: int
    week_start: date
    week_end: date


class MonthlyTrendPoint(TrendTotals):
    year: int
    month: int
    month_name: str
    average_daily: Money


class CategoryTrend(BaseModel):
    category_id: int
    category_name: str
    monthly_data: list[MonthlyTrendPoint]


class DayOfWeekSpending(BaseModel):
    day_name: str
    day_number: int
    average_amount: Money
    transaction_count: int


class SpendingPatterns(BaseModel):
    average_daily_spending: Money
    average_weekly_spending: Money
    average_monthly_spending: Money
    highest_spending_day: str
    lowest_spending_day: str
    highest_day_amount: Money
    lowest_day_amount: Money
    day_of_week_pattern: list[DayOfWeekSpending]


class SpendingTrends(BaseModel):
    period_start: date
    period_end: date
    monthly_trends: list[MonthlyTrendPoint]
    weekly_trends: list[WeeklyTrendPoint]
    category_trends: list[CategoryTrend]
    spending_patterns: SpendingPatterns


class BudgetPerformance(BaseModel):
    budget_id: int
    budget_name: str
    category_name: str
    budget_amount: Money
    spent_amount: Money
    remaining_amount: Money
    spent_percentage: Money
    is_over_budget: bool
    should_alert: bool


class ExpenseAnalytics(BaseModel):
    total_expenses: Money
    total_income: Money
    net_amount: Money
    transaction_count: int
    previous_period_start: date
    previous_period_end: date
    previous_period_expenses: Money
    expense_change: Money
    expense_change_percentage: Money
    category_breakdown: list[CategorySpendSummary]
    daily_trends: list[DailyTrendPoint]
    top_categories: list[CategorySpendSummary]
    budget_performance: list[BudgetPerformance]
    period_start: date
    period_end: date


class DashboardBudgetSummary(BaseModel):
    total_budgeted: Money
    total_spent: Money
    total_remaining: Money
    budget_utilization: Money
    active_budgets: int
    over_budgets: int
    alerting_budgets: int


class QuickStats(BaseModel):
    average_daily_spending: Money
    largest_expense: Money
    top_category: str
    top_category_amount: Money
    days_until_next_budget_reset: int
    most_used_wallet: str


class RecentTransaction(BaseModel):
    id: int
    description: str
    amount: Money
    type: EntryType
    category_name: str
    category_color: str
    wallet_name: str
    date: dt.date


class BudgetAlert(BaseModel):
    budget_id: int
    budget_name: str
    category_name: str
    spent_percentage: Money
    remaining_amount: Money
    alert_type: Literal["OVERBUDGET", "THRESHOLD"]
    message: str
    alert_date: datetime


class DashboardSnapshot(BaseModel):
    month_start: date
    month_end: date
    current_month_expenses: Money
    current_month_income: Money
    current_month_net: Money
    current_month_transactions: int
    previous_month_expenses: Money
    expense_change: Money
    expense_change_percentage: Money
    budget_summary: DashboardBudgetSummary
    quick_stats: QuickStats
    recent_transactions: list[RecentTransaction]
    budget_alerts: list[BudgetAlert]
