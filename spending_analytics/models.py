"""Plain data records consumed and produced by the analytics engine."""
import re
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from spending_analytics.config import DEFAULT_CATEGORY


Frequency = Literal["weekly", "biweekly", "monthly", "quarterly"]
BudgetStatus = Literal["safe", "warning", "danger", "exceeded"]
AlertKind = Literal["prediction", "threshold", "exceeded", "recommendation"]
AlertSeverity = Literal["info", "warning", "critical"]
InsightKind = Literal["trend", "pattern", "alert", "tip"]
TrendDirection = Literal["up", "down", "stable"]

MONTH_PATTERN = re.compile(r"\s*(\d{4})-(\d{1,2})\b")


def parse_calendar_date(value) -> date:
    """Reduce a date, datetime or date/date-time string to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


# === Inputs ===

class Transaction(BaseModel):
    """A single expense. Externally owned and never mutated."""
    model_config = ConfigDict(frozen=True)

    amount: float = Field(ge=0)
    merchant: str = Field(min_length=1)
    category: str = DEFAULT_CATEGORY
    transaction_date: date

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value):
        return value or DEFAULT_CATEGORY

    @field_validator("transaction_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_calendar_date(value)


class Budget(BaseModel):
    """Monthly spending target for one category."""
    category: str
    amount: float
    month: str  # "YYYY-MM"

    @field_validator("month", mode="before")
    @classmethod
    def _month_key(cls, value):
        if isinstance(value, date):
            return value.strftime("%Y-%m")
        # "2026-9" and "2026-09-15" both key as "2026-09"
        match = MONTH_PATTERN.match(str(value))
        if match:
            return f"{match.group(1)}-{int(match.group(2)):02d}"
        return str(value).strip()


# === Preprocessed snapshot ===

class TimeBoundaries(BaseModel):
    now: datetime
    today: date
    start_of_this_month: date
    start_of_last_month: date
    end_of_last_month: date
    last_30_days: date  # cutoffs: a date is inside the window when strictly after
    last_14_days: date
    last_7_days: date


class PeriodTransactions(BaseModel):
    this_month: List[Transaction] = Field(default_factory=list)
    last_month: List[Transaction] = Field(default_factory=list)
    last_30_days: List[Transaction] = Field(default_factory=list)
    last_7_days: List[Transaction] = Field(default_factory=list)
    prev_7_days: List[Transaction] = Field(default_factory=list)
    all: List[Transaction] = Field(default_factory=list)


class PeriodTotals(BaseModel):
    all: float = 0
    this_month: float = 0
    last_month: float = 0
    last_30_days: float = 0
    last_7_days: float = 0
    prev_7_days: float = 0


class CategoryTotals(BaseModel):
    this_month: Dict[str, float] = Field(default_factory=dict)
    last_month: Dict[str, float] = Field(default_factory=dict)
    last_30_days: Dict[str, float] = Field(default_factory=dict)


class DayOfWeekTotals(BaseModel):
    """Index 0 is Sunday."""
    totals: List[float] = Field(default_factory=lambda: [0.0] * 7)
    counts: List[int] = Field(default_factory=lambda: [0] * 7)


class CategoryAggregate(BaseModel):
    total: float = 0
    count: int = 0


class MerchantAggregate(BaseModel):
    merchant: str  # raw name of the first transaction seen
    category: str
    total: float = 0
    count: int = 0
    transactions: List[Transaction] = Field(default_factory=list)
    first_date: date
    last_date: date


class SnapshotMeta(BaseModel):
    count: int = 0
    earliest_date: Optional[date] = None
    latest_date: Optional[date] = None


class PreprocessedData(BaseModel):
    """Single-pass aggregation consumed by every downstream detector."""
    model_config = ConfigDict(frozen=True)

    boundaries: TimeBoundaries
    by_period: PeriodTransactions
    category_totals: CategoryTotals
    daily_totals: Dict[date, float]
    day_of_week: DayOfWeekTotals
    weekend_by_category: Dict[str, CategoryAggregate]
    weekday_by_category: Dict[str, CategoryAggregate]
    merchant_map: Dict[str, MerchantAggregate]
    totals: PeriodTotals
    meta: SnapshotMeta


# === Recurring patterns ===

class MerchantCluster(BaseModel):
    """Transactions judged to belong to the same payee."""
    key: str
    representative_name: str
    category: str
    transactions: List[Transaction] = Field(default_factory=list)

    @property
    def amounts(self) -> List[float]:
        return [t.amount for t in self.transactions]

    @property
    def dates(self) -> List[date]:
        return [t.transaction_date for t in self.transactions]


class RecurringPattern(BaseModel):
    merchant: str
    category: str
    average_amount: float
    frequency: Frequency
    interval_days: int
    last_date: date
    next_expected_date: date
    confidence: int = Field(ge=0, le=100)
    transactions: List[Transaction]
    total_spent_this_year: float
    missed_payment: bool = False


# === Budgets ===

class BudgetPrediction(BaseModel):
    category: str
    budget: float
    current_spent: float
    predicted_spent: float
    predicted_overage: float
    percentage_used: float
    days_remaining: int
    daily_average: float
    recommended_daily_limit: float
    status: BudgetStatus
    message: str


class AlertAction(BaseModel):
    label: str
    value: float


class BudgetAlert(BaseModel):
    id: str
    category: str
    kind: AlertKind
    severity: AlertSeverity
    title: str
    message: str
    action: Optional[AlertAction] = None


class SavingsOpportunity(BaseModel):
    category: str
    current_average: float
    potential_savings: float
    recommendation: str


class BudgetRecommendation(BaseModel):
    category: str
    suggested_amount: float
    current_amount: Optional[float] = None
    reasoning: str
    confidence: Literal["high", "medium", "low"]
    trend: Literal["increasing", "stable", "decreasing"]
    percent_change: float = 0


class CategorySpending(BaseModel):
    category: str
    monthly_average: float
    current_month_spending: float
    is_over_budget: bool = False


class BudgetAdjustment(BaseModel):
    needs_adjustment: bool
    categories: List[str] = Field(default_factory=list)
    reason: str


# === Insights ===

class Insight(BaseModel):
    kind: InsightKind
    category: Optional[str] = None
    title: str
    description: str
    value: Optional[float] = None
    change: Optional[float] = None


class CategoryTrend(BaseModel):
    category: str
    current_month: float
    previous_month: float
    change_percent: float
    trend: TrendDirection


class SpendingPattern(BaseModel):
    title: str
    description: str
    day: str
    multiplier: float
    averages: List[float]


class MerchantInsight(BaseModel):
    merchant: str
    category: str
    total_spent: float
    transaction_count: int
    average_amount: float
    first_transaction: date
    last_transaction: date
    monthly_average: float
    percent_of_total: float
