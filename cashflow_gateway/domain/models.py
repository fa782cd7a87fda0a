"""Domain models - pure Python dataclasses representing forecasting entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PLANNED = "planned"


class Confidence(str, Enum):
    """Data quality behind a spending estimate or a single forecast day"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class RiskLevel(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class Transaction:
    """Completed or planned account transaction"""

    amount: Decimal
    description: str
    type: TransactionType
    status: TransactionStatus
    transaction_date: date
    planned_date: Optional[date] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None

    @property
    def effective_date(self) -> date:
        """Date a planned transaction hits the account (planned date wins)"""
        return self.planned_date or self.transaction_date

    @property
    def magnitude(self) -> Decimal:
        return abs(Decimal(str(self.amount)))


@dataclass
class SpendingEstimate:
    """Robust average daily spend derived from history"""

    average_daily_spending: Decimal
    confidence: Confidence
    days_analyzed: int
    transaction_count: int
    excluded_count: int
    total_spending: Decimal
    median_amount: Decimal


@dataclass
class ForecastSettings:
    """User thresholds applied to a forecast"""

    minimum_safe_balance: Decimal = Decimal("0")
    safety_buffer_days: int = 7


@dataclass
class DailyBreakdown:
    starting_balance: Decimal
    planned_income: Decimal
    planned_expenses: Decimal
    estimated_daily_spending: Decimal
    ending_balance: Decimal


@dataclass
class DailyForecast:
    """Projected end-of-day balance for one calendar day"""

    date: date
    projected_balance: Decimal
    confidence: Confidence
    risk_level: RiskLevel
    breakdown: DailyBreakdown
    warnings: List[str] = field(default_factory=list)


@dataclass
class ForecastResult:
    """Daily forecasts plus the spending figures they were built from"""

    forecasts: List[DailyForecast]
    average_daily_spending: Decimal
    conservative_daily_spending: Decimal
    spending_confidence: Confidence
    days_analyzed: int
    should_display: bool


@dataclass
class PaymentRisk:
    """Affordability of a single planned expense"""

    transaction: Transaction
    days_until: int
    projected_balance_at_date: Decimal
    balance_after_payment: Decimal
    risk_level: RiskLevel
    recommendation: str
    can_afford: bool


@dataclass
class SpendingTrend:
    """Month-over-month spending for one category"""

    category_id: Optional[str]
    category_name: str
    current_month: Decimal
    previous_month: Decimal
    percent_change: Decimal
    trend: Trend
    three_month_average: Decimal
    transaction_count: int
    is_unusual: bool


@dataclass
class SpendingTrendsResult:
    trends: List[SpendingTrend]
    total_current_month: Decimal
    total_previous_month: Decimal
    overall_percent_change: Decimal
    top_categories: List[SpendingTrend]
    unusual_categories: List[SpendingTrend]
    average_daily_spending: Decimal


@dataclass
class CompleteForecast:
    """Forecast for an account as served by the forecast service"""

    forecast: ForecastResult
    payment_risks: List[PaymentRisk]
    current_balance: Decimal
    settings: ForecastSettings
    calculated_at: datetime
