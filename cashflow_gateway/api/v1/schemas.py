"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from cashflow_gateway.domain import models as domain


# Same precision as the Numeric(14, 2) money columns
MONEY_MAX_DIGITS = 14
MONEY_DECIMAL_PLACES = 2


def money(value: Decimal) -> float:
    """Round a Decimal amount to cents for JSON output"""
    return float(round(value, 2))


class TransactionSchema(BaseModel):
    """Transaction as accepted by the calculation endpoints"""

    amount: Decimal = Field(
        ...,
        ge=0,
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        description="Transaction amount (magnitude)",
    )
    description: str = ""
    type: domain.TransactionType
    status: domain.TransactionStatus = domain.TransactionStatus.COMPLETED
    transaction_date: date
    planned_date: Optional[date] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None

    def to_domain(self) -> domain.Transaction:
        return domain.Transaction(
            amount=self.amount,
            description=self.description,
            type=self.type,
            status=self.status,
            transaction_date=self.transaction_date,
            planned_date=self.planned_date,
            category_id=self.category_id,
            category_name=self.category_name,
        )

    @classmethod
    def from_domain(cls, txn: domain.Transaction) -> "TransactionSchema":
        return cls(
            amount=txn.amount,
            description=txn.description,
            type=txn.type,
            status=txn.status,
            transaction_date=txn.transaction_date,
            planned_date=txn.planned_date,
            category_id=txn.category_id,
            category_name=txn.category_name,
        )


class ForecastSettingsSchema(BaseModel):
    minimum_safe_balance: Decimal = Field(
        Decimal("0"), max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES
    )
    safety_buffer_days: int = Field(7, ge=0, le=365)


class ForecastRequest(BaseModel):
    """Request body for POST /v1/forecast"""

    current_balance: Decimal = Field(..., max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    historical_transactions: List[TransactionSchema] = []
    planned_transactions: List[TransactionSchema] = []
    start_date: date
    end_date: date
    settings: ForecastSettingsSchema = ForecastSettingsSchema()
    today: Optional[date] = Field(None, description="Reference date; defaults to the server's current date")
    outlier_threshold: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_window(self) -> "ForecastRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if (self.end_date - self.start_date).days > 366:
            raise ValueError("forecast window is limited to one year")
        return self


class BreakdownSchema(BaseModel):
    starting_balance: float
    planned_income: float
    planned_expenses: float
    estimated_daily_spending: float
    ending_balance: float


class DailyForecastSchema(BaseModel):
    date: date
    projected_balance: float
    confidence: domain.Confidence
    risk_level: domain.RiskLevel
    breakdown: BreakdownSchema
    warnings: List[str]

    @classmethod
    def from_domain(cls, forecast: domain.DailyForecast) -> "DailyForecastSchema":
        b = forecast.breakdown
        return cls(
            date=forecast.date,
            projected_balance=money(forecast.projected_balance),
            confidence=forecast.confidence,
            risk_level=forecast.risk_level,
            breakdown=BreakdownSchema(
                starting_balance=money(b.starting_balance),
                planned_income=money(b.planned_income),
                planned_expenses=money(b.planned_expenses),
                estimated_daily_spending=money(b.estimated_daily_spending),
                ending_balance=money(b.ending_balance),
            ),
            warnings=list(forecast.warnings),
        )


class PaymentRiskSchema(BaseModel):
    transaction: TransactionSchema
    days_until: int
    projected_balance_at_date: float
    balance_after_payment: float
    risk_level: domain.RiskLevel
    recommendation: str
    can_afford: bool

    @classmethod
    def from_domain(cls, risk: domain.PaymentRisk) -> "PaymentRiskSchema":
        return cls(
            transaction=TransactionSchema.from_domain(risk.transaction),
            days_until=risk.days_until,
            projected_balance_at_date=money(risk.projected_balance_at_date),
            balance_after_payment=money(risk.balance_after_payment),
            risk_level=risk.risk_level,
            recommendation=risk.recommendation,
            can_afford=risk.can_afford,
        )


class ForecastResponse(BaseModel):
    """Response for forecast endpoints"""

    daily_forecasts: List[DailyForecastSchema]
    payment_risks: List[PaymentRiskSchema]
    average_daily_spending: float
    conservative_daily_spending: float
    spending_confidence: domain.Confidence
    days_analyzed: int
    should_display: bool
    current_balance: float
    minimum_safe_balance: float
    safety_buffer_days: int
    calculated_at: datetime

    @classmethod
    def build(
        cls,
        result: domain.ForecastResult,
        payment_risks: List[domain.PaymentRisk],
        current_balance: Decimal,
        settings: domain.ForecastSettings,
        calculated_at: datetime,
    ) -> "ForecastResponse":
        return cls(
            daily_forecasts=[DailyForecastSchema.from_domain(f) for f in result.forecasts],
            payment_risks=[PaymentRiskSchema.from_domain(r) for r in payment_risks],
            average_daily_spending=money(result.average_daily_spending),
            conservative_daily_spending=money(result.conservative_daily_spending),
            spending_confidence=result.spending_confidence,
            days_analyzed=result.days_analyzed,
            should_display=result.should_display,
            current_balance=money(current_balance),
            minimum_safe_balance=money(settings.minimum_safe_balance),
            safety_buffer_days=settings.safety_buffer_days,
            calculated_at=calculated_at,
        )


class SpendingTrendsRequest(BaseModel):
    """Request body for POST /v1/spending-trends"""

    transactions: List[TransactionSchema] = []
    year: int = Field(..., ge=1900, le=9999)
    month: int = Field(..., ge=1, le=12)


class SpendingTrendSchema(BaseModel):
    category_id: Optional[str]
    category_name: str
    current_month: float
    previous_month: float
    percent_change: float
    trend: domain.Trend
    three_month_average: float
    transaction_count: int
    is_unusual: bool

    @classmethod
    def from_domain(cls, trend: domain.SpendingTrend) -> "SpendingTrendSchema":
        return cls(
            category_id=trend.category_id,
            category_name=trend.category_name,
            current_month=money(trend.current_month),
            previous_month=money(trend.previous_month),
            percent_change=money(trend.percent_change),
            trend=trend.trend,
            three_month_average=money(trend.three_month_average),
            transaction_count=trend.transaction_count,
            is_unusual=trend.is_unusual,
        )


class SpendingTrendsResponse(BaseModel):
    year: int
    month: int
    trends: List[SpendingTrendSchema]
    total_current_month: float
    total_previous_month: float
    overall_percent_change: float
    top_categories: List[SpendingTrendSchema]
    unusual_categories: List[SpendingTrendSchema]
    average_daily_spending: float

    @classmethod
    def build(cls, year: int, month: int, result: domain.SpendingTrendsResult) -> "SpendingTrendsResponse":
        return cls(
            year=year,
            month=month,
            trends=[SpendingTrendSchema.from_domain(t) for t in result.trends],
            total_current_month=money(result.total_current_month),
            total_previous_month=money(result.total_previous_month),
            overall_percent_change=money(result.overall_percent_change),
            top_categories=[SpendingTrendSchema.from_domain(t) for t in result.top_categories],
            unusual_categories=[SpendingTrendSchema.from_domain(t) for t in result.unusual_categories],
            average_daily_spending=money(result.average_daily_spending),
        )


class CacheInvalidationResponse(BaseModel):
    workspace_id: Optional[str] = None
    account_id: Optional[str] = None
    entries_cleared: int
