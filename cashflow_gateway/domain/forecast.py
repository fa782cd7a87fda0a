"""Daily cash flow forecast engine - projects balances with risk classification"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple, Union

from cashflow_gateway.domain.models import (
    Confidence,
    DailyBreakdown,
    DailyForecast,
    ForecastResult,
    ForecastSettings,
    RiskLevel,
    Transaction,
    TransactionType,
)
from cashflow_gateway.domain.spending import DEFAULT_OUTLIER_THRESHOLD, calculate_average_daily_spending
from cashflow_gateway.utils.date_utils import generate_date_range, parse_date

# Projected spend is overestimated by 10% so shortfalls show up early
CONSERVATIVE_MULTIPLIER = Decimal("1.1")

NEAR_TERM_DAYS = 14
MID_TERM_DAYS = 30

_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


def determine_risk_level(
    ending_balance: Decimal,
    settings: ForecastSettings,
    daily_spending: Decimal,
) -> RiskLevel:
    """
    Classify an end-of-day balance.

    - below minimum safe balance:              danger
    - below daily_spending * safety buffer:    warning
    - otherwise:                               safe
    """
    if ending_balance < settings.minimum_safe_balance:
        return RiskLevel.DANGER
    if ending_balance < daily_spending * settings.safety_buffer_days:
        return RiskLevel.WARNING
    return RiskLevel.SAFE


def determine_forecast_confidence(day: date, today: date, spending_confidence: Confidence) -> Confidence:
    """Confidence for a single day, degrading with distance from today"""
    if spending_confidence in (Confidence.NONE, Confidence.LOW):
        return Confidence.LOW

    days_ahead = (day - today).days
    if days_ahead > MID_TERM_DAYS:
        return Confidence.LOW
    if days_ahead > NEAR_TERM_DAYS:
        cap = Confidence.MEDIUM
    else:
        cap = Confidence.HIGH

    if _CONFIDENCE_RANK[spending_confidence] < _CONFIDENCE_RANK[cap]:
        return spending_confidence
    return cap


def build_warnings(
    ending_balance: Decimal,
    settings: ForecastSettings,
    daily_spending: Decimal,
) -> List[str]:
    warnings = []
    if ending_balance < 0:
        warnings.append("Projected balance is negative")
    if ending_balance < settings.minimum_safe_balance:
        warnings.append(f"Balance below minimum safe balance of {settings.minimum_safe_balance:.2f}")
    elif ending_balance < daily_spending * settings.safety_buffer_days:
        warnings.append(f"Balance below {settings.safety_buffer_days}-day safety buffer")
    return warnings


def _sum_planned_by_day(planned_transactions: Iterable[Transaction]) -> Dict[date, Tuple[Decimal, Decimal]]:
    """Group planned income and expenses by effective date; transfers are ignored"""
    income: Dict[date, Decimal] = defaultdict(Decimal)
    expenses: Dict[date, Decimal] = defaultdict(Decimal)

    for txn in planned_transactions:
        if txn.type == TransactionType.INCOME:
            income[txn.effective_date] += txn.magnitude
        elif txn.type == TransactionType.EXPENSE:
            expenses[txn.effective_date] += txn.magnitude
        elif txn.type in (TransactionType.TRANSFER_IN, TransactionType.TRANSFER_OUT):
            continue
        else:
            raise ValueError(f"Unhandled transaction type: {txn.type!r}")

    days = set(income) | set(expenses)
    return {day: (income.get(day, Decimal("0")), expenses.get(day, Decimal("0"))) for day in days}


def calculate_daily_forecast(
    current_balance: Decimal,
    historical_transactions: Iterable[Transaction],
    planned_transactions: Iterable[Transaction],
    start_date: Union[str, date],
    end_date: Union[str, date],
    settings: ForecastSettings,
    today: date,
    outlier_threshold: Decimal | float | int = DEFAULT_OUTLIER_THRESHOLD,
) -> ForecastResult:
    """
    Project the account balance for every day from start_date to end_date (inclusive).

    Flow:
    1. Estimate average daily spending from history (outliers excluded)
    2. Apply the 1.1x conservative multiplier
    3. Walk each day: starting balance + planned income - planned expenses - daily spend
    4. Classify risk against the user's thresholds and degrade confidence with distance

    Forecasts are generated even when history is too thin; should_display tells
    the caller whether to show them.
    """
    estimate = calculate_average_daily_spending(historical_transactions, outlier_threshold)
    conservative_spending = estimate.average_daily_spending * CONSERVATIVE_MULTIPLIER

    planned_by_day = _sum_planned_by_day(planned_transactions)
    start = parse_date(start_date)
    end = parse_date(end_date)

    forecasts: List[DailyForecast] = []
    running_balance = Decimal(str(current_balance))

    for day in generate_date_range(start, end):
        planned_income, planned_expenses = planned_by_day.get(day, (Decimal("0"), Decimal("0")))

        starting_balance = running_balance
        ending_balance = starting_balance + planned_income - planned_expenses - conservative_spending

        forecasts.append(
            DailyForecast(
                date=day,
                projected_balance=ending_balance,
                confidence=determine_forecast_confidence(day, today, estimate.confidence),
                risk_level=determine_risk_level(ending_balance, settings, conservative_spending),
                breakdown=DailyBreakdown(
                    starting_balance=starting_balance,
                    planned_income=planned_income,
                    planned_expenses=planned_expenses,
                    estimated_daily_spending=conservative_spending,
                    ending_balance=ending_balance,
                ),
                warnings=build_warnings(ending_balance, settings, conservative_spending),
            )
        )

        running_balance = ending_balance

    should_display = estimate.confidence in (Confidence.HIGH, Confidence.MEDIUM)

    return ForecastResult(
        forecasts=forecasts,
        average_daily_spending=estimate.average_daily_spending,
        conservative_daily_spending=conservative_spending,
        spending_confidence=estimate.confidence,
        days_analyzed=estimate.days_analyzed,
        should_display=should_display,
    )
