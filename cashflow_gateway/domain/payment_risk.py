"""Payment risk assessment for upcoming planned expenses"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Sequence, Union

from cashflow_gateway.domain.models import DailyForecast, PaymentRisk, RiskLevel, Transaction, TransactionType
from cashflow_gateway.utils.date_utils import format_short_date

DEFAULT_CURRENCY_SYMBOL = "₴"

MISSING_FORECAST_RECOMMENDATION = "Unable to calculate - insufficient forecast data"

ForecastLookup = Union[Sequence[DailyForecast], Mapping[date, DailyForecast]]


def _index_forecasts(daily_forecasts: ForecastLookup) -> Mapping[date, DailyForecast]:
    if isinstance(daily_forecasts, Mapping):
        return daily_forecasts

    index: Dict[date, DailyForecast] = {}
    for forecast in daily_forecasts:
        index.setdefault(forecast.date, forecast)
    return index


def assess_payment(
    transaction: Transaction,
    forecast: DailyForecast | None,
    average_daily_spending: Decimal,
    today: date,
    safety_buffer_days: int = 7,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> PaymentRisk:
    """
    Assess one planned expense against the forecast for its due date.

    Uses the balance at the start of the due day so the payment, which is already
    part of that day's planned expenses, is not counted twice.
    """
    payment_date = transaction.effective_date
    days_until = (payment_date - today).days
    amount = transaction.magnitude

    if forecast is None:
        return PaymentRisk(
            transaction=transaction,
            days_until=days_until,
            projected_balance_at_date=Decimal("0"),
            balance_after_payment=-amount,
            risk_level=RiskLevel.DANGER,
            recommendation=MISSING_FORECAST_RECOMMENDATION,
            can_afford=False,
        )

    projected_balance = forecast.breakdown.starting_balance
    balance_after_payment = projected_balance - amount
    safety_buffer = average_daily_spending * safety_buffer_days

    if balance_after_payment < 0:
        risk_level = RiskLevel.DANGER
        recommendation = (
            f"Insufficient funds. Need {currency_symbol}{abs(balance_after_payment):.2f} "
            f"more by {format_short_date(payment_date)}."
        )
    elif balance_after_payment < safety_buffer:
        risk_level = RiskLevel.WARNING
        recommendation = (
            f"Balance will be tight. Only {currency_symbol}{balance_after_payment:.2f} remaining "
            f"after payment (less than {safety_buffer_days}-day buffer)."
        )
    else:
        risk_level = RiskLevel.SAFE
        recommendation = (
            f"Sufficient funds available. {currency_symbol}{balance_after_payment:.2f} remaining after payment."
        )

    return PaymentRisk(
        transaction=transaction,
        days_until=days_until,
        projected_balance_at_date=projected_balance,
        balance_after_payment=balance_after_payment,
        risk_level=risk_level,
        recommendation=recommendation,
        can_afford=risk_level != RiskLevel.DANGER,
    )


def assess_payment_risks(
    planned_transactions: Iterable[Transaction],
    daily_forecasts: ForecastLookup,
    average_daily_spending: Decimal,
    today: date,
    safety_buffer_days: int = 7,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> List[PaymentRisk]:
    """
    Assess every planned expense and order them by urgency.

    Requirements:
    - Expenses only; income and transfers are not obligations
    - A payment with no forecast for its date is flagged danger rather than dropped
    - Sorted soonest first; payments due the same day keep their input order

    Args:
        planned_transactions: Planned transactions to assess
        daily_forecasts: Forecast sequence or a date -> forecast mapping
        average_daily_spending: Estimated daily spend before the conservative multiplier
        today: Reference date for days_until
        safety_buffer_days: Days of spending to keep in reserve after a payment

    Returns:
        List of PaymentRisk sorted by days_until ascending
    """
    forecast_index = _index_forecasts(daily_forecasts)

    risks = [
        assess_payment(
            txn,
            forecast_index.get(txn.effective_date),
            average_daily_spending,
            today,
            safety_buffer_days,
            currency_symbol,
        )
        for txn in planned_transactions
        if txn.type == TransactionType.EXPENSE
    ]

    # sorted() is stable, so equal days_until keep input order
    return sorted(risks, key=lambda risk: risk.days_until)
