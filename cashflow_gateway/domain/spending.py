"""Average daily spending estimator with outlier exclusion"""

from decimal import Decimal
from typing import Iterable, List, Sequence

from cashflow_gateway.domain.models import Confidence, SpendingEstimate, Transaction, TransactionType
from cashflow_gateway.utils.date_utils import inclusive_day_span

DEFAULT_OUTLIER_THRESHOLD = Decimal("3")

# Minimum history (in days) for each confidence band
HIGH_CONFIDENCE_DAYS = 30
MEDIUM_CONFIDENCE_DAYS = 14


def calculate_median(values: Sequence[Decimal]) -> Decimal:
    """Median of values, 0 for an empty sequence"""
    if not values:
        return Decimal("0")

    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def determine_confidence(days_analyzed: int) -> Confidence:
    """
    Map history length to a confidence band.

    - 30+ days:  high
    - 14-29:     medium
    - under 14:  none (figure is still returned, but should not drive decisions)
    """
    if days_analyzed >= HIGH_CONFIDENCE_DAYS:
        return Confidence.HIGH
    if days_analyzed >= MEDIUM_CONFIDENCE_DAYS:
        return Confidence.MEDIUM
    return Confidence.NONE


def calculate_average_daily_spending(
    transactions: Iterable[Transaction],
    outlier_threshold: Decimal | float | int = DEFAULT_OUTLIER_THRESHOLD,
) -> SpendingEstimate:
    """
    Estimate routine daily spend from historical transactions.

    Requirements:
    - Expense transactions only (income and transfers ignored)
    - Transactions above median * outlier_threshold are one-off purchases and excluded
    - If every transaction is excluded, fall back to the full set with reduced confidence
    - Days analyzed is the inclusive span of transaction dates, gaps included

    Args:
        transactions: Historical transactions, already restricted to the lookback window
        outlier_threshold: Median multiplier above which a transaction is an outlier

    Returns:
        SpendingEstimate with the average and the data behind it
    """
    expenses: List[Transaction] = [t for t in transactions if t.type == TransactionType.EXPENSE]

    if not expenses:
        return SpendingEstimate(
            average_daily_spending=Decimal("0"),
            confidence=Confidence.NONE,
            days_analyzed=0,
            transaction_count=0,
            excluded_count=0,
            total_spending=Decimal("0"),
            median_amount=Decimal("0"),
        )

    dates = [t.transaction_date for t in expenses]
    days_analyzed = inclusive_day_span(min(dates), max(dates))

    amounts = [t.magnitude for t in expenses]
    median_amount = calculate_median(amounts)
    cutoff = median_amount * Decimal(str(outlier_threshold))
    included = [amount for amount in amounts if amount <= cutoff]

    confidence = determine_confidence(days_analyzed)

    # Everything looked like an outlier: keep the data, trust it less
    if not included:
        included = amounts
        if confidence != Confidence.NONE:
            confidence = Confidence.LOW

    total_spending = sum(included, Decimal("0"))

    return SpendingEstimate(
        average_daily_spending=total_spending / days_analyzed,
        confidence=confidence,
        days_analyzed=days_analyzed,
        transaction_count=len(included),
        excluded_count=len(amounts) - len(included),
        total_spending=total_spending,
        median_amount=median_amount,
    )
