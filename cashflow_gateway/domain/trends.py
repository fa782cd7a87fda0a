"""Spending trend analysis - month-over-month changes and unusual categories"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from cashflow_gateway.domain.models import SpendingTrend, SpendingTrendsResult, Transaction, TransactionType, Trend
from cashflow_gateway.utils.date_utils import days_in_month, shift_month

STABLE_BAND_PERCENT = Decimal("5")
UNUSUAL_DEVIATION = Decimal("0.5")
TOP_CATEGORY_COUNT = 3
UNKNOWN_CATEGORY_NAME = "Uncategorized"

Month = Tuple[int, int]


@dataclass
class _CategoryTotals:
    name: str
    amount: Decimal = Decimal("0")
    count: int = 0


def calculate_percent_change(current: Decimal, previous: Decimal) -> Decimal:
    """Percent change from previous to current; +100 for new spending, 0 when both are zero"""
    if previous == 0:
        return Decimal("100") if current > 0 else Decimal("0")
    return (current - previous) / previous * 100


def determine_trend(percent_change: Decimal) -> Trend:
    if percent_change > STABLE_BAND_PERCENT:
        return Trend.INCREASING
    if percent_change < -STABLE_BAND_PERCENT:
        return Trend.DECREASING
    return Trend.STABLE


def is_unusual_spending(current: Decimal, three_month_average: Decimal) -> bool:
    """Spending deviating from the 3-month average by more than 50%"""
    if three_month_average == 0:
        return current > 0
    return abs(current - three_month_average) > UNUSUAL_DEVIATION * three_month_average


def spending_by_category(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> Dict[Optional[str], _CategoryTotals]:
    """Expense totals and counts per category for one calendar month, in first-seen order"""
    totals: Dict[Optional[str], _CategoryTotals] = {}

    for txn in transactions:
        if txn.type != TransactionType.EXPENSE:
            continue
        when = txn.transaction_date
        if (when.year, when.month) != (year, month):
            continue

        entry = totals.get(txn.category_id)
        if entry is None:
            entry = totals[txn.category_id] = _CategoryTotals(name=txn.category_name or UNKNOWN_CATEGORY_NAME)
        entry.amount += txn.magnitude
        entry.count += 1

    return totals


def _monthly_amounts(transactions: List[Transaction], months: List[Month]) -> Dict[Month, Dict[Optional[str], Decimal]]:
    wanted = set(months)
    amounts: Dict[Month, Dict[Optional[str], Decimal]] = {m: defaultdict(Decimal) for m in months}

    for txn in transactions:
        if txn.type != TransactionType.EXPENSE:
            continue
        key = (txn.transaction_date.year, txn.transaction_date.month)
        if key in wanted:
            amounts[key][txn.category_id] += txn.magnitude

    return amounts


def calculate_spending_trends(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> SpendingTrendsResult:
    """
    Analyze category spending for a month against the previous months.

    Flow:
    1. Expense totals per category for the target and previous month
    2. Percent change and trend direction per category
    3. 3-month average (target + two preceding months, empty months count as zero)
    4. Flag categories deviating more than 50% from their average
    5. Rank by current spend, pick the top 3, collect the unusual ones

    Args:
        transactions: Historical transactions with category information
        year: Year to analyze
        month: Month to analyze (1-12)
    """
    transactions = list(transactions)

    previous = shift_month(year, month, -1)
    window = [(year, month), previous, shift_month(year, month, -2)]

    current_totals = spending_by_category(transactions, year, month)
    previous_totals = spending_by_category(transactions, *previous)
    monthly = _monthly_amounts(transactions, window)

    category_ids = list(current_totals)
    category_ids += [cid for cid in previous_totals if cid not in current_totals]

    trends: List[SpendingTrend] = []
    for category_id in category_ids:
        current_entry = current_totals.get(category_id)
        previous_entry = previous_totals.get(category_id)

        current_amount = current_entry.amount if current_entry else Decimal("0")
        previous_amount = previous_entry.amount if previous_entry else Decimal("0")
        name = (current_entry or previous_entry).name

        three_month_average = sum((monthly[m][category_id] for m in window), Decimal("0")) / 3
        percent_change = calculate_percent_change(current_amount, previous_amount)

        trends.append(
            SpendingTrend(
                category_id=category_id,
                category_name=name,
                current_month=current_amount,
                previous_month=previous_amount,
                percent_change=percent_change,
                trend=determine_trend(percent_change),
                three_month_average=three_month_average,
                transaction_count=current_entry.count if current_entry else 0,
                is_unusual=is_unusual_spending(current_amount, three_month_average),
            )
        )

    trends.sort(key=lambda t: t.current_month, reverse=True)

    total_current = sum((t.current_month for t in trends), Decimal("0"))
    total_previous = sum((t.previous_month for t in trends), Decimal("0"))

    return SpendingTrendsResult(
        trends=trends,
        total_current_month=total_current,
        total_previous_month=total_previous,
        overall_percent_change=calculate_percent_change(total_current, total_previous),
        top_categories=trends[:TOP_CATEGORY_COUNT],
        unusual_categories=[t for t in trends if t.is_unusual],
        average_daily_spending=total_current / days_in_month(year, month),
    )
