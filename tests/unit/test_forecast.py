"""Unit tests for the daily forecast engine"""

from datetime import date, timedelta
from decimal import Decimal

from cashflow_gateway.domain.forecast import (
    calculate_daily_forecast,
    determine_forecast_confidence,
    determine_risk_level,
)
from cashflow_gateway.domain.models import (
    Confidence,
    ForecastSettings,
    RiskLevel,
    TransactionStatus,
    TransactionType,
)

TODAY = date(2026, 3, 10)


def _forecast(history, planned=(), balance=10000, start=TODAY, end=TODAY + timedelta(days=9), settings=None):
    return calculate_daily_forecast(
        Decimal(str(balance)),
        history,
        list(planned),
        start,
        end,
        settings or ForecastSettings(),
        today=TODAY,
    )


def test_one_forecast_per_day_in_order(daily_history):
    """Test inclusive range produces one ascending entry per calendar day"""
    result = _forecast(daily_history(30), start=date(2026, 3, 1), end=date(2026, 3, 31))

    assert len(result.forecasts) == 31
    assert result.forecasts[0].date == date(2026, 3, 1)
    assert result.forecasts[-1].date == date(2026, 3, 31)
    assert all(a.date < b.date for a, b in zip(result.forecasts, result.forecasts[1:]))


def test_balance_chain_is_contiguous(daily_history, make_transaction):
    """Test each day starts where the previous one ended"""
    planned = [
        make_transaction(1500, TODAY + timedelta(days=3), type=TransactionType.INCOME, status=TransactionStatus.PLANNED),
        make_transaction(800, TODAY + timedelta(days=5), status=TransactionStatus.PLANNED),
    ]
    result = _forecast(daily_history(30), planned, end=TODAY + timedelta(days=20))

    assert result.forecasts[0].breakdown.starting_balance == 10000
    for current, following in zip(result.forecasts, result.forecasts[1:]):
        assert current.breakdown.ending_balance == following.breakdown.starting_balance
        assert current.projected_balance == current.breakdown.ending_balance


def test_conservative_multiplier_applied_every_day(daily_history):
    """Test 100/day history is projected as 110/day"""
    result = _forecast(daily_history(30, amount=100))

    assert result.average_daily_spending == 100
    assert result.conservative_daily_spending == 110
    assert all(f.breakdown.estimated_daily_spending == 110 for f in result.forecasts)
    assert result.forecasts[0].breakdown.ending_balance == 10000 - 110
    assert result.forecasts[-1].breakdown.ending_balance == 10000 - 110 * 10


def test_planned_transactions_applied_on_their_date(daily_history, make_transaction):
    """Test planned income/expenses land on their planned date; transfers are ignored"""
    payday = TODAY + timedelta(days=2)
    planned = [
        make_transaction(2000, payday, type=TransactionType.INCOME, status=TransactionStatus.PLANNED),
        make_transaction(300, payday, status=TransactionStatus.PLANNED),
        make_transaction(200, payday, status=TransactionStatus.PLANNED),
        make_transaction(999, payday, type=TransactionType.TRANSFER_OUT, status=TransactionStatus.PLANNED),
        make_transaction(
            700,
            TODAY,
            status=TransactionStatus.PLANNED,
            planned_date=TODAY + timedelta(days=4),
        ),
    ]
    result = _forecast(daily_history(30, amount=100), planned)

    day = result.forecasts[2].breakdown
    assert day.planned_income == 2000
    assert day.planned_expenses == 500
    assert day.ending_balance == day.starting_balance + 2000 - 500 - 110

    # planned_date takes precedence over transaction_date
    assert result.forecasts[0].breakdown.planned_expenses == 0
    assert result.forecasts[4].breakdown.planned_expenses == 700


def test_risk_levels_follow_thresholds(daily_history, make_transaction):
    """Test danger below minimum, warning below buffer, safe otherwise"""
    settings = ForecastSettings(minimum_safe_balance=Decimal("200"), safety_buffer_days=7)
    # Buffer = 110 * 7 = 770
    planned = [make_transaction(8500, TODAY + timedelta(days=1), status=TransactionStatus.PLANNED)]
    result = _forecast(daily_history(30, amount=100), planned, balance=10000, settings=settings)

    levels = [f.risk_level for f in result.forecasts]
    # Day 0: 9890 safe; day 1: 9890 - 8500 - 110 = 1280 safe; then 1170, 1060, 950, 840, 730 ...
    assert levels[0] == RiskLevel.SAFE
    assert levels[1] == RiskLevel.SAFE
    assert levels[6] == RiskLevel.WARNING
    assert result.forecasts[6].breakdown.ending_balance == Decimal("730")
    # Day 12: 10000 - 8500 - 110 * 13 = 70, below the 200 minimum
    far = _forecast(daily_history(30, amount=100), planned, balance=10000, settings=settings, end=TODAY + timedelta(days=15))
    assert far.forecasts[12].risk_level == RiskLevel.DANGER
    assert "Balance below minimum safe balance of 200.00" in far.forecasts[12].warnings


def test_negative_starting_balance_is_danger(daily_history):
    """Test overdrawn accounts are projected as danger with a warning"""
    result = _forecast(daily_history(30), balance=-50)

    assert all(f.risk_level == RiskLevel.DANGER for f in result.forecasts)
    assert "Projected balance is negative" in result.forecasts[0].warnings


def test_risk_is_monotonic_in_balance():
    """Test lower balances never get a less severe risk level"""
    settings = ForecastSettings(minimum_safe_balance=Decimal("500"), safety_buffer_days=7)
    balances = [Decimal(b) for b in range(3000, -1000, -50)]

    severity = {RiskLevel.SAFE: 0, RiskLevel.WARNING: 1, RiskLevel.DANGER: 2}
    severities = [severity[determine_risk_level(b, settings, Decimal("110"))] for b in balances]

    assert severities == sorted(severities)
    assert severities[0] == 0
    assert severities[-1] == 2


def test_confidence_degrades_with_distance(daily_history):
    """Test near-term high, mid-term medium, long-term low"""
    result = _forecast(daily_history(60), end=TODAY + timedelta(days=40))

    by_offset = {(f.date - TODAY).days: f.confidence for f in result.forecasts}
    assert by_offset[0] == Confidence.HIGH
    assert by_offset[14] == Confidence.HIGH
    assert by_offset[15] == Confidence.MEDIUM
    assert by_offset[30] == Confidence.MEDIUM
    assert by_offset[31] == Confidence.LOW
    assert by_offset[40] == Confidence.LOW


def test_medium_spending_confidence_caps_near_term():
    """Test near-term days inherit a medium spending confidence"""
    assert determine_forecast_confidence(TODAY, TODAY, Confidence.MEDIUM) == Confidence.MEDIUM
    assert determine_forecast_confidence(TODAY + timedelta(days=20), TODAY, Confidence.MEDIUM) == Confidence.MEDIUM
    assert determine_forecast_confidence(TODAY, TODAY, Confidence.LOW) == Confidence.LOW
    assert determine_forecast_confidence(TODAY, TODAY, Confidence.NONE) == Confidence.LOW


def test_empty_history_still_forecasts_but_hides(make_transaction):
    """Test no history: zero spending, forecasts generated, not displayed"""
    planned = [make_transaction(100, TODAY + timedelta(days=1), status=TransactionStatus.PLANNED)]
    result = _forecast([], planned, balance=1000)

    assert result.should_display is False
    assert result.spending_confidence == Confidence.NONE
    assert result.average_daily_spending == 0
    assert len(result.forecasts) == 10
    assert result.forecasts[-1].breakdown.ending_balance == 900
    assert all(f.confidence == Confidence.LOW for f in result.forecasts)


def test_short_history_is_hidden(daily_history):
    """Test fewer than 14 days of history is not displayed"""
    assert _forecast(daily_history(13)).should_display is False
    assert _forecast(daily_history(14)).should_display is True


def test_end_before_start_yields_no_days(daily_history):
    """Test inverted window produces an empty forecast rather than an error"""
    result = _forecast(daily_history(30), start=TODAY, end=TODAY - timedelta(days=1))

    assert result.forecasts == []


def test_accepts_iso_date_strings(daily_history):
    """Test window bounds given as YYYY-MM-DD strings"""
    result = _forecast(daily_history(30), start="2026-02-01", end="2026-02-28")

    assert len(result.forecasts) == 28
    assert result.forecasts[0].date == date(2026, 2, 1)


def test_forecast_is_deterministic(daily_history, make_transaction):
    """Test identical inputs produce identical forecasts"""
    history = daily_history(40)
    planned = [make_transaction(500, TODAY + timedelta(days=3), status=TransactionStatus.PLANNED)]

    assert _forecast(history, planned) == _forecast(history, planned)
