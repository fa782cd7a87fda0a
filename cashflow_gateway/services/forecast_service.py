"""Forecast service - fetches account data, runs the calculations, caches results"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from cashflow_gateway.config import settings as app_settings
from cashflow_gateway.domain.exceptions import InvalidForecastWindowError
from cashflow_gateway.domain.forecast import calculate_daily_forecast
from cashflow_gateway.domain.models import CompleteForecast, ForecastSettings, SpendingTrendsResult
from cashflow_gateway.domain.payment_risk import assess_payment_risks
from cashflow_gateway.domain.trends import calculate_spending_trends
from cashflow_gateway.infrastructure.cache.forecast_cache import ForecastCache
from cashflow_gateway.infrastructure.database.repositories import (
    AccountRepository,
    SettingsRepository,
    TransactionRepository,
)
from cashflow_gateway.infrastructure.observability.metrics import (
    forecast_latency_histogram,
    record_forecast,
    record_payment_risks,
    spending_trends_counter,
)
from cashflow_gateway.utils.date_utils import month_bounds, shift_month

# Trend analysis needs the target month plus three before it
TREND_HISTORY_MONTHS = 3


def month_window(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a month; InvalidForecastWindowError for impossible months"""
    if not 1 <= month <= 12:
        raise InvalidForecastWindowError(f"Month must be between 1 and 12, got {month}")
    try:
        return month_bounds(year, month)
    except ValueError as e:
        raise InvalidForecastWindowError(f"Invalid period {year}-{month}: {e}") from e


class ForecastService:
    """
    Account-level forecasting on top of the pure calculation functions.

    Flow for get_forecast:
    1. Serve from cache when a fresh entry exists
    2. Fetch history (lookback window), planned transactions, settings and balance
    3. Calculate the daily forecast
    4. Assess planned payments when the forecast is displayable
    5. Cache and return the complete forecast
    """

    def __init__(self, db: Session, cache: ForecastCache, today: date):
        self.transactions = TransactionRepository(db)
        self.accounts = AccountRepository(db)
        self.settings = SettingsRepository(db)
        self.cache = cache
        self.today = today

    def default_settings(self) -> ForecastSettings:
        return ForecastSettings(
            minimum_safe_balance=Decimal(app_settings.default_minimum_safe_balance),
            safety_buffer_days=app_settings.default_safety_buffer_days,
        )

    def get_forecast(
        self,
        workspace_id: str,
        account_id: str,
        start: date,
        end: date,
        minimum_safe_balance: Optional[Decimal] = None,
        safety_buffer_days: Optional[int] = None,
    ) -> CompleteForecast:
        if end < start:
            raise InvalidForecastWindowError(f"Forecast end {end} is before start {start}")

        overridden = minimum_safe_balance is not None or safety_buffer_days is not None
        if not overridden:
            cached = self.cache.get(workspace_id, account_id, start, end)
            if cached is not None:
                logging.info(
                    "Forecast served from cache",
                    extra={"workspace_id": workspace_id, "account_id": account_id, **self.cache.stats()},
                )
                return cached

        logging.info(
            "Calculating new forecast",
            extra={
                "workspace_id": workspace_id,
                "account_id": account_id,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
            },
        )

        since = self.today - timedelta(days=app_settings.history_lookback_days)
        historical = self.transactions.get_historical_transactions(workspace_id, account_id, since)
        planned = self.transactions.get_planned_transactions(workspace_id, account_id, start, end)
        stored = self.settings.get_forecast_settings(workspace_id, self.default_settings())
        current_balance = self.accounts.get_current_balance(workspace_id, account_id)

        forecast_settings = ForecastSettings(
            minimum_safe_balance=(
                minimum_safe_balance if minimum_safe_balance is not None else stored.minimum_safe_balance
            ),
            safety_buffer_days=safety_buffer_days if safety_buffer_days is not None else stored.safety_buffer_days,
        )

        with forecast_latency_histogram.time():
            forecast = calculate_daily_forecast(
                current_balance,
                historical,
                planned,
                start,
                end,
                forecast_settings,
                today=self.today,
                outlier_threshold=app_settings.outlier_threshold,
            )

            payment_risks = []
            if forecast.should_display and forecast.forecasts:
                payment_risks = assess_payment_risks(
                    planned,
                    forecast.forecasts,
                    forecast.average_daily_spending,
                    today=self.today,
                    safety_buffer_days=forecast_settings.safety_buffer_days,
                    currency_symbol=app_settings.currency_symbol,
                )

        record_forecast(forecast)
        record_payment_risks(payment_risks)

        logging.info(
            "Forecast calculated",
            extra={
                "workspace_id": workspace_id,
                "account_id": account_id,
                "historical_count": len(historical),
                "planned_count": len(planned),
                "should_display": forecast.should_display,
                "confidence": forecast.spending_confidence.value,
                "forecast_days": len(forecast.forecasts),
            },
        )

        complete = CompleteForecast(
            forecast=forecast,
            payment_risks=payment_risks,
            current_balance=current_balance,
            settings=forecast_settings,
            calculated_at=datetime.now(timezone.utc),
        )

        if not overridden:
            self.cache.set(workspace_id, account_id, start, end, complete)

        return complete

    def invalidate(self, workspace_id: str, account_id: str) -> int:
        """Call after transactions on the account change"""
        return self.cache.invalidate(workspace_id, account_id)

    def invalidate_workspace(self, workspace_id: str) -> int:
        return self.cache.invalidate_workspace(workspace_id)

    def get_spending_trends(self, workspace_id: str, year: int, month: int) -> SpendingTrendsResult:
        """Trend analysis over the workspace's completed transactions"""
        _, end = month_window(year, month)
        first_year, first_month = shift_month(year, month, -TREND_HISTORY_MONTHS)
        start, _ = month_window(first_year, first_month)

        transactions = self.transactions.get_workspace_transactions(workspace_id, start, end)
        result = calculate_spending_trends(transactions, year, month)
        spending_trends_counter.inc()
        return result
