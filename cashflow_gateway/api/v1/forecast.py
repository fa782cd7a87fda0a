"""Forecast endpoints - account forecasts, cache invalidation and stateless calculation"""

import logging
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from cashflow_gateway.api.dependencies import get_forecast_cache, get_forecast_service, get_request_id, get_today
from cashflow_gateway.api.v1.schemas import (
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    CacheInvalidationResponse,
    ForecastRequest,
    ForecastResponse,
)
from cashflow_gateway.config import settings
from cashflow_gateway.domain.exceptions import AccountNotFoundError, InvalidForecastWindowError, TransactionSourceError
from cashflow_gateway.domain.forecast import calculate_daily_forecast
from cashflow_gateway.domain.models import ForecastSettings, RiskLevel
from cashflow_gateway.domain.payment_risk import assess_payment_risks
from cashflow_gateway.infrastructure.cache.forecast_cache import ForecastCache
from cashflow_gateway.infrastructure.observability.logging import log_forecast
from cashflow_gateway.infrastructure.observability.metrics import record_forecast, record_payment_risks
from cashflow_gateway.services.forecast_service import ForecastService, month_window

router = APIRouter()


def _danger_days(response: ForecastResponse) -> int:
    return sum(1 for f in response.daily_forecasts if f.risk_level == RiskLevel.DANGER)


@router.get(
    "/workspaces/{workspace_id}/accounts/{account_id}/forecast",
    response_model=ForecastResponse,
)
def get_account_forecast(
    workspace_id: str,
    account_id: str,
    request: Request,
    year: Optional[int] = Query(None, description="Forecast year (defaults to current)"),
    month: Optional[int] = Query(None, description="Forecast month 1-12 (defaults to current)"),
    minimum_safe_balance: Optional[Decimal] = Query(
        None,
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        description="Override stored minimum safe balance",
    ),
    safety_buffer_days: Optional[int] = Query(None, ge=0, le=365, description="Override stored safety buffer"),
    service: ForecastService = Depends(get_forecast_service),
    today: date = Depends(get_today),
):
    """
    Daily balance forecast for one calendar month of an account.

    Flow:
    1. Resolve the month window
    2. Fetch history, planned transactions, settings and balance (cached for a few minutes)
    3. Project daily balances and assess planned payments
    4. Return forecasts with risk levels and recommendations
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        start, end = month_window(
            year if year is not None else today.year,
            month if month is not None else today.month,
        )
        complete = service.get_forecast(
            workspace_id,
            account_id,
            start,
            end,
            minimum_safe_balance=minimum_safe_balance,
            safety_buffer_days=safety_buffer_days,
        )

    except InvalidForecastWindowError as e:
        logging.warning(f"Invalid forecast window: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except AccountNotFoundError as e:
        logging.warning(f"Account not found: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail="Account not found")

    except TransactionSourceError as e:
        logging.error(f"Transaction store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Transaction data unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    response = ForecastResponse.build(
        complete.forecast,
        complete.payment_risks,
        complete.current_balance,
        complete.settings,
        complete.calculated_at,
    )

    duration_ms = (time.time() - start_time) * 1000
    log_forecast(
        request_id,
        workspace_id,
        account_id,
        response.should_display,
        len(response.daily_forecasts),
        _danger_days(response),
        len(response.payment_risks),
        duration_ms,
    )
    return response


@router.delete(
    "/workspaces/{workspace_id}/accounts/{account_id}/forecast/cache",
    response_model=CacheInvalidationResponse,
)
def invalidate_account_forecast(
    workspace_id: str,
    account_id: str,
    service: ForecastService = Depends(get_forecast_service),
):
    """Drop cached forecasts for an account after its transactions change"""
    cleared = service.invalidate(workspace_id, account_id)
    return CacheInvalidationResponse(workspace_id=workspace_id, account_id=account_id, entries_cleared=cleared)


@router.delete("/workspaces/{workspace_id}/forecast/cache", response_model=CacheInvalidationResponse)
def invalidate_workspace_forecasts(
    workspace_id: str,
    service: ForecastService = Depends(get_forecast_service),
):
    """Drop cached forecasts for every account in a workspace"""
    cleared = service.invalidate_workspace(workspace_id)
    return CacheInvalidationResponse(workspace_id=workspace_id, entries_cleared=cleared)


@router.delete("/forecast/cache", response_model=CacheInvalidationResponse)
def clear_forecast_cache(cache: ForecastCache = Depends(get_forecast_cache)):
    """Drop every cached forecast, e.g. after a bulk import or settings migration"""
    return CacheInvalidationResponse(entries_cleared=cache.clear())


@router.post("/forecast", response_model=ForecastResponse)
def calculate_forecast(
    request_body: ForecastRequest,
    request: Request,
    today: date = Depends(get_today),
):
    """
    Stateless forecast: the caller supplies balance, transactions and settings.

    Payment risks are returned for every planned expense, whether or not the
    forecast has enough history to be displayed.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    reference_date = request_body.today or today

    forecast_settings = ForecastSettings(
        minimum_safe_balance=request_body.settings.minimum_safe_balance,
        safety_buffer_days=request_body.settings.safety_buffer_days,
    )
    planned = [t.to_domain() for t in request_body.planned_transactions]

    result = calculate_daily_forecast(
        request_body.current_balance,
        [t.to_domain() for t in request_body.historical_transactions],
        planned,
        request_body.start_date,
        request_body.end_date,
        forecast_settings,
        today=reference_date,
        outlier_threshold=request_body.outlier_threshold or settings.outlier_threshold,
    )
    payment_risks = assess_payment_risks(
        planned,
        result.forecasts,
        result.average_daily_spending,
        today=reference_date,
        safety_buffer_days=forecast_settings.safety_buffer_days,
        currency_symbol=settings.currency_symbol,
    )

    record_forecast(result)
    record_payment_risks(payment_risks)

    response = ForecastResponse.build(
        result,
        payment_risks,
        request_body.current_balance,
        forecast_settings,
        datetime.now(timezone.utc),
    )

    duration_ms = (time.time() - start_time) * 1000
    log_forecast(
        request_id,
        "-",
        "-",
        response.should_display,
        len(response.daily_forecasts),
        _danger_days(response),
        len(response.payment_risks),
        duration_ms,
    )
    return response
