"""Spending trend endpoints"""

import logging
import time
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from cashflow_gateway.api.dependencies import get_forecast_service, get_request_id, get_today
from cashflow_gateway.api.v1.schemas import SpendingTrendsRequest, SpendingTrendsResponse
from cashflow_gateway.domain.exceptions import InvalidForecastWindowError, TransactionSourceError
from cashflow_gateway.domain.trends import calculate_spending_trends
from cashflow_gateway.infrastructure.observability.logging import log_spending_trends
from cashflow_gateway.infrastructure.observability.metrics import spending_trends_counter
from cashflow_gateway.services.forecast_service import ForecastService

router = APIRouter()


@router.get("/workspaces/{workspace_id}/spending-trends", response_model=SpendingTrendsResponse)
def get_spending_trends(
    workspace_id: str,
    request: Request,
    year: Optional[int] = Query(None, description="Year to analyze (defaults to current)"),
    month: Optional[int] = Query(None, description="Month to analyze 1-12 (defaults to current)"),
    service: ForecastService = Depends(get_forecast_service),
    today: date = Depends(get_today),
):
    """
    Category spending for a month compared with the month before and the 3-month average.

    Returns:
        Trends ranked by current spend, top 3 categories and unusual categories
    """
    start_time = time.time()
    request_id = get_request_id(request)
    year = year if year is not None else today.year
    month = month if month is not None else today.month

    try:
        result = service.get_spending_trends(workspace_id, year, month)

    except InvalidForecastWindowError as e:
        logging.warning(f"Invalid trend period: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except TransactionSourceError as e:
        logging.error(f"Transaction store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Transaction data unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    log_spending_trends(
        request_id, workspace_id, year, month, len(result.trends), len(result.unusual_categories), duration_ms
    )
    return SpendingTrendsResponse.build(year, month, result)


@router.post("/spending-trends", response_model=SpendingTrendsResponse)
def calculate_trends(request_body: SpendingTrendsRequest, request: Request):
    """Stateless trend analysis over caller-supplied transactions"""
    start_time = time.time()

    result = calculate_spending_trends(
        [t.to_domain() for t in request_body.transactions],
        request_body.year,
        request_body.month,
    )
    spending_trends_counter.inc()

    duration_ms = (time.time() - start_time) * 1000
    log_spending_trends(
        get_request_id(request),
        "-",
        request_body.year,
        request_body.month,
        len(result.trends),
        len(result.unusual_categories),
        duration_ms,
    )
    return SpendingTrendsResponse.build(request_body.year, request_body.month, result)
