"""Dependency injection for FastAPI endpoints"""

from datetime import date

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cashflow_gateway.infrastructure.cache.forecast_cache import ForecastCache
from cashflow_gateway.infrastructure.database.session import get_db
from cashflow_gateway.services.forecast_service import ForecastService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Reference date for calculations; the only place the API reads the clock"""
    return date.today()


def get_forecast_cache(request: Request) -> ForecastCache:
    """Forecast cache owned by the application instance"""
    return request.app.state.forecast_cache


def get_forecast_service(
    db: Session = Depends(get_db),
    cache: ForecastCache = Depends(get_forecast_cache),
    today: date = Depends(get_today),
) -> ForecastService:
    """Provide a forecast service bound to the request's session"""
    return ForecastService(db, cache, today)
