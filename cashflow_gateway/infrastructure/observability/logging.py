"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from cashflow_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_forecast(
    request_id: str,
    workspace_id: str,
    account_id: str,
    should_display: bool,
    forecast_days: int,
    danger_days: int,
    payment_risks: int,
    duration_ms: float,
) -> None:
    """Log structured forecast outcome for analysis"""
    logging.info(
        "Forecast completed",
        extra={
            "request_id": request_id,
            "workspace_id": workspace_id,
            "account_id": account_id,
            "step": "forecast_complete",
            "display_outcome": "displayed" if should_display else "hidden",
            "forecast_days": forecast_days,
            "danger_days": danger_days,
            "payment_risks": payment_risks,
            "duration_ms": duration_ms,
        },
    )


def log_spending_trends(
    request_id: str,
    workspace_id: str,
    year: int,
    month: int,
    categories: int,
    unusual_categories: int,
    duration_ms: float,
) -> None:
    """Log structured trend analysis outcome"""
    logging.info(
        "Spending trends completed",
        extra={
            "request_id": request_id,
            "workspace_id": workspace_id,
            "step": "spending_trends_complete",
            "period": f"{year:04d}-{month:02d}",
            "categories": categories,
            "unusual_categories": unusual_categories,
            "duration_ms": duration_ms,
        },
    )
