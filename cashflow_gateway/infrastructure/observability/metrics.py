"""Prometheus metrics for forecast outcomes, payment risk levels and cache performance"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from cashflow_gateway.domain.models import ForecastResult, PaymentRisk

# Forecast metrics
forecast_counter = Counter(
    "cashflow_forecast_total",
    "Total forecasts calculated",
    ["outcome"],  # displayed | hidden
)

forecast_risk_day_counter = Counter(
    "cashflow_forecast_days",
    "Forecast days by risk level",
    ["risk_level"],  # safe | warning | danger
)

payment_risk_counter = Counter(
    "cashflow_payment_risk_total",
    "Planned payments assessed by risk level",
    ["risk_level"],
)

forecast_latency_histogram = Histogram(
    "cashflow_forecast_calculation_seconds",
    "Time spent computing a forecast (data fetch excluded)",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

spending_trends_counter = Counter(
    "cashflow_spending_trends_total",
    "Spending trend analyses performed",
)

# Cache metrics
cache_hit_counter = Counter(
    "cashflow_forecast_cache_hits_total",
    "Forecasts served from cache",
)

cache_miss_counter = Counter(
    "cashflow_forecast_cache_misses_total",
    "Forecast cache misses (absent or expired)",
)

# Transaction store metrics
repository_failures_counter = Counter(
    "transaction_repository_failures_total",
    "Failed transaction store queries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_forecast(result: ForecastResult) -> None:
    """Record forecast outcome and the distribution of day-level risk"""
    outcome = "displayed" if result.should_display else "hidden"
    forecast_counter.labels(outcome=outcome).inc()

    for day in result.forecasts:
        forecast_risk_day_counter.labels(risk_level=day.risk_level.value).inc()


def record_payment_risks(risks: Iterable[PaymentRisk]) -> None:
    for risk in risks:
        payment_risk_counter.labels(risk_level=risk.risk_level.value).inc()
