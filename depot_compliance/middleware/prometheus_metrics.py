"""
Prometheus метрики для мониторинга приложения
"""
import os
import time
from typing import Callable
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    multiprocess,
    REGISTRY
)
from starlette.responses import Response as StarletteResponse

from depot_compliance.logger import logger


# При запуске нескольких воркеров метрики собираются через каталог multiprocess
if os.getenv("PROMETHEUS_MULTIPROC_DIR"):
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY


HTTP_REQUEST_COUNT = Counter(
    "http_requests_total",
    "Общее количество HTTP запросов",
    ["method", "endpoint", "status_code"],
    registry=registry
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "Время выполнения HTTP запросов в секундах",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=registry
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Количество запросов в обработке",
    ["method", "endpoint"],
    registry=registry
)

AUTH_FAILURES_TOTAL = Counter(
    "depot_auth_failures_total",
    "Количество неудачных попыток аутентификации",
    ["reason"],  # invalid_credentials, invalid_refresh_token
    registry=registry
)

RATE_LIMIT_EXCEEDED_TOTAL = Counter(
    "depot_rate_limit_exceeded_total",
    "Количество превышений rate limit",
    ["endpoint"],
    registry=registry
)

NOTIFICATIONS_CREATED_TOTAL = Counter(
    "depot_notifications_created_total",
    "Количество уведомлений, созданных проверкой сроков",
    registry=registry
)

COMPLIANCE_CHECK_RECORDS = Gauge(
    "depot_compliance_check_records",
    "Количество допусков, найденных последней проверкой сроков",
    ["kind"],  # due_soon, overdue
    registry=registry
)


def normalize_endpoint(path: str) -> str:
    """
    Нормализация endpoint для агрегации метрик
    Числовые ID заменяются плейсхолдером
    """
    return "/".join("{id}" if part.isdigit() else part for part in path.split("/"))


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware для сбора Prometheus метрик"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.time() - start_time
            HTTP_REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
            HTTP_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()

        return response


def setup_prometheus(app: FastAPI):
    """
    Настройка Prometheus метрик для приложения
    """
    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Endpoint для Prometheus scraping"""
        return StarletteResponse(
            content=generate_latest(registry),
            media_type=CONTENT_TYPE_LATEST
        )

    logger.info("Prometheus метрики настроены", extra={"endpoint": "/metrics"})


def record_auth_failure(reason: str):
    """Записать метрику неудачной аутентификации"""
    AUTH_FAILURES_TOTAL.labels(reason=reason).inc()


def record_rate_limit_exceeded(endpoint: str):
    """Записать метрику превышения rate limit"""
    RATE_LIMIT_EXCEEDED_TOTAL.labels(endpoint=normalize_endpoint(endpoint)).inc()


def record_compliance_check(result: dict):
    """Записать итоги проверки сроков"""
    COMPLIANCE_CHECK_RECORDS.labels(kind="due_soon").set(result.get("due_soon_records", 0))
    COMPLIANCE_CHECK_RECORDS.labels(kind="overdue").set(result.get("overdue_records", 0))
    NOTIFICATIONS_CREATED_TOTAL.inc(result.get("notifications_created", 0))
