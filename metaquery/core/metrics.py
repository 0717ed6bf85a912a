"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "LLM meta-query gateway info")
APP_INFO.info({"version": "1.0.0", "name": "metaquery"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60, 120],
)

PROVIDER_CALLS = Counter(
    "provider_calls_total",
    "Total provider calls by outcome",
    ["provider", "success"],
)

PROVIDER_LATENCY = Histogram(
    "provider_call_duration_seconds",
    "Provider call latency in seconds",
    ["provider"],
    buckets=[0.25, 0.5, 1, 2.5, 5, 10, 20, 30, 60, 120],
)


def record_provider_call(provider: str, success: bool, latency_ms: int) -> None:
    PROVIDER_CALLS.labels(provider=provider, success=str(success).lower()).inc()
    PROVIDER_LATENCY.labels(provider=provider).observe(latency_ms / 1000)


# --- Middleware ---

# Anything else is bucketed to keep label cardinality bounded
_KNOWN_PATHS = frozenset({"/", "/api/v1/query", "/api/v1/health"})


def _normalize_path(path: str) -> str:
    return path if path in _KNOWN_PATHS else "other"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
