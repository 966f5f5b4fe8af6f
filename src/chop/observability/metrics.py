"""Prometheus metrics for the recipe API.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Cache metrics (hits, misses, errors) labelled by entity kind

Usage:
    from chop.observability.metrics import record_cache_hit

    record_cache_hit("recipeDetail")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from chop.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_errors_total: Any = None

    _initialized: bool = field(default=False, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self.http_requests_total = Counter(
            "chop_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
        )

        self.http_request_duration_seconds = Histogram(
            "chop_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )

        self.cache_hits_total = Counter(
            "chop_cache_hits_total",
            "Cache hits",
            ["kind"],
        )

        self.cache_misses_total = Counter(
            "chop_cache_misses_total",
            "Cache misses",
            ["kind"],
        )

        self.cache_errors_total = Counter(
            "chop_cache_errors_total",
            "Cache operations that failed against a reachable backend",
            ["kind", "operation"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics:
            return b"# Metrics disabled\n"
        return generate_latest(REGISTRY)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware recording request count and duration per method and path."""

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        if request.url.path.startswith(("/health", "/metrics")):
            return await call_next(request)

        method = request.method
        path = normalize_path(request.url.path)
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()
            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)


def normalize_path(path: str) -> str:
    """Replace numeric path segments with a placeholder.

    Keeps label cardinality bounded.

    Examples:
        /chop/api/recipes/42 -> /chop/api/recipes/{id}
        /chop/api/recipes/42/images/7 -> /chop/api/recipes/{id}/images/{id}
    """
    parts = path.strip("/").split("/")
    normalized = ["{id}" if part.isdigit() else part for part in parts]
    return "/" + "/".join(normalized) if path.strip("/") else path


def record_cache_hit(kind: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(kind=kind).inc()


def record_cache_miss(kind: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(kind=kind).inc()


def record_cache_error(kind: str, operation: str) -> None:
    """Record a failed cache operation."""
    metrics = get_metrics()
    if metrics.cache_errors_total:
        metrics.cache_errors_total.labels(kind=kind, operation=operation).inc()
