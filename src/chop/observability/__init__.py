"""Observability module for the recipe API.

Provides metrics and structured logging:
- Prometheus metrics (HTTP and cache)
- JSON structured logging with correlation IDs
"""

from chop.observability.logging import (
    configure_logging,
    correlation_id_var,
    get_logger,
    request_id_var,
)
from chop.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "request_id_var",
    "correlation_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]
