"""Middleware for the recipe API.

- Correlation context for request tracing and access logging
- Request rate limiting on the cache backend
"""

from chop.api.middleware.correlation import CorrelationMiddleware
from chop.api.middleware.rate_limit import RateLimitConfig, RateLimitMiddleware

__all__ = [
    "CorrelationMiddleware",
    "RateLimitConfig",
    "RateLimitMiddleware",
]
