"""Rate limiting middleware for the recipe API.

Provides Redis-backed sliding window rate limiting on the same backend the
cache uses. Supports both IP-based and token-based limiting. With caching
disabled there is nothing to count against and every request passes.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from chop.cache.backend import get_backend

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limiting configuration."""

    # Maximum requests per window
    requests_per_window: int = 100
    # Window duration in seconds
    window_seconds: int = 60
    # Path prefixes to bypass (health checks, metrics)
    bypass_prefixes: list[str] = field(default_factory=lambda: ["/health", "/metrics"])
    # IPs to bypass (internal services)
    bypass_ips: list[str] = field(default_factory=list)


class SlidingWindowRateLimiter:
    """Redis-backed sliding window rate limiter.

    Uses sorted sets to implement accurate sliding window counting.
    """

    def __init__(self, redis: Redis, config: RateLimitConfig):
        self.redis = redis
        self.config = config

    async def is_allowed(self, key: str) -> tuple[bool, dict[str, str]]:
        """Check if request is allowed.

        Returns:
            Tuple of (allowed, headers) where headers contains
            rate limit information.
        """
        now = time.time()
        window_start = now - self.config.window_seconds

        pipe = self.redis.pipeline()
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zcard(key)
        pipe.zadd(key, {str(now): now})
        pipe.expire(key, self.config.window_seconds + 1)
        results = await pipe.execute()
        current_count = results[1]

        limit = self.config.requests_per_window
        remaining = max(0, limit - current_count - 1)
        reset_at = int(now) + self.config.window_seconds

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_at),
        }

        allowed = current_count < limit
        if not allowed:
            headers["Retry-After"] = str(self.config.window_seconds)

        return allowed, headers


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware with IP and token support.

    The backend handle is looked up per request, so a connection made
    during startup is picked up without re-creating the middleware.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: RateLimitConfig | None = None,
        backend: Callable[[], Redis | None] = get_backend,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self._backend = backend

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.config.bypass_prefixes):
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        if client_ip in self.config.bypass_ips:
            return await call_next(request)

        redis = self._backend()
        if redis is None:
            return await call_next(request)

        key = self._get_rate_limit_key(request)
        try:
            limiter = SlidingWindowRateLimiter(redis, self.config)
            allowed, headers = await limiter.is_allowed(key)
        except Exception as exc:
            # Backend trouble never blocks traffic
            logger.warning("Rate limit check failed: %s", exc)
            return await call_next(request)

        if not allowed:
            return ORJSONResponse(
                status_code=429,
                content={
                    "messages": [
                        {
                            "code": "TooManyRequests",
                            "messageType": "Error",
                            "text": "Rate limit exceeded. Please retry later.",
                        }
                    ]
                },
                headers=headers,
            )

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response

    def _get_rate_limit_key(self, request: Request) -> str:
        """Token hash for bearer requests, client IP otherwise."""
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            token_hash = hashlib.sha256(token.encode()).hexdigest()[:16]
            return f"ratelimit:token:{token_hash}"

        return f"ratelimit:ip:{self._get_client_ip(request)}"

    def _get_client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
