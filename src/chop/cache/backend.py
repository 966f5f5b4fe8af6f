"""Redis backend connection for the cache layer.

The backend is optional. When credentials are missing or the server cannot
be reached at startup, the process-wide handle stays ``None`` and every
cache operation degrades to a miss or a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, cast

import redis.asyncio as redis

from chop.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Module-level client handle, None while caching is disabled
_redis_client: Redis | None = None


async def connect(
    url: str | None,
    token: str | None,
    socket_timeout: float | None = None,
) -> Redis | None:
    """Open a Redis client and verify it with PING.

    Returns None instead of raising when either credential is missing or the
    server cannot be reached, so callers can run without a cache.
    """
    if not url or not token:
        logger.warning("Redis credentials not configured, caching disabled")
        return None

    client: Redis | None = None
    try:
        client = redis.from_url(  # type: ignore[no-untyped-call]
            url,
            password=token,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        await cast(Awaitable[bool], client.ping())
    except Exception:
        logger.exception("Failed to connect to Redis, caching disabled")
        if client is not None:
            await _close_quietly(client)
        return None

    logger.info("Redis connection successful")
    return client


async def init_backend() -> Redis | None:
    """Connect once using application settings and keep the handle."""
    global _redis_client
    if _redis_client is None:
        _redis_client = await connect(
            settings.redis_url,
            settings.redis_token,
            socket_timeout=settings.redis_socket_timeout,
        )
    return _redis_client


def get_backend() -> Redis | None:
    """Return the shared client, or None when caching is disabled."""
    return _redis_client


def set_backend(client: Redis | None) -> None:
    """Replace the shared client handle."""
    global _redis_client
    _redis_client = client


async def close_backend() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _close_quietly(_redis_client)
        _redis_client = None


async def health_check() -> bool:
    """Check Redis connectivity."""
    client = get_backend()
    if client is None:
        return False
    try:
        await cast(Awaitable[bool], client.ping())
        return True
    except Exception:
        return False


async def _close_quietly(client: Redis) -> None:
    try:
        await client.aclose()
    except Exception:
        logger.debug("Error while closing Redis client", exc_info=True)
