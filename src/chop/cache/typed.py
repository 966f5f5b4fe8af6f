"""Typed per-entity cache on top of the shared Redis backend.

One ``TypedCache`` instance owns one entity kind and translates integer ids
into ``{kind}:{id}`` keys and values into JSON. The cache is an accelerator
only: every operation swallows backend and serialization errors, reports
them to the observer, and degrades to a miss or a no-op.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, TypeVar, cast

import orjson

from chop.cache.backend import get_backend
from chop.cache.keys import cache_key
from chop.cache.observer import CacheObserver, default_observer

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")

BackendProvider = Callable[[], "Redis | None"]

# Default TTL (1 hour)
DEFAULT_TTL = 3600


class TypedCache(Generic[T]):
    """Read-through/write-through cache for a single entity kind.

    Construction only stores its arguments. The backend handle is looked up
    on every call, so instances created at import time pick up a connection
    established later during startup.
    """

    def __init__(
        self,
        kind: str,
        *,
        ttl: int = DEFAULT_TTL,
        observer: CacheObserver | None = None,
        backend: BackendProvider | None = None,
    ) -> None:
        self._kind = kind
        self.ttl = ttl
        self.observer: CacheObserver = observer or default_observer
        self._backend: BackendProvider = backend or get_backend

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def enabled(self) -> bool:
        """Whether a backend connection is available."""
        return self._backend() is not None

    def key(self, entity_id: int) -> str:
        return cache_key(self._kind, entity_id)

    async def set_cache(self, entity_id: int, value: T) -> None:
        """Store ``value`` under the entity's key, resetting its TTL."""
        client = self._backend()
        if client is None:
            self.observer.disabled(self._kind, "set", entity_id)
            return

        try:
            payload = orjson.dumps(value)
            await client.setex(self.key(entity_id), self.ttl, payload)
        except Exception as exc:
            self.observer.failed(self._kind, "set", entity_id, exc)
            return

        self.observer.stored(self._kind, entity_id)

    async def get_cache(self, entity_id: int) -> T | None:
        """Return the cached value, or None on miss, error or disabled cache."""
        client = self._backend()
        if client is None:
            self.observer.disabled(self._kind, "get", entity_id)
            return None

        try:
            raw = await client.get(self.key(entity_id))
            if raw is None:
                self.observer.miss(self._kind, entity_id)
                return None
            value = orjson.loads(raw)
        except Exception as exc:
            self.observer.failed(self._kind, "get", entity_id, exc)
            return None

        self.observer.hit(self._kind, entity_id)
        return cast(T, value)

    async def invalidate_cache(self, entity_id: int) -> None:
        """Delete the entity's key."""
        client = self._backend()
        if client is None:
            self.observer.disabled(self._kind, "invalidate", entity_id)
            return

        try:
            await client.delete(self.key(entity_id))
        except Exception as exc:
            self.observer.failed(self._kind, "invalidate", entity_id, exc)
            return

        self.observer.invalidated(self._kind, entity_id)

    @staticmethod
    async def clear_cache(
        backend: BackendProvider | None = None,
        observer: CacheObserver | None = None,
    ) -> None:
        """Flush the whole keyspace of the backend, across every kind.

        This is an administrative reset, not a per-kind invalidation.
        """
        client = (backend or get_backend)()
        reporter = observer or default_observer
        if client is None:
            reporter.disabled("*", "clear", None)
            return

        try:
            await client.flushdb()
        except Exception as exc:
            reporter.failed("*", "clear", None, exc)

    def __repr__(self) -> str:
        return f"TypedCache(kind={self._kind!r}, ttl={self.ttl})"
