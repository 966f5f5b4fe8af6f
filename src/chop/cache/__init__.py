"""Cache layer for the recipe catalog.

Provides a read-through/write-through Redis cache per entity kind:
- One TypedCache per kind, keyed ``{kind}:{id}``, values stored as JSON
- Detail assemblers that cache denormalized recipe and region views
- Fail-open: a missing or broken backend degrades every call to a miss
"""

from chop.cache.backend import close_backend, get_backend, init_backend, set_backend
from chop.cache.keys import CacheKind, cache_key
from chop.cache.typed import DEFAULT_TTL, TypedCache

__all__ = [
    # Backend
    "init_backend",
    "get_backend",
    "set_backend",
    "close_backend",
    # Typed cache
    "CacheKind",
    "cache_key",
    "DEFAULT_TTL",
    "TypedCache",
]
