"""Reporting hook for cache outcomes.

The cache layer never raises, so the only trace of its behaviour is what it
reports here. The default observer writes log records and Prometheus
counters; tests inject their own to assert on error paths directly.
"""

from __future__ import annotations

import logging
from typing import Protocol

from chop.observability.metrics import record_cache_error, record_cache_hit, record_cache_miss

logger = logging.getLogger("chop.cache")


class CacheObserver(Protocol):
    """Receives the outcome of every cache operation."""

    def hit(self, kind: str, entity_id: int) -> None: ...

    def miss(self, kind: str, entity_id: int) -> None: ...

    def stored(self, kind: str, entity_id: int) -> None: ...

    def invalidated(self, kind: str, entity_id: int) -> None: ...

    def disabled(self, kind: str, operation: str, entity_id: int | None) -> None: ...

    def failed(
        self, kind: str, operation: str, entity_id: int | None, error: BaseException
    ) -> None: ...


class LoggingCacheObserver:
    """Default observer: logs and records metrics.

    Disabled operations are expected when Redis is not configured and are
    logged at INFO; failures against a reachable backend are logged at ERROR.
    """

    def hit(self, kind: str, entity_id: int) -> None:
        logger.debug("Cache hit for %s %s", kind, entity_id)
        record_cache_hit(kind)

    def miss(self, kind: str, entity_id: int) -> None:
        logger.debug("Cache miss for %s %s", kind, entity_id)
        record_cache_miss(kind)

    def stored(self, kind: str, entity_id: int) -> None:
        logger.debug("%s %s cached", kind, entity_id)

    def invalidated(self, kind: str, entity_id: int) -> None:
        logger.debug("%s %s cache invalidated", kind, entity_id)

    def disabled(self, kind: str, operation: str, entity_id: int | None) -> None:
        logger.info(
            "Cache disabled, skipping %s",
            operation,
            extra={"kind": kind, "entity_id": entity_id},
        )

    def failed(
        self, kind: str, operation: str, entity_id: int | None, error: BaseException
    ) -> None:
        logger.error(
            "Cache %s failed for %s %s: %s",
            operation,
            kind,
            entity_id,
            error,
            extra={"kind": kind, "entity_id": entity_id, "operation": operation},
        )
        record_cache_error(kind, operation)


default_observer = LoggingCacheObserver()
