"""Admin API router.

- POST /admin/cache/clear - Flush the whole cache keyspace
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from chop.cache.backend import get_backend
from chop.cache.typed import TypedCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/cache/clear")
async def clear_cache() -> dict[str, str]:
    """Flush every cached entry of every kind.

    Reports ``disabled`` when no cache backend is configured.
    """
    if get_backend() is None:
        return {"status": "disabled"}
    await TypedCache.clear_cache()
    logger.info("Cache cleared")
    return {"status": "cleared"}
