"""Tests for the process-wide cache instances and invalidation helpers."""

from __future__ import annotations

import pytest

from chop.cache import instances
from chop.cache.keys import CacheKind
from tests.conftest import FakeRedis


class TestInstances:
    """Test the singleton per-kind caches."""

    def test_one_instance_per_kind(self) -> None:
        """Every kind has exactly one cache owning its tag."""
        assert set(instances.ALL_CACHES) == set(CacheKind)
        for kind, cache in instances.ALL_CACHES.items():
            assert cache.kind == kind.value

    def test_ttl(self) -> None:
        """Instances use the configured one hour TTL."""
        assert all(cache.ttl == 3600 for cache in instances.ALL_CACHES.values())

    @pytest.mark.asyncio
    async def test_disabled_when_no_backend(self, no_backend: None) -> None:
        """Singletons degrade to misses without a backend."""
        await instances.recipe_cache.set_cache(1, {"id": 1})
        assert await instances.recipe_cache.get_cache(1) is None
        assert instances.recipe_cache.enabled is False

    @pytest.mark.asyncio
    async def test_singletons_share_backend(self, shared_backend: FakeRedis) -> None:
        """All instances write to the one backend under their own namespace."""
        await instances.recipe_cache.set_cache(1, {"id": 1})
        await instances.nation_cache.set_cache(1, {"id": 1, "name": "peru"})

        assert set(shared_backend.store) == {"recipe:1", "nation:1"}


class TestInvalidation:
    """Test the mutation invalidation helpers."""

    @pytest.mark.asyncio
    async def test_invalidate_recipe(self, shared_backend: FakeRedis) -> None:
        """Flat row, detail view and ingredient list of the recipe are dropped."""
        await instances.recipe_cache.set_cache(42, {"id": 42})
        await instances.recipe_detail_cache.set_cache(42, {"id": 42})  # type: ignore[typeddict-item]
        await instances.recipe_ingredient_cache.set_cache(42, [])
        await instances.recipe_cache.set_cache(43, {"id": 43})

        await instances.invalidate_recipe(42)

        assert set(shared_backend.store) == {"recipe:43"}

    @pytest.mark.asyncio
    async def test_invalidate_recipe_with_region(self, shared_backend: FakeRedis) -> None:
        """Passing the region also drops its row and detail view."""
        await instances.region_cache.set_cache(2, {"id": 2})
        await instances.region_detail_cache.set_cache(2, {"id": 2, "name": "asia", "nations": []})
        await instances.recipe_detail_cache.set_cache(42, {"id": 42})  # type: ignore[typeddict-item]

        await instances.invalidate_recipe(42, region_id=2)

        assert shared_backend.store == {}
