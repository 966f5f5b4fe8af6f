"""Tests for read-through detail assembly."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from chop.cache.detail import DetailAssembler, assemble_recipe_detail, assemble_region_detail
from chop.cache.typed import TypedCache
from chop.persistence.includes import RECIPE_DETAIL_INCLUDE, Include
from chop.persistence.tables import (
    CategoryTable,
    IngredientTable,
    NationTable,
    RecipeAliasTable,
    RecipeImageTable,
    RecipeIngredientTable,
    RecipeInstructionTable,
    RecipeTable,
    RegionTable,
    SubcategoryTable,
)
from tests.conftest import FakeRedis, RecordingObserver


def make_recipe(recipe_id: int = 42, **overrides: Any) -> RecipeTable:
    """Transient recipe with every association populated."""
    fields: dict[str, Any] = {
        "id": recipe_id,
        "name": "tacos",
        "description": "Corn tortillas with fillings",
        "time": 30,
        "cost": 0,
        "nation": NationTable(id=1, name="mexico"),
        "region": RegionTable(id=2, name="latin america"),
        "categories": [CategoryTable(id=3, name="dinner")],
        "subcategories": [SubcategoryTable(id=4, name="street food")],
        "instructions": [
            RecipeInstructionTable(step=3, instruction="Serve"),
            RecipeInstructionTable(step=1, instruction="Warm tortillas"),
            RecipeInstructionTable(step=2, instruction="Add filling"),
        ],
        "aliases": [RecipeAliasTable(alias="taco")],
        "images": [
            RecipeImageTable(id=9, url="https://img/tacos.jpg", type="jpg", caption="Plated")
        ],
        "ingredient_links": [
            RecipeIngredientTable(
                ingredient=IngredientTable(id=5, name="tortilla"), quantity=3, unit="pcs"
            )
        ],
    }
    fields.update(overrides)
    return RecipeTable(**fields)


class CountingFetch:
    """Relational fetch stub that counts calls."""

    def __init__(self, entities: dict[int, Any] | None = None, error: Exception | None = None):
        self.entities = entities or {}
        self.error = error
        self.calls: list[tuple[int, tuple[Include, ...]]] = []

    async def __call__(self, entity_id: int, include: Sequence[Include]) -> Any:
        self.calls.append((entity_id, tuple(include)))
        if self.error is not None:
            raise self.error
        return self.entities.get(entity_id)


def make_assembler(
    backend: FakeRedis | None, observer: RecordingObserver, fetch: CountingFetch
) -> tuple[DetailAssembler[Any, Any], TypedCache[Any]]:
    cache: TypedCache[Any] = TypedCache(
        "recipeDetail", observer=observer, backend=lambda: backend  # type: ignore[arg-type,return-value]
    )
    assembler = DetailAssembler(cache, fetch, assemble_recipe_detail, RECIPE_DETAIL_INCLUDE)
    return assembler, cache


class TestAssembleRecipeDetail:
    """Test projection of a recipe into its detail view."""

    def test_full_recipe(self) -> None:
        """Every association is flattened."""
        view = assemble_recipe_detail(make_recipe())

        assert view == {
            "id": 42,
            "name": "tacos",
            "description": "Corn tortillas with fillings",
            "nation": "mexico",
            "region": "latin america",
            "instructions": ["Warm tortillas", "Add filling", "Serve"],
            "categories": ["dinner"],
            "subcategories": ["street food"],
            "aliases": ["taco"],
            "images": [
                {"id": 9, "url": "https://img/tacos.jpg", "type": "jpg", "caption": "Plated"}
            ],
            "time": 30,
            "ingredients": [{"id": 5, "name": "tortilla", "quantity": 3, "unit": "pcs"}],
        }

    def test_zero_cost_is_omitted(self) -> None:
        """Cost appears only when non-zero."""
        assert "cost" not in assemble_recipe_detail(make_recipe(cost=0))
        assert assemble_recipe_detail(make_recipe(cost=4.5))["cost"] == 4.5

    def test_unloaded_associations(self) -> None:
        """Associations that were not fetched become empty, nation and region are left out."""
        recipe = RecipeTable(id=1, name="toast", description="Bread", time=5, cost=0)

        view = assemble_recipe_detail(recipe)

        assert "nation" not in view
        assert "region" not in view
        assert view["instructions"] == []
        assert view["categories"] == []
        assert view["subcategories"] == []
        assert view["aliases"] == []
        assert view["images"] == []
        assert view["ingredients"] == []


class TestAssembleRegionDetail:
    """Test projection of a region."""

    def test_region_with_nations(self) -> None:
        region = RegionTable(
            id=2,
            name="latin america",
            nations=[NationTable(id=1, name="mexico"), NationTable(id=6, name="peru")],
        )

        assert assemble_region_detail(region) == {
            "id": 2,
            "name": "latin america",
            "nations": [{"id": 1, "name": "mexico"}, {"id": 6, "name": "peru"}],
        }

    def test_region_without_nations_loaded(self) -> None:
        assert assemble_region_detail(RegionTable(id=2, name="europe"))["nations"] == []


class TestDetailAssembler:
    """Test the read-through path."""

    @pytest.mark.asyncio
    async def test_cold_then_warm(self, fake_redis: FakeRedis, observer: RecordingObserver) -> None:
        """Second call is served from the cache without a relational fetch."""
        fetch = CountingFetch({42: make_recipe()})
        assembler, _ = make_assembler(fake_redis, observer, fetch)

        first = await assembler.get_details(42)
        second = await assembler.get_details(42)

        assert len(fetch.calls) == 1
        assert first == second
        assert observer.names() == ["miss", "stored", "hit"]

    @pytest.mark.asyncio
    async def test_instruction_order(
        self, fake_redis: FakeRedis, observer: RecordingObserver
    ) -> None:
        """Steps inserted as [3,1,2] come back ordered on both paths."""
        fetch = CountingFetch({42: make_recipe()})
        assembler, _ = make_assembler(fake_redis, observer, fetch)
        expected = ["Warm tortillas", "Add filling", "Serve"]

        cold = await assembler.get_details(42)
        warm = await assembler.get_details(42)

        assert cold is not None and warm is not None
        assert cold["instructions"] == expected
        assert warm["instructions"] == expected

    @pytest.mark.asyncio
    async def test_default_include(self, fake_redis: FakeRedis, observer: RecordingObserver) -> None:
        """Without an include list the full recipe detail include is fetched."""
        fetch = CountingFetch({42: make_recipe()})
        assembler, _ = make_assembler(fake_redis, observer, fetch)

        await assembler.get_details(42)

        assert fetch.calls == [(42, RECIPE_DETAIL_INCLUDE)]

    @pytest.mark.asyncio
    async def test_explicit_include(self, fake_redis: FakeRedis, observer: RecordingObserver) -> None:
        """An explicit include list is passed to the fetch."""
        fetch = CountingFetch({42: make_recipe()})
        assembler, _ = make_assembler(fake_redis, observer, fetch)

        await assembler.get_details(42, include=[Include.INSTRUCTIONS])

        assert fetch.calls == [(42, (Include.INSTRUCTIONS,))]

    @pytest.mark.asyncio
    async def test_not_found_is_not_cached(
        self, fake_redis: FakeRedis, observer: RecordingObserver
    ) -> None:
        """Missing entity returns None and leaves the cache empty."""
        fetch = CountingFetch()
        assembler, cache = make_assembler(fake_redis, observer, fetch)

        assert await assembler.get_details(404) is None
        assert await cache.get_cache(404) is None
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_cached_view_is_not_revalidated(
        self, fake_redis: FakeRedis, observer: RecordingObserver
    ) -> None:
        """A hit is returned as stored, even if the database changed."""
        fetch = CountingFetch({42: make_recipe(name="renamed")})
        assembler, cache = make_assembler(fake_redis, observer, fetch)
        await cache.set_cache(42, {"id": 42, "name": "Tacos"})

        assert await assembler.get_details(42) == {"id": 42, "name": "Tacos"}
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_relational_error_propagates(
        self, fake_redis: FakeRedis, observer: RecordingObserver
    ) -> None:
        """Database errors reach the caller and nothing is cached."""
        fetch = CountingFetch(error=RuntimeError("connection reset"))
        assembler, _ = make_assembler(fake_redis, observer, fetch)

        with pytest.raises(RuntimeError, match="connection reset"):
            await assembler.get_details(42)
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_disabled_cache(self, observer: RecordingObserver) -> None:
        """Without a backend every call goes to the database."""
        fetch = CountingFetch({42: make_recipe()})
        assembler, _ = make_assembler(None, observer, fetch)

        first = await assembler.get_details(42)
        second = await assembler.get_details(42)

        assert first == second
        assert first is not None and first["name"] == "tacos"
        assert len(fetch.calls) == 2
        assert "failed" not in observer.names()

    @pytest.mark.asyncio
    async def test_failing_cache(self, fake_redis: FakeRedis, observer: RecordingObserver) -> None:
        """Backend errors never prevent the view from being served."""
        fake_redis.fail = True
        fetch = CountingFetch({42: make_recipe()})
        assembler, _ = make_assembler(fake_redis, observer, fetch)

        view = await assembler.get_details(42)

        assert view is not None and view["id"] == 42
        assert observer.names() == ["failed", "failed"]

    @pytest.mark.asyncio
    async def test_refresh(self, fake_redis: FakeRedis, observer: RecordingObserver) -> None:
        """Refresh drops the cached view and re-fetches."""
        recipe = make_recipe()
        fetch = CountingFetch({42: recipe})
        assembler, _ = make_assembler(fake_redis, observer, fetch)
        await assembler.get_details(42)

        recipe.name = "birria tacos"
        refreshed = await assembler.refresh(42)

        assert refreshed is not None and refreshed["name"] == "birria tacos"
        assert len(fetch.calls) == 2
