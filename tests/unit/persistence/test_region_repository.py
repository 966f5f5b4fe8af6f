"""Tests for RegionRepository and LookupRepository on SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from chop.core.model import ListQuery, RecipeIn
from chop.persistence.repositories import LookupRepository, RecipeRepository, RegionRepository
from chop.persistence.tables import IngredientTable, NationTable


def recipe(name: str, nation: str, region: str, ingredient: str) -> RecipeIn:
    return RecipeIn(
        name=name,
        description=f"{name} description",
        nation=nation,
        region=region,
        ingredients=[{"name": ingredient, "quantity": 1.0, "unit": "g"}],
        instructions=["Cook"],
        time=10,
    )


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> None:
    recipes = RecipeRepository(db_session)
    await recipes.create(recipe("Tacos", "Mexico", "Latin America", "Salsa"))
    await recipes.create(recipe("Feijoada", "Brazil", "Latin America", "Black beans"))
    await recipes.create(recipe("Pho", "Vietnam", "Southeast Asia", "Rice noodles"))
    await recipes.create(recipe("Mole", "Mexico", "Latin America", "Chocolate"))
    await db_session.commit()


class TestRegionRepository:
    """Test region reads."""

    @pytest.mark.asyncio
    async def test_nations_linked_once(self, db_session: AsyncSession, seeded: None) -> None:
        repo = RegionRepository(db_session)
        region = await repo.find_by_name("Latin")
        assert region is not None

        detail = await repo.fetch_with_includes(region.id)

        assert detail is not None
        assert sorted(nation.name for nation in detail.nations) == ["brazil", "mexico"]

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, db_session: AsyncSession, seeded: None) -> None:
        regions = await RegionRepository(db_session).list_regions(ListQuery())

        assert [region.name for region in regions] == ["latin america", "southeast asia"]

    @pytest.mark.asyncio
    async def test_search_matches_nation(self, db_session: AsyncSession, seeded: None) -> None:
        regions = await RegionRepository(db_session).list_regions(ListQuery(search="viet"))

        assert [region.name for region in regions] == ["southeast asia"]

    @pytest.mark.asyncio
    async def test_nation_filter(self, db_session: AsyncSession, seeded: None) -> None:
        regions = await RegionRepository(db_session).list_regions(ListQuery(nation="Brazil"))

        assert [region.name for region in regions] == ["latin america"]

    @pytest.mark.asyncio
    async def test_missing(self, db_session: AsyncSession, seeded: None) -> None:
        repo = RegionRepository(db_session)

        assert await repo.find_by_name("antarctica") is None
        assert await repo.fetch_with_includes(404) is None


class TestLookupRepository:
    """Test listing of name-only lookup tables."""

    @pytest.mark.asyncio
    async def test_list_by_name(self, db_session: AsyncSession, seeded: None) -> None:
        rows = await LookupRepository(db_session, IngredientTable).list(ListQuery())

        assert [row.name for row in rows] == ["black beans", "chocolate", "rice noodles", "salsa"]

    @pytest.mark.asyncio
    async def test_search_and_paging(self, db_session: AsyncSession, seeded: None) -> None:
        repo = LookupRepository(db_session, NationTable)

        assert [row.name for row in await repo.list(ListQuery(search="IC"))] == ["mexico"]
        assert [row.name for row in await repo.list(ListQuery(limit=1, page=2))] == ["mexico"]
