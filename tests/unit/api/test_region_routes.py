"""Tests for the region and lookup routers."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from chop.api.app import create_app
from chop.api.deps import get_recipe_repo, get_region_details, get_region_repo
from chop.api.routers import lookups
from chop.config import settings
from chop.persistence.db import get_session
from chop.persistence.tables import (
    CategoryTable,
    IngredientTable,
    NationTable,
    RecipeTable,
    RegionTable,
)
from tests.conftest import FakeRedis

API = "/chop/api"

REGION_DETAIL: dict[str, Any] = {
    "id": 2,
    "name": "latin america",
    "nations": [{"id": 1, "name": "mexico"}, {"id": 6, "name": "peru"}],
}


@pytest.fixture
def region_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def recipe_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def lookup_repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def details() -> AsyncMock:
    assembler = AsyncMock()
    assembler.get_details.return_value = REGION_DETAIL
    return assembler


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    region_repo: AsyncMock,
    recipe_repo: AsyncMock,
    lookup_repo: AsyncMock,
    details: AsyncMock,
) -> TestClient:
    monkeypatch.setattr(settings, "enable_rate_limiting", False)
    app = create_app()
    app.dependency_overrides[get_session] = lambda: AsyncMock()
    app.dependency_overrides[get_region_repo] = lambda: region_repo
    app.dependency_overrides[get_recipe_repo] = lambda: recipe_repo
    app.dependency_overrides[get_region_details] = lambda: details
    for provider in (
        lookups.get_ingredient_repo,
        lookups.get_category_repo,
        lookups.get_subcategory_repo,
        lookups.get_nation_repo,
    ):
        app.dependency_overrides[provider] = lambda: lookup_repo
    return TestClient(app)


class TestRegions:
    """Test region endpoints."""

    def test_list_populates_flat_cache(
        self, client: TestClient, region_repo: AsyncMock, shared_backend: FakeRedis
    ) -> None:
        region_repo.list_regions.return_value = [RegionTable(id=2, name="latin america")]

        response = client.get(f"{API}/regions")

        assert response.json() == {
            "totalResults": 1,
            "results": [{"id": 2, "name": "latin america"}],
        }
        assert "region:2" in shared_backend.store

    def test_get_region(self, client: TestClient, details: AsyncMock) -> None:
        response = client.get(f"{API}/regions/2")

        assert response.status_code == 200
        assert response.json() == REGION_DETAIL
        details.get_details.assert_awaited_once_with(2)

    def test_get_missing_region(self, client: TestClient, details: AsyncMock) -> None:
        details.get_details.return_value = None

        assert client.get(f"{API}/regions/99").status_code == 404

    def test_region_by_name(
        self, client: TestClient, region_repo: AsyncMock, details: AsyncMock
    ) -> None:
        region_repo.find_by_name.return_value = RegionTable(id=2, name="latin america")

        response = client.get(f"{API}/regions/name/Latin")

        assert response.status_code == 200
        details.get_details.assert_awaited_once_with(2)

    def test_unknown_region_name(self, client: TestClient, region_repo: AsyncMock) -> None:
        region_repo.find_by_name.return_value = None

        response = client.get(f"{API}/regions/name/atlantis")

        assert response.status_code == 404
        assert "atlantis" in response.json()["messages"][0]["text"]

    def test_nations(self, client: TestClient, shared_backend: FakeRedis) -> None:
        """Nations of a region come from its detail view and fill the nation cache."""
        response = client.get(f"{API}/regions/2/nations")

        assert response.json()["totalResults"] == 2
        assert {"nation:1", "nation:6"} <= set(shared_backend.store)

    def test_nations_by_name(self, client: TestClient, region_repo: AsyncMock) -> None:
        region_repo.find_by_name.return_value = RegionTable(id=2, name="latin america")

        response = client.get(f"{API}/regions/name/latin america/nations")

        assert response.json()["results"][1] == {"id": 6, "name": "peru"}


class TestLookups:
    """Test the name-only lookup lists."""

    @pytest.mark.parametrize(
        ("path", "row", "key"),
        [
            ("/ingredients", IngredientTable(id=5, name="tortilla"), "ingredient:5"),
            ("/categories", CategoryTable(id=3, name="dinner"), "category:3"),
            ("/nations", NationTable(id=1, name="mexico"), "nation:1"),
        ],
    )
    def test_list_populates_flat_cache(
        self,
        client: TestClient,
        lookup_repo: AsyncMock,
        shared_backend: FakeRedis,
        path: str,
        row: Any,
        key: str,
    ) -> None:
        lookup_repo.list.return_value = [row]

        response = client.get(f"{API}{path}", params={"search": "o"})

        assert response.status_code == 200
        assert response.json()["results"] == [{"id": row.id, "name": row.name}]
        assert key in shared_backend.store
        assert lookup_repo.list.await_args.args[0].search == "o"

    def test_lists_work_without_cache(
        self, client: TestClient, lookup_repo: AsyncMock, no_backend: None
    ) -> None:
        lookup_repo.list.return_value = [CategoryTable(id=3, name="dinner")]

        response = client.get(f"{API}/subcategories")

        assert response.status_code == 200
        assert response.json()["totalResults"] == 1

    def test_recipes_by_ingredient(self, client: TestClient, recipe_repo: AsyncMock) -> None:
        recipe_repo.list_by_ingredient.return_value = [
            RecipeTable(id=42, name="tacos", description="d", time=30, cost=0)
        ]

        response = client.get(f"{API}/ingredients/tortilla/recipes")

        assert response.json()["results"][0]["id"] == 42
        assert recipe_repo.list_by_ingredient.await_args.args[0] == "tortilla"
