"""Tests for request validation models."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from chop.core.model import (
    MAX_PAGE_SIZE,
    AliasesIn,
    IngredientPatch,
    ListQuery,
    RecipeIn,
    RecipePatch,
)


def recipe_body(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "name": "Tacos",
        "description": "Corn tortillas with fillings",
        "nation": "Mexico",
        "region": "Latin America",
        "ingredients": [{"name": "tortilla", "quantity": 3, "unit": "pcs"}],
        "instructions": ["Warm tortillas", "Add filling"],
        "time": 30,
    }
    body.update(overrides)
    return body


class TestRecipeIn:
    """Test the full recipe body."""

    def test_minimal_valid(self) -> None:
        """Optional collections default to empty and cost to zero."""
        recipe = RecipeIn.model_validate(recipe_body())

        assert recipe.aliases == []
        assert recipe.categories == []
        assert recipe.images == []
        assert recipe.cost == 0
        assert recipe.ingredients[0].quantity == 3

    @pytest.mark.parametrize(
        "missing", ["name", "description", "nation", "region", "ingredients", "instructions", "time"]
    )
    def test_required_fields(self, missing: str) -> None:
        body = recipe_body()
        del body[missing]
        with pytest.raises(ValidationError):
            RecipeIn.model_validate(body)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"time": 0},
            {"time": "30"},
            {"cost": -1},
            {"name": 5},
            {"ingredients": []},
            {"instructions": []},
            {"instructions": [1, 2]},
            {"ingredients": [{"name": "salt", "quantity": "a pinch", "unit": "g"}]},
            {"ingredients": [{"name": "salt", "unit": "g"}]},
            {"aliases": [""]},
            {"images": [{"caption": "no url"}]},
        ],
    )
    def test_invalid_values(self, overrides: dict[str, Any]) -> None:
        """Bad types and out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            RecipeIn.model_validate(recipe_body(**overrides))

    def test_images(self) -> None:
        recipe = RecipeIn.model_validate(
            recipe_body(images=[{"url": "https://img/1.jpg"}, {"url": "u", "type": "png"}])
        )
        assert recipe.images[0].type is None
        assert recipe.images[1].type == "png"


class TestRecipePatch:
    """Test the partial update body."""

    def test_empty_patch(self) -> None:
        """Every field is optional."""
        patch = RecipePatch.model_validate({})
        assert patch.name is None
        assert patch.ingredients is None

    def test_ingredient_without_quantity(self) -> None:
        """Patched ingredients may leave quantity and unit out."""
        patch = RecipePatch.model_validate({"ingredients": [{"name": "salt"}]})
        assert patch.ingredients == [IngredientPatch(name="salt")]

    def test_invalid_time(self) -> None:
        with pytest.raises(ValidationError):
            RecipePatch.model_validate({"time": -5})


class TestAliasesIn:
    def test_requires_entries(self) -> None:
        with pytest.raises(ValidationError):
            AliasesIn.model_validate({"aliases": []})


class TestListQuery:
    """Test list filters and paging."""

    def test_defaults(self) -> None:
        query = ListQuery()
        assert query.limit == 10
        assert query.page == 1
        assert query.offset == 0

    def test_limit_is_clamped(self) -> None:
        assert ListQuery(limit=500).limit == MAX_PAGE_SIZE

    def test_offset(self) -> None:
        assert ListQuery(limit=20, page=3).offset == 40

    def test_filters_are_normalized(self) -> None:
        """String filters compare against normalized stored names."""
        query = ListQuery(category=" Dinner ", nation="MEXICO", search="  ", sort="Time")
        assert query.category == "dinner"
        assert query.nation == "mexico"
        assert query.search is None
        assert query.sort == "time"

    @pytest.mark.parametrize("field", ["limit", "page"])
    def test_rejects_non_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            ListQuery.model_validate({field: 0})
