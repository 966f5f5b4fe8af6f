"""Cache key schema for the recipe API.

Key format: {kind}:{id}

Where:
- kind: short stable tag naming the entity kind ("recipe", "recipeDetail", ...)
- id: the entity's integer primary key

Flat rows and detail views use different kinds, so a recipe row and its
assembled detail view never share a key.
"""

from __future__ import annotations

from enum import Enum


class CacheKind(str, Enum):
    """Entity kinds that own a cache namespace."""

    RECIPE = "recipe"
    RECIPE_DETAIL = "recipeDetail"
    REGION = "region"
    REGION_DETAIL = "regionDetail"
    NATION = "nation"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"
    INGREDIENT = "ingredient"
    RECIPE_IMAGE = "RecipeImage"
    RECIPE_INGREDIENT = "RecipeIngredient"


KEY_SEPARATOR = ":"


def cache_key(kind: str, entity_id: int) -> str:
    """Build the key for an entity of the given kind."""
    return f"{kind}{KEY_SEPARATOR}{entity_id}"

