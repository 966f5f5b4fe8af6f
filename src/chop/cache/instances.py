"""Process-wide cache instances, one per entity kind.

Each instance owns a disjoint key namespace, so they share the backend
connection without any coordination between them.
"""

from __future__ import annotations

from typing import Any

from chop.cache.keys import CacheKind
from chop.cache.typed import TypedCache
from chop.config import settings
from chop.core.views import (
    FlatRow,
    RecipeDetailView,
    RecipeIngredientView,
    RegionDetailView,
)

recipe_cache: TypedCache[FlatRow] = TypedCache(CacheKind.RECIPE.value, ttl=settings.cache_ttl)
recipe_detail_cache: TypedCache[RecipeDetailView] = TypedCache(
    CacheKind.RECIPE_DETAIL.value, ttl=settings.cache_ttl
)
region_cache: TypedCache[FlatRow] = TypedCache(CacheKind.REGION.value, ttl=settings.cache_ttl)
region_detail_cache: TypedCache[RegionDetailView] = TypedCache(
    CacheKind.REGION_DETAIL.value, ttl=settings.cache_ttl
)
nation_cache: TypedCache[FlatRow] = TypedCache(CacheKind.NATION.value, ttl=settings.cache_ttl)
category_cache: TypedCache[FlatRow] = TypedCache(
    CacheKind.CATEGORY.value, ttl=settings.cache_ttl
)
subcategory_cache: TypedCache[FlatRow] = TypedCache(
    CacheKind.SUBCATEGORY.value, ttl=settings.cache_ttl
)
ingredient_cache: TypedCache[FlatRow] = TypedCache(
    CacheKind.INGREDIENT.value, ttl=settings.cache_ttl
)
recipe_image_cache: TypedCache[FlatRow] = TypedCache(
    CacheKind.RECIPE_IMAGE.value, ttl=settings.cache_ttl
)
recipe_ingredient_cache: TypedCache[list[RecipeIngredientView]] = TypedCache(
    CacheKind.RECIPE_INGREDIENT.value, ttl=settings.cache_ttl
)

ALL_CACHES: dict[CacheKind, TypedCache[Any]] = {
    CacheKind.RECIPE: recipe_cache,
    CacheKind.RECIPE_DETAIL: recipe_detail_cache,
    CacheKind.REGION: region_cache,
    CacheKind.REGION_DETAIL: region_detail_cache,
    CacheKind.NATION: nation_cache,
    CacheKind.CATEGORY: category_cache,
    CacheKind.SUBCATEGORY: subcategory_cache,
    CacheKind.INGREDIENT: ingredient_cache,
    CacheKind.RECIPE_IMAGE: recipe_image_cache,
    CacheKind.RECIPE_INGREDIENT: recipe_ingredient_cache,
}


async def invalidate_region(region_id: int) -> None:
    """Drop the flat row and detail view of a region."""
    await region_cache.invalidate_cache(region_id)
    await region_detail_cache.invalidate_cache(region_id)


async def invalidate_recipe(recipe_id: int, region_id: int | None = None) -> None:
    """Drop every cached view of a recipe after it or a child collection changed.

    The flat row, the assembled detail view and the ingredient list are all
    cleared. When a region id is given, that region's views are cleared too.
    """
    await recipe_cache.invalidate_cache(recipe_id)
    await recipe_detail_cache.invalidate_cache(recipe_id)
    await recipe_ingredient_cache.invalidate_cache(recipe_id)
    if region_id is not None:
        await invalidate_region(region_id)
