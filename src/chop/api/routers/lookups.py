"""Lookup API router for the name-only entities.

Endpoints:
- GET /ingredients                 - List ingredients
- GET /ingredients/{name}/recipes  - Recipes using an ingredient
- GET /categories                  - List categories
- GET /subcategories               - List subcategories
- GET /nations                     - List nations

Every list populates the flat per-row cache of its kind.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chop.api.deps import get_recipe_repo, list_query, list_response
from chop.api.errors import BadRequestError
from chop.cache.instances import (
    category_cache,
    ingredient_cache,
    nation_cache,
    recipe_cache,
    subcategory_cache,
)
from chop.cache.typed import TypedCache
from chop.core.model import ListQuery
from chop.core.text import normalize_name
from chop.core.views import FlatRow
from chop.persistence.db import get_session
from chop.persistence.repositories import LookupRepository, RecipeRepository, lookup_row
from chop.persistence.tables import (
    CategoryTable,
    IngredientTable,
    NationTable,
    SubcategoryTable,
)

router = APIRouter(tags=["Lookups"])


async def get_ingredient_repo(
    session: AsyncSession = Depends(get_session),
) -> LookupRepository[IngredientTable]:
    return LookupRepository(session, IngredientTable)


async def get_category_repo(
    session: AsyncSession = Depends(get_session),
) -> LookupRepository[CategoryTable]:
    return LookupRepository(session, CategoryTable)


async def get_subcategory_repo(
    session: AsyncSession = Depends(get_session),
) -> LookupRepository[SubcategoryTable]:
    return LookupRepository(session, SubcategoryTable)


async def get_nation_repo(
    session: AsyncSession = Depends(get_session),
) -> LookupRepository[NationTable]:
    return LookupRepository(session, NationTable)


async def _cached_list(rows: Sequence[Any], cache: TypedCache[FlatRow]) -> dict[str, Any]:
    results = []
    for row in rows:
        flat = lookup_row(row)
        await cache.set_cache(row.id, flat)
        results.append(flat)
    return list_response(results)


@router.get("/ingredients")
async def get_all_ingredients(
    query: ListQuery = Depends(list_query),
    repo: LookupRepository[IngredientTable] = Depends(get_ingredient_repo),
) -> dict[str, Any]:
    return await _cached_list(await repo.list(query), ingredient_cache)


@router.get("/ingredients/{name}/recipes")
async def get_recipes_by_ingredient(
    name: str,
    query: ListQuery = Depends(list_query),
    repo: RecipeRepository = Depends(get_recipe_repo),
) -> dict[str, Any]:
    """List recipes using an ingredient whose name contains ``name``."""
    if not normalize_name(name):
        raise BadRequestError("Ingredient name must not be empty")
    rows = []
    for recipe in await repo.list_by_ingredient(name, query):
        row = recipe.to_row()
        await recipe_cache.set_cache(recipe.id, row)
        rows.append(row)
    return list_response(rows)


@router.get("/categories")
async def get_all_categories(
    query: ListQuery = Depends(list_query),
    repo: LookupRepository[CategoryTable] = Depends(get_category_repo),
) -> dict[str, Any]:
    return await _cached_list(await repo.list(query), category_cache)


@router.get("/subcategories")
async def get_all_subcategories(
    query: ListQuery = Depends(list_query),
    repo: LookupRepository[SubcategoryTable] = Depends(get_subcategory_repo),
) -> dict[str, Any]:
    return await _cached_list(await repo.list(query), subcategory_cache)


@router.get("/nations")
async def get_all_nations(
    query: ListQuery = Depends(list_query),
    repo: LookupRepository[NationTable] = Depends(get_nation_repo),
) -> dict[str, Any]:
    return await _cached_list(await repo.list(query), nation_cache)
