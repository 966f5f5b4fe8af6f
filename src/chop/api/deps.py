"""Shared FastAPI dependencies for the recipe API routers.

Provides reusable components to reduce boilerplate across endpoints:
- Repository and detail-assembler providers bound to the request session
- List query parameters
- The list response envelope
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chop.cache.detail import DetailAssembler, recipe_details, region_details
from chop.core.model import DEFAULT_PAGE_SIZE, ListQuery
from chop.core.views import RecipeDetailView, RegionDetailView
from chop.persistence.db import get_session
from chop.persistence.repositories import RecipeRepository, RegionRepository
from chop.persistence.tables import RecipeTable, RegionTable

RecipeDetails = DetailAssembler[RecipeTable, RecipeDetailView]
RegionDetails = DetailAssembler[RegionTable, RegionDetailView]


# =============================================================================
# Repositories and assemblers
# =============================================================================


async def get_recipe_repo(session: AsyncSession = Depends(get_session)) -> RecipeRepository:
    return RecipeRepository(session)


async def get_region_repo(session: AsyncSession = Depends(get_session)) -> RegionRepository:
    return RegionRepository(session)


async def get_recipe_details(session: AsyncSession = Depends(get_session)) -> RecipeDetails:
    return recipe_details(session)


async def get_region_details(session: AsyncSession = Depends(get_session)) -> RegionDetails:
    return region_details(session)


# =============================================================================
# Query parameters and responses
# =============================================================================


def list_query(
    category: str | None = Query(None),
    subcategory: str | None = Query(None),
    nation: str | None = Query(None),
    region: str | None = Query(None),
    time: int | None = Query(None, gt=0, description="Maximum preparation time"),
    cost: float | None = Query(None, ge=0, description="Maximum cost"),
    sort: str | None = Query(None, description="name, time or cost"),
    limit: int = Query(DEFAULT_PAGE_SIZE, gt=0, description="Page size, at most 100"),
    page: int = Query(1, gt=0),
    search: str | None = Query(None),
) -> ListQuery:
    """FastAPI dependency collecting the list filters into a ``ListQuery``."""
    return ListQuery(
        category=category,
        subcategory=subcategory,
        nation=nation,
        region=region,
        time=time,
        cost=cost,
        sort=sort,
        limit=limit,
        page=page,
        search=search,
    )


def list_response(results: Sequence[Any]) -> dict[str, Any]:
    """Wrap a page of results in the list envelope."""
    return {"totalResults": len(results), "results": list(results)}
