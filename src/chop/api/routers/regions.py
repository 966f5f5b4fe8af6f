"""Region API router.

Endpoints:
- GET /regions                      - List regions
- GET /regions/name/{name}          - Region detail by name
- GET /regions/name/{name}/nations  - Nations of a region, by name
- GET /regions/{id}                 - Region detail
- GET /regions/{id}/nations         - Nations of a region
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from chop.api.deps import (
    RegionDetails,
    get_region_details,
    get_region_repo,
    list_query,
    list_response,
)
from chop.api.errors import NotFoundError
from chop.cache.instances import nation_cache, region_cache
from chop.core.model import ListQuery
from chop.core.views import RegionDetailView
from chop.persistence.repositories import RegionRepository, lookup_row

router = APIRouter(prefix="/regions", tags=["Regions"])


async def _require_details(details: RegionDetails, region_id: int) -> RegionDetailView:
    view = await details.get_details(region_id)
    if view is None:
        raise NotFoundError("Region", region_id)
    return view


async def _region_id_by_name(repo: RegionRepository, name: str) -> int:
    region = await repo.find_by_name(name)
    if region is None:
        raise NotFoundError("Region", name)
    return region.id


async def _nations(view: RegionDetailView) -> dict[str, Any]:
    for nation in view["nations"]:
        await nation_cache.set_cache(nation["id"], dict(nation))
    return list_response(view["nations"])


@router.get("")
async def get_all_regions(
    query: ListQuery = Depends(list_query),
    repo: RegionRepository = Depends(get_region_repo),
) -> dict[str, Any]:
    """List regions, populating the flat per-row cache."""
    rows = []
    for region in await repo.list_regions(query):
        row = lookup_row(region)
        await region_cache.set_cache(region.id, row)
        rows.append(row)
    return list_response(rows)


@router.get("/name/{name}")
async def get_region_by_name(
    name: str,
    repo: RegionRepository = Depends(get_region_repo),
    details: RegionDetails = Depends(get_region_details),
) -> dict[str, Any]:
    region_id = await _region_id_by_name(repo, name)
    return dict(await _require_details(details, region_id))


@router.get("/name/{name}/nations")
async def get_region_nations_by_name(
    name: str,
    repo: RegionRepository = Depends(get_region_repo),
    details: RegionDetails = Depends(get_region_details),
) -> dict[str, Any]:
    region_id = await _region_id_by_name(repo, name)
    return await _nations(await _require_details(details, region_id))


@router.get("/{region_id}")
async def get_region(
    region_id: int,
    details: RegionDetails = Depends(get_region_details),
) -> dict[str, Any]:
    """Get the region detail view."""
    return dict(await _require_details(details, region_id))


@router.get("/{region_id}/nations")
async def get_region_nations(
    region_id: int,
    details: RegionDetails = Depends(get_region_details),
) -> dict[str, Any]:
    return await _nations(await _require_details(details, region_id))
