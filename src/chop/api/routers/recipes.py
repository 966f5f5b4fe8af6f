"""Recipe API router.

Endpoints:
- GET    /recipes                                   - List recipes
- POST   /recipes                                   - Create recipe
- GET    /recipes/name/{name}                       - Recipes by name or alias
- GET    /recipes/{id}                              - Recipe detail
- PUT    /recipes/{id}                              - Replace recipe
- PATCH  /recipes/{id}                              - Partial update
- DELETE /recipes/{id}                              - Delete recipe
- GET    /recipes/{id}/names                        - Name and aliases
- POST   /recipes/{id}/names                        - Replace aliases
- PUT    /recipes/{id}/names                        - Add aliases
- GET    /recipes/{id}/ingredients                  - Ingredient list
- POST   /recipes/{id}/ingredients                  - Replace ingredients
- PUT    /recipes/{id}/ingredients                  - Add or update ingredients
- DELETE /recipes/{id}/ingredients/{ingredient_id}  - Remove ingredient
- GET    /recipes/{id}/instructions                 - Instructions in step order
- PUT    /recipes/{id}/instructions                 - Replace instructions
- GET    /recipes/{id}/categories                   - Category names
- PUT    /recipes/{id}/categories                   - Attach categories
- DELETE /recipes/{id}/categories/{category_id}     - Detach category
- GET    /recipes/{id}/subcategories                - Subcategory names
- PUT    /recipes/{id}/subcategories                - Attach subcategories
- DELETE /recipes/{id}/subcategories/{subcategory_id}
- GET    /recipes/{id}/images                       - Images
- POST   /recipes/{id}/images                       - Add image
- DELETE /recipes/{id}/images/{image_id}            - Remove image

Detail reads go through the recipe detail cache. Every write commits first,
then drops the cached views it made stale. Writes that answer with the
recipe detail reassemble it straight away.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from chop.api.deps import (
    RecipeDetails,
    get_recipe_details,
    get_recipe_repo,
    list_query,
    list_response,
)
from chop.api.errors import BadRequestError, NotFoundError
from chop.cache.instances import (
    invalidate_recipe,
    invalidate_region,
    recipe_cache,
    recipe_image_cache,
    recipe_ingredient_cache,
)
from chop.core.model import (
    AliasesIn,
    ImageIn,
    IngredientsIn,
    InstructionsIn,
    ListQuery,
    NamesIn,
    RecipeIn,
    RecipePatch,
)
from chop.core.text import normalize_name
from chop.core.views import RecipeDetailView
from chop.persistence.db import get_session
from chop.persistence.repositories import InvalidChange, RecipeChange, RecipeRepository
from chop.persistence.tables import RecipeTable

router = APIRouter(prefix="/recipes", tags=["Recipes"])


async def _invalidate_regions(change: RecipeChange) -> None:
    for region_id in sorted(change.region_ids):
        await invalidate_region(region_id)


async def _require_details(details: RecipeDetails, recipe_id: int) -> RecipeDetailView:
    view = await details.get_details(recipe_id)
    if view is None:
        raise NotFoundError("Recipe", recipe_id)
    return view


async def _refreshed(details: RecipeDetails, recipe_id: int) -> dict[str, Any]:
    """Drop the recipe's flat caches and reassemble its detail view."""
    await recipe_cache.invalidate_cache(recipe_id)
    await recipe_ingredient_cache.invalidate_cache(recipe_id)
    view = await details.refresh(recipe_id)
    if view is None:
        raise NotFoundError("Recipe", recipe_id)
    return dict(view)


async def _cache_rows(recipes: Iterable[RecipeTable]) -> list[dict[str, Any]]:
    rows = []
    for recipe in recipes:
        row = recipe.to_row()
        await recipe_cache.set_cache(recipe.id, row)
        rows.append(row)
    return rows


def _names_view(view: RecipeDetailView) -> dict[str, Any]:
    return {"id": view["id"], "name": view["name"], "aliases": view["aliases"]}


# =============================================================================
# Recipes
# =============================================================================


@router.get("")
async def get_all_recipes(
    query: ListQuery = Depends(list_query),
    repo: RecipeRepository = Depends(get_recipe_repo),
) -> dict[str, Any]:
    """List recipes, populating the flat per-row cache."""
    recipes = await repo.list_recipes(query)
    return list_response(await _cache_rows(recipes))


@router.post("", status_code=201)
async def post_recipe(
    data: RecipeIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    change = await repo.create(data)
    await session.commit()
    await _invalidate_regions(change)
    return await _refreshed(details, change.recipe_id)


@router.get("/name/{name}")
async def get_recipes_by_name(
    name: str,
    query: ListQuery = Depends(list_query),
    repo: RecipeRepository = Depends(get_recipe_repo),
) -> dict[str, Any]:
    """List recipes whose name or alias contains ``name``."""
    if not normalize_name(name):
        raise BadRequestError("Recipe name must not be empty")
    recipes = await repo.list_by_name(name, query)
    return list_response(await _cache_rows(recipes))


@router.get("/{recipe_id}")
async def get_recipe(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    """Get the recipe detail view."""
    return dict(await _require_details(details, recipe_id))


@router.put("/{recipe_id}")
async def put_recipe(
    recipe_id: int,
    data: RecipeIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    change = await repo.replace(recipe_id, data)
    if change is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    await _invalidate_regions(change)
    return await _refreshed(details, recipe_id)


@router.patch("/{recipe_id}")
async def patch_recipe(
    recipe_id: int,
    patch: RecipePatch,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Update the given fields; child collections are merged."""
    try:
        change = await repo.update(recipe_id, patch)
    except InvalidChange as exc:
        await session.rollback()
        raise BadRequestError(str(exc)) from exc
    if change is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    await _invalidate_regions(change)
    return await _refreshed(details, recipe_id)


@router.delete("/{recipe_id}", status_code=204)
async def delete_recipe(
    recipe_id: int,
    repo: RecipeRepository = Depends(get_recipe_repo),
    session: AsyncSession = Depends(get_session),
) -> Response:
    change = await repo.delete(recipe_id)
    if change is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    await invalidate_recipe(recipe_id)
    await _invalidate_regions(change)
    return Response(status_code=204)


# =============================================================================
# Names (aliases)
# =============================================================================


@router.get("/{recipe_id}/names")
async def get_recipe_names(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    return _names_view(await _require_details(details, recipe_id))


@router.post("/{recipe_id}/names")
async def post_recipe_names(
    recipe_id: int,
    body: AliasesIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Replace every alias of the recipe."""
    if await repo.replace_aliases(recipe_id, body.aliases) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


@router.put("/{recipe_id}/names")
async def put_recipe_names(
    recipe_id: int,
    body: AliasesIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Add aliases, keeping the existing ones."""
    if await repo.add_aliases(recipe_id, body.aliases) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


# =============================================================================
# Ingredients
# =============================================================================


@router.get("/{recipe_id}/ingredients")
async def get_recipe_ingredients(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    """Ingredient list, cached separately from the detail view."""
    ingredients = await recipe_ingredient_cache.get_cache(recipe_id)
    if ingredients is None:
        view = await _require_details(details, recipe_id)
        ingredients = view["ingredients"]
        await recipe_ingredient_cache.set_cache(recipe_id, ingredients)
    return list_response(ingredients)


@router.post("/{recipe_id}/ingredients")
async def post_recipe_ingredients(
    recipe_id: int,
    body: IngredientsIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Replace the ingredient list."""
    if await repo.replace_ingredients(recipe_id, body.ingredients) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


@router.put("/{recipe_id}/ingredients")
async def put_recipe_ingredients(
    recipe_id: int,
    body: IngredientsIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Add ingredients; ones already on the recipe get the new quantity and unit."""
    if await repo.add_ingredients(recipe_id, body.ingredients) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


@router.delete("/{recipe_id}/ingredients/{ingredient_id}", status_code=204)
async def delete_recipe_ingredient(
    recipe_id: int,
    ingredient_id: int,
    repo: RecipeRepository = Depends(get_recipe_repo),
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not await repo.exists(recipe_id):
        raise NotFoundError("Recipe", recipe_id)
    if not await repo.remove_ingredient(recipe_id, ingredient_id):
        raise NotFoundError("Ingredient", ingredient_id)
    await session.commit()
    await invalidate_recipe(recipe_id)
    return Response(status_code=204)


# =============================================================================
# Instructions
# =============================================================================


@router.get("/{recipe_id}/instructions")
async def get_recipe_instructions(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    return list_response((await _require_details(details, recipe_id))["instructions"])


@router.put("/{recipe_id}/instructions")
async def put_recipe_instructions(
    recipe_id: int,
    body: InstructionsIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Replace all instructions; the given order becomes steps 1..n."""
    if await repo.replace_instructions(recipe_id, body.instructions) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


# =============================================================================
# Categories and subcategories
# =============================================================================


@router.get("/{recipe_id}/categories")
async def get_recipe_categories(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    return list_response((await _require_details(details, recipe_id))["categories"])


@router.put("/{recipe_id}/categories")
async def put_recipe_categories(
    recipe_id: int,
    body: NamesIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Attach categories by name, creating unknown ones."""
    if await repo.add_categories(recipe_id, body.names) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


@router.delete("/{recipe_id}/categories/{category_id}", status_code=204)
async def delete_recipe_category(
    recipe_id: int,
    category_id: int,
    repo: RecipeRepository = Depends(get_recipe_repo),
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not await repo.exists(recipe_id):
        raise NotFoundError("Recipe", recipe_id)
    if not await repo.remove_category(recipe_id, category_id):
        raise NotFoundError("Category", category_id)
    await session.commit()
    await invalidate_recipe(recipe_id)
    return Response(status_code=204)


@router.get("/{recipe_id}/subcategories")
async def get_recipe_subcategories(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    return list_response((await _require_details(details, recipe_id))["subcategories"])


@router.put("/{recipe_id}/subcategories")
async def put_recipe_subcategories(
    recipe_id: int,
    body: NamesIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    details: RecipeDetails = Depends(get_recipe_details),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    if await repo.add_subcategories(recipe_id, body.names) is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    return await _refreshed(details, recipe_id)


@router.delete("/{recipe_id}/subcategories/{subcategory_id}", status_code=204)
async def delete_recipe_subcategory(
    recipe_id: int,
    subcategory_id: int,
    repo: RecipeRepository = Depends(get_recipe_repo),
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not await repo.exists(recipe_id):
        raise NotFoundError("Recipe", recipe_id)
    if not await repo.remove_subcategory(recipe_id, subcategory_id):
        raise NotFoundError("Subcategory", subcategory_id)
    await session.commit()
    await invalidate_recipe(recipe_id)
    return Response(status_code=204)


# =============================================================================
# Images
# =============================================================================


@router.get("/{recipe_id}/images")
async def get_recipe_images(
    recipe_id: int,
    details: RecipeDetails = Depends(get_recipe_details),
) -> dict[str, Any]:
    return list_response((await _require_details(details, recipe_id))["images"])


@router.post("/{recipe_id}/images", status_code=201)
async def post_recipe_image(
    recipe_id: int,
    image: ImageIn,
    repo: RecipeRepository = Depends(get_recipe_repo),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Attach an image; posting a known URL updates its type and caption."""
    row = await repo.add_image(recipe_id, image)
    if row is None:
        raise NotFoundError("Recipe", recipe_id)
    await session.commit()
    await invalidate_recipe(recipe_id)
    image_row = row.to_row()
    await recipe_image_cache.set_cache(row.id, image_row)
    return image_row


@router.delete("/{recipe_id}/images/{image_id}", status_code=204)
async def delete_recipe_image(
    recipe_id: int,
    image_id: int,
    repo: RecipeRepository = Depends(get_recipe_repo),
    session: AsyncSession = Depends(get_session),
) -> Response:
    if not await repo.exists(recipe_id):
        raise NotFoundError("Recipe", recipe_id)
    if not await repo.remove_image(recipe_id, image_id):
        raise NotFoundError("Image", image_id)
    await session.commit()
    await invalidate_recipe(recipe_id)
    await recipe_image_cache.invalidate_cache(image_id)
    return Response(status_code=204)
