"""Read-through assembly of denormalized detail views.

A detail view is a recipe or region flattened together with its
associations into one JSON document. ``DetailAssembler`` serves it from the
detail cache when present and otherwise runs the relational fetch, projects
the entity and writes the result back before returning it.

Cache problems never escape (``TypedCache`` absorbs them); relational
errors raised by the fetch propagate to the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import inspect

from chop.cache.instances import recipe_detail_cache, region_detail_cache
from chop.cache.typed import TypedCache
from chop.core.views import (
    ImageView,
    NationView,
    RecipeDetailView,
    RecipeIngredientView,
    RegionDetailView,
)
from chop.persistence.includes import RECIPE_DETAIL_INCLUDE, REGION_DETAIL_INCLUDE, Include

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from chop.persistence.tables import RecipeTable, RegionTable

E = TypeVar("E")
V = TypeVar("V")

FetchWithIncludes = Callable[[int, Sequence[Include]], Awaitable[E | None]]


class DetailAssembler(Generic[E, V]):
    """Serve detail views of one entity kind through its detail cache."""

    def __init__(
        self,
        cache: TypedCache[V],
        fetch: FetchWithIncludes[E],
        assemble: Callable[[E], V],
        default_include: Sequence[Include] = (),
    ) -> None:
        self.cache = cache
        self.fetch = fetch
        self.assemble = assemble
        self.default_include = tuple(default_include)

    async def get_details(
        self, entity_id: int, include: Iterable[Include] | None = None
    ) -> V | None:
        """Return the detail view, or None if the entity does not exist.

        A cached view is returned as-is, without checking the database.
        """
        cached = await self.cache.get_cache(entity_id)
        if cached is not None:
            return cached

        wanted = tuple(include) if include is not None else self.default_include
        entity = await self.fetch(entity_id, wanted)
        if entity is None:
            return None

        view = self.assemble(entity)
        await self.cache.set_cache(entity_id, view)
        return view

    async def refresh(self, entity_id: int) -> V | None:
        """Drop the cached view and assemble a fresh one."""
        await self.cache.invalidate_cache(entity_id)
        return await self.get_details(entity_id)


def _loaded(entity: Any, attribute: str) -> bool:
    return attribute not in inspect(entity).unloaded


def assemble_recipe_detail(recipe: RecipeTable) -> RecipeDetailView:
    """Flatten a recipe and whichever associations were loaded with it.

    Unloaded collections become empty lists; a missing nation or region is
    left out, as is a zero cost.
    """
    view: dict[str, Any] = {
        "id": recipe.id,
        "name": recipe.name,
        "description": recipe.description,
    }

    if _loaded(recipe, "nation") and recipe.nation is not None:
        view["nation"] = recipe.nation.name
    if _loaded(recipe, "region") and recipe.region is not None:
        view["region"] = recipe.region.name

    instructions = recipe.instructions if _loaded(recipe, "instructions") else []
    view["instructions"] = [
        row.instruction for row in sorted(instructions, key=lambda row: row.step)
    ]
    view["categories"] = (
        [row.name for row in recipe.categories] if _loaded(recipe, "categories") else []
    )
    view["subcategories"] = (
        [row.name for row in recipe.subcategories] if _loaded(recipe, "subcategories") else []
    )
    view["aliases"] = [row.alias for row in recipe.aliases] if _loaded(recipe, "aliases") else []

    images: list[ImageView] = []
    if _loaded(recipe, "images"):
        images = [
            {"id": row.id, "url": row.url, "type": row.type, "caption": row.caption}
            for row in recipe.images
        ]
    view["images"] = images

    view["time"] = recipe.time
    if recipe.cost:
        view["cost"] = recipe.cost

    ingredients: list[RecipeIngredientView] = []
    if _loaded(recipe, "ingredient_links"):
        ingredients = [
            {
                "id": link.ingredient.id,
                "name": link.ingredient.name,
                "quantity": link.quantity,
                "unit": link.unit,
            }
            for link in recipe.ingredient_links
        ]
    view["ingredients"] = ingredients

    return view  # type: ignore[return-value]


def assemble_region_detail(region: RegionTable) -> RegionDetailView:
    nations: list[NationView] = []
    if _loaded(region, "nations"):
        nations = [{"id": nation.id, "name": nation.name} for nation in region.nations]
    return {"id": region.id, "name": region.name, "nations": nations}


def recipe_details(session: AsyncSession) -> DetailAssembler[RecipeTable, RecipeDetailView]:
    """Recipe detail assembler bound to a session."""
    from chop.persistence.repositories import RecipeRepository

    return DetailAssembler(
        recipe_detail_cache,
        RecipeRepository(session).fetch_with_includes,
        assemble_recipe_detail,
        RECIPE_DETAIL_INCLUDE,
    )


def region_details(session: AsyncSession) -> DetailAssembler[RegionTable, RegionDetailView]:
    """Region detail assembler bound to a session."""
    from chop.persistence.repositories import RegionRepository

    return DetailAssembler(
        region_detail_cache,
        RegionRepository(session).fetch_with_includes,
        assemble_region_detail,
        REGION_DETAIL_INCLUDE,
    )
