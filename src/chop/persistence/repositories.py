"""Repository pattern for recipe catalog persistence.

Repositories only touch the database; they never talk to the cache. Callers
invalidate cached views after the surrounding transaction commits, using the
ids reported in ``RecipeChange``.

Lookup entities (ingredients, categories, subcategories, regions, nations)
are find-or-create by normalized name.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, delete, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chop.core.model import (
    ImageIn,
    IngredientIn,
    IngredientPatch,
    ListQuery,
    RecipeIn,
    RecipePatch,
)
from chop.core.text import like_pattern, normalize_name
from chop.persistence.includes import (
    RECIPE_DETAIL_INCLUDE,
    REGION_DETAIL_INCLUDE,
    Include,
    recipe_loader_options,
    region_loader_options,
)
from chop.persistence.tables import (
    CategoryTable,
    IngredientTable,
    NationTable,
    RecipeAliasTable,
    RecipeImageTable,
    RecipeIngredientTable,
    RecipeInstructionTable,
    RecipeTable,
    RegionTable,
    SubcategoryTable,
    recipe_categories,
    recipe_subcategories,
    region_nations,
)

LookupT = TypeVar(
    "LookupT", IngredientTable, CategoryTable, SubcategoryTable, NationTable, RegionTable
)

RECIPE_SORT_FIELDS = {
    "name": RecipeTable.name,
    "time": RecipeTable.time,
    "cost": RecipeTable.cost,
}

# Collections a full replace rewrites
_RECIPE_CHILDREN = (
    Include.CATEGORIES,
    Include.SUBCATEGORIES,
    Include.INSTRUCTIONS,
    Include.ALIASES,
    Include.IMAGES,
    Include.INGREDIENTS,
)


class InvalidChange(ValueError):
    """A requested change cannot be applied to the stored recipe."""


@dataclass
class RecipeChange:
    """Ids whose cached views are stale after a recipe mutation."""

    recipe_id: int
    region_ids: set[int] = field(default_factory=set)


def lookup_row(row: Any) -> dict[str, Any]:
    """Flat dictionary for a name-only lookup row."""
    return {"id": row.id, "name": row.name}


class BaseRepository:
    """Base repository holding the session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _find_or_create(self, table: type[LookupT], name: str) -> LookupT:
        normalized = normalize_name(name)
        stmt = select(table).where(table.name == normalized)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            row = table(name=normalized)
            self.session.add(row)
            await self.session.flush()
        return row

    async def _link_region_nation(self, region_id: int, nation_id: int) -> None:
        stmt = select(region_nations).where(
            region_nations.c.region_id == region_id,
            region_nations.c.nation_id == nation_id,
        )
        result = await self.session.execute(stmt)
        if result.first() is None:
            await self.session.execute(
                insert(region_nations).values(region_id=region_id, nation_id=nation_id)
            )


class RecipeRepository(BaseRepository):
    """Repository for recipes and their child collections."""

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def fetch_with_includes(
        self,
        recipe_id: int,
        include: Iterable[Include] = RECIPE_DETAIL_INCLUDE,
    ) -> RecipeTable | None:
        """Fetch a recipe with the named associations eagerly loaded.

        Rows already in the session are reloaded, so collections changed
        earlier in the same transaction come back complete. Returns None if
        the recipe does not exist.
        """
        stmt = (
            select(RecipeTable)
            .where(RecipeTable.id == recipe_id)
            .options(*recipe_loader_options(include))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def exists(self, recipe_id: int) -> bool:
        stmt = select(RecipeTable.id).where(RecipeTable.id == recipe_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_recipes(self, query: ListQuery) -> Sequence[RecipeTable]:
        """List recipes matching the query filters, one page at a time."""
        stmt = self._filtered(query)
        return await self._page(stmt, query)

    async def list_by_name(self, name: str, query: ListQuery) -> Sequence[RecipeTable]:
        """List recipes whose name or one of whose aliases contains ``name``."""
        pattern = like_pattern(normalize_name(name))
        stmt = self._filtered(query).where(
            or_(
                RecipeTable.name.ilike(pattern, escape="\\"),
                RecipeTable.aliases.any(RecipeAliasTable.alias.ilike(pattern, escape="\\")),
            )
        )
        return await self._page(stmt, query)

    async def list_by_ingredient(self, name: str, query: ListQuery) -> Sequence[RecipeTable]:
        """List recipes using an ingredient whose name contains ``name``."""
        pattern = like_pattern(normalize_name(name))
        stmt = self._filtered(query).where(
            RecipeTable.ingredient_links.any(
                RecipeIngredientTable.ingredient.has(
                    IngredientTable.name.ilike(pattern, escape="\\")
                )
            )
        )
        return await self._page(stmt, query)

    def _filtered(self, query: ListQuery) -> Select[tuple[RecipeTable]]:
        stmt = select(RecipeTable)
        if query.category:
            stmt = stmt.where(RecipeTable.categories.any(CategoryTable.name == query.category))
        if query.subcategory:
            stmt = stmt.where(
                RecipeTable.subcategories.any(SubcategoryTable.name == query.subcategory)
            )
        if query.nation:
            stmt = stmt.where(RecipeTable.nation.has(NationTable.name == query.nation))
        if query.region:
            stmt = stmt.where(RecipeTable.region.has(RegionTable.name == query.region))
        if query.time is not None:
            stmt = stmt.where(RecipeTable.time <= query.time)
        if query.cost is not None:
            stmt = stmt.where(RecipeTable.cost <= query.cost)
        if query.search:
            pattern = like_pattern(query.search)
            stmt = stmt.where(
                or_(
                    RecipeTable.name.ilike(pattern, escape="\\"),
                    RecipeTable.description.ilike(pattern, escape="\\"),
                    RecipeTable.ingredient_links.any(
                        RecipeIngredientTable.ingredient.has(
                            IngredientTable.name.ilike(pattern, escape="\\")
                        )
                    ),
                )
            )
        return stmt

    async def _page(
        self, stmt: Select[tuple[RecipeTable]], query: ListQuery
    ) -> Sequence[RecipeTable]:
        if query.sort:
            # Unknown sort fields fall back to name
            order_column = RECIPE_SORT_FIELDS.get(query.sort, RecipeTable.name)
            stmt = stmt.order_by(order_column.asc(), RecipeTable.id.asc())
        else:
            stmt = stmt.order_by(RecipeTable.id.asc())
        stmt = stmt.limit(query.limit).offset(query.offset)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    # -------------------------------------------------------------------------
    # Whole-recipe writes
    # -------------------------------------------------------------------------

    async def create(self, data: RecipeIn) -> RecipeChange:
        """Create a recipe with all of its child collections."""
        region, nation = await self._region_and_nation(data.region, data.nation)

        recipe = RecipeTable(
            name=data.name,
            description=data.description,
            time=data.time,
            cost=data.cost,
            nation_id=nation.id if nation else None,
            region_id=region.id if region else None,
            categories=await self._lookups(CategoryTable, data.categories),
            subcategories=await self._lookups(SubcategoryTable, data.subcategories),
            instructions=_instruction_rows(data.instructions),
            aliases=[RecipeAliasTable(alias=alias) for alias in dict.fromkeys(data.aliases)],
            images=_image_rows(data.images),
            ingredient_links=await self._ingredient_rows(data.ingredients),
        )
        self.session.add(recipe)
        await self.session.flush()

        change = RecipeChange(recipe_id=recipe.id)
        if recipe.region_id is not None:
            change.region_ids.add(recipe.region_id)
        return change

    async def replace(self, recipe_id: int, data: RecipeIn) -> RecipeChange | None:
        """Replace every field and child collection of a recipe.

        Returns None if the recipe does not exist.
        """
        recipe = await self.fetch_with_includes(recipe_id, _RECIPE_CHILDREN)
        if recipe is None:
            return None

        change = RecipeChange(recipe_id=recipe_id)
        if recipe.region_id is not None:
            change.region_ids.add(recipe.region_id)

        # Old rows share unique keys with the new ones, remove them first
        recipe.instructions.clear()
        recipe.aliases.clear()
        recipe.images.clear()
        recipe.ingredient_links.clear()
        await self.session.flush()

        region, nation = await self._region_and_nation(data.region, data.nation)
        recipe.name = data.name
        recipe.description = data.description
        recipe.time = data.time
        recipe.cost = data.cost
        recipe.nation_id = nation.id if nation else None
        recipe.region_id = region.id if region else None
        recipe.categories = await self._lookups(CategoryTable, data.categories)
        recipe.subcategories = await self._lookups(SubcategoryTable, data.subcategories)
        recipe.instructions.extend(_instruction_rows(data.instructions))
        recipe.aliases.extend(
            RecipeAliasTable(alias=alias) for alias in dict.fromkeys(data.aliases)
        )
        recipe.images.extend(_image_rows(data.images))
        recipe.ingredient_links.extend(await self._ingredient_rows(data.ingredients))
        await self.session.flush()

        if recipe.region_id is not None:
            change.region_ids.add(recipe.region_id)
        return change

    async def update(self, recipe_id: int, patch: RecipePatch) -> RecipeChange | None:
        """Apply a partial update, merging child collections.

        Returns None if the recipe does not exist.
        """
        include = [Include.CATEGORIES, Include.SUBCATEGORIES]
        recipe = await self.fetch_with_includes(recipe_id, include)
        if recipe is None:
            return None

        change = RecipeChange(recipe_id=recipe_id)
        if recipe.region_id is not None:
            change.region_ids.add(recipe.region_id)

        if patch.name is not None:
            recipe.name = patch.name
        if patch.description is not None:
            recipe.description = patch.description
        if patch.time is not None:
            recipe.time = patch.time
        if patch.cost is not None:
            recipe.cost = patch.cost

        if patch.region is not None or patch.nation is not None:
            region, nation = await self._region_and_nation(patch.region, patch.nation)
            if region is not None:
                recipe.region_id = region.id
            if nation is not None:
                recipe.nation_id = nation.id

        if patch.categories:
            await self._merge_lookups(recipe.categories, CategoryTable, patch.categories)
        if patch.subcategories:
            await self._merge_lookups(recipe.subcategories, SubcategoryTable, patch.subcategories)
        await self.session.flush()

        if patch.ingredients:
            await self.add_ingredients(recipe_id, patch.ingredients)
        if patch.instructions:
            await self._upsert_instructions(recipe_id, patch.instructions)
        if patch.aliases:
            await self.add_aliases(recipe_id, patch.aliases)
        if patch.images:
            for image in patch.images:
                await self.add_image(recipe_id, image)

        if recipe.region_id is not None:
            change.region_ids.add(recipe.region_id)
        return change

    async def delete(self, recipe_id: int) -> RecipeChange | None:
        """Delete a recipe; child rows go with it through ON DELETE CASCADE.

        Returns None if the recipe does not exist.
        """
        stmt = select(RecipeTable.region_id).where(RecipeTable.id == recipe_id)
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None

        await self.session.execute(delete(RecipeTable).where(RecipeTable.id == recipe_id))
        change = RecipeChange(recipe_id=recipe_id)
        if row.region_id is not None:
            change.region_ids.add(row.region_id)
        return change

    # -------------------------------------------------------------------------
    # Child collections
    # -------------------------------------------------------------------------

    async def add_ingredients(
        self, recipe_id: int, items: Sequence[IngredientIn | IngredientPatch]
    ) -> RecipeTable | None:
        """Insert new ingredients and update quantity/unit of existing ones."""
        recipe = await self.fetch_with_includes(recipe_id, (Include.INGREDIENTS,))
        if recipe is None:
            return None

        links = {link.ingredient_id: link for link in recipe.ingredient_links}
        for item in items:
            ingredient = await self._find_or_create(IngredientTable, item.name)
            link = links.get(ingredient.id)
            if link is not None:
                if item.quantity is not None:
                    link.quantity = item.quantity
                if item.unit is not None:
                    link.unit = item.unit
                continue
            if item.quantity is None or item.unit is None:
                raise InvalidChange(
                    f"Ingredient '{item.name}' needs a quantity and unit to be added"
                )
            link = RecipeIngredientTable(
                ingredient_id=ingredient.id, quantity=item.quantity, unit=item.unit
            )
            recipe.ingredient_links.append(link)
            links[ingredient.id] = link

        await self.session.flush()
        return recipe

    async def replace_ingredients(
        self, recipe_id: int, items: Sequence[IngredientIn]
    ) -> RecipeTable | None:
        recipe = await self.fetch_with_includes(recipe_id, (Include.INGREDIENTS,))
        if recipe is None:
            return None

        recipe.ingredient_links.clear()
        await self.session.flush()
        recipe.ingredient_links.extend(await self._ingredient_rows(items))
        await self.session.flush()
        return recipe

    async def remove_ingredient(self, recipe_id: int, ingredient_id: int) -> bool:
        """Detach an ingredient. Returns False if it was not attached."""
        result = await self.session.execute(
            delete(RecipeIngredientTable).where(
                RecipeIngredientTable.recipe_id == recipe_id,
                RecipeIngredientTable.ingredient_id == ingredient_id,
            )
        )
        return bool(result.rowcount)

    async def add_categories(self, recipe_id: int, names: Sequence[str]) -> RecipeTable | None:
        recipe = await self.fetch_with_includes(recipe_id, (Include.CATEGORIES,))
        if recipe is None:
            return None
        await self._merge_lookups(recipe.categories, CategoryTable, names)
        await self.session.flush()
        return recipe

    async def remove_category(self, recipe_id: int, category_id: int) -> bool:
        result = await self.session.execute(
            delete(recipe_categories).where(
                recipe_categories.c.recipe_id == recipe_id,
                recipe_categories.c.category_id == category_id,
            )
        )
        return bool(result.rowcount)

    async def add_subcategories(
        self, recipe_id: int, names: Sequence[str]
    ) -> RecipeTable | None:
        recipe = await self.fetch_with_includes(recipe_id, (Include.SUBCATEGORIES,))
        if recipe is None:
            return None
        await self._merge_lookups(recipe.subcategories, SubcategoryTable, names)
        await self.session.flush()
        return recipe

    async def remove_subcategory(self, recipe_id: int, subcategory_id: int) -> bool:
        result = await self.session.execute(
            delete(recipe_subcategories).where(
                recipe_subcategories.c.recipe_id == recipe_id,
                recipe_subcategories.c.subcategory_id == subcategory_id,
            )
        )
        return bool(result.rowcount)

    async def replace_instructions(
        self, recipe_id: int, instructions: Sequence[str]
    ) -> RecipeTable | None:
        """Replace all steps; instructions are numbered 1..n in the given order."""
        recipe = await self.fetch_with_includes(recipe_id, (Include.INSTRUCTIONS,))
        if recipe is None:
            return None

        recipe.instructions.clear()
        await self.session.flush()
        recipe.instructions.extend(_instruction_rows(instructions))
        await self.session.flush()
        return recipe

    async def add_aliases(self, recipe_id: int, aliases: Sequence[str]) -> RecipeTable | None:
        recipe = await self.fetch_with_includes(recipe_id, (Include.ALIASES,))
        if recipe is None:
            return None

        known = {row.alias for row in recipe.aliases}
        for alias in aliases:
            if alias not in known:
                recipe.aliases.append(RecipeAliasTable(alias=alias))
                known.add(alias)
        await self.session.flush()
        return recipe

    async def replace_aliases(
        self, recipe_id: int, aliases: Sequence[str]
    ) -> RecipeTable | None:
        recipe = await self.fetch_with_includes(recipe_id, (Include.ALIASES,))
        if recipe is None:
            return None

        recipe.aliases.clear()
        await self.session.flush()
        recipe.aliases.extend(RecipeAliasTable(alias=alias) for alias in dict.fromkeys(aliases))
        await self.session.flush()
        return recipe

    async def add_image(self, recipe_id: int, image: ImageIn) -> RecipeImageTable | None:
        """Attach an image, or update type/caption of the one with the same URL."""
        recipe = await self.fetch_with_includes(recipe_id, (Include.IMAGES,))
        if recipe is None:
            return None

        for row in recipe.images:
            if row.url == image.url:
                row.type = image.type
                row.caption = image.caption
                await self.session.flush()
                return row

        row = RecipeImageTable(url=image.url, type=image.type, caption=image.caption)
        recipe.images.append(row)
        await self.session.flush()
        return row

    async def remove_image(self, recipe_id: int, image_id: int) -> bool:
        result = await self.session.execute(
            delete(RecipeImageTable).where(
                RecipeImageTable.recipe_id == recipe_id,
                RecipeImageTable.id == image_id,
            )
        )
        return bool(result.rowcount)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _region_and_nation(
        self, region_name: str | None, nation_name: str | None
    ) -> tuple[RegionTable | None, NationTable | None]:
        region = await self._find_or_create(RegionTable, region_name) if region_name else None
        nation = await self._find_or_create(NationTable, nation_name) if nation_name else None
        if region is not None and nation is not None:
            await self._link_region_nation(region.id, nation.id)
        return region, nation

    async def _lookups(self, table: type[LookupT], names: Iterable[str]) -> list[LookupT]:
        rows: dict[int, LookupT] = {}
        for name in names:
            row = await self._find_or_create(table, name)
            rows[row.id] = row
        return list(rows.values())

    async def _merge_lookups(
        self, current: list[Any], table: type[LookupT], names: Iterable[str]
    ) -> None:
        known = {row.id for row in current}
        for row in await self._lookups(table, names):
            if row.id not in known:
                current.append(row)
                known.add(row.id)

    async def _ingredient_rows(
        self, items: Iterable[IngredientIn]
    ) -> list[RecipeIngredientTable]:
        # Repeated ingredient names collapse to the last quantity/unit given
        links: dict[int, RecipeIngredientTable] = {}
        for item in items:
            ingredient = await self._find_or_create(IngredientTable, item.name)
            links[ingredient.id] = RecipeIngredientTable(
                ingredient_id=ingredient.id, quantity=item.quantity, unit=item.unit
            )
        return list(links.values())

    async def _upsert_instructions(self, recipe_id: int, instructions: Sequence[str]) -> None:
        recipe = await self.fetch_with_includes(recipe_id, (Include.INSTRUCTIONS,))
        if recipe is None:
            return
        by_step = {row.step: row for row in recipe.instructions}
        for step, text in enumerate(instructions, start=1):
            row = by_step.get(step)
            if row is not None:
                row.instruction = text
            else:
                recipe.instructions.append(RecipeInstructionTable(step=step, instruction=text))
        await self.session.flush()


class RegionRepository(BaseRepository):
    """Repository for regions and their nations."""

    async def fetch_with_includes(
        self,
        region_id: int,
        include: Iterable[Include] = REGION_DETAIL_INCLUDE,
    ) -> RegionTable | None:
        stmt = (
            select(RegionTable)
            .where(RegionTable.id == region_id)
            .options(*region_loader_options(include))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def list_regions(self, query: ListQuery) -> Sequence[RegionTable]:
        """List regions, filtered by region or nation name."""
        stmt = select(RegionTable)
        if query.search:
            pattern = like_pattern(query.search)
            stmt = stmt.where(
                or_(
                    RegionTable.name.ilike(pattern, escape="\\"),
                    RegionTable.nations.any(NationTable.name.ilike(pattern, escape="\\")),
                )
            )
        if query.nation:
            stmt = stmt.where(RegionTable.nations.any(NationTable.name == query.nation))
        order_column = RegionTable.id if query.sort == "id" else RegionTable.name
        stmt = stmt.order_by(order_column.asc()).limit(query.limit).offset(query.offset)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_by_name(self, name: str) -> RegionTable | None:
        """First region (by name) whose name contains ``name``."""
        pattern = like_pattern(normalize_name(name))
        stmt = (
            select(RegionTable)
            .where(RegionTable.name.ilike(pattern, escape="\\"))
            .order_by(RegionTable.name.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class LookupRepository(BaseRepository, Generic[LookupT]):
    """Listing for name-only lookup tables (ingredients, categories, ...)."""

    def __init__(self, session: AsyncSession, table: type[LookupT]):
        super().__init__(session)
        self.table = table

    async def list(self, query: ListQuery) -> Sequence[LookupT]:
        stmt = select(self.table)
        if query.search:
            stmt = stmt.where(self.table.name.ilike(like_pattern(query.search), escape="\\"))
        order_column = self.table.id if query.sort == "id" else self.table.name
        stmt = stmt.order_by(order_column.asc()).limit(query.limit).offset(query.offset)
        result = await self.session.execute(stmt)
        return result.scalars().all()


def _instruction_rows(instructions: Iterable[str]) -> list[RecipeInstructionTable]:
    return [
        RecipeInstructionTable(step=step, instruction=text)
        for step, text in enumerate(instructions, start=1)
    ]


def _image_rows(images: Iterable[ImageIn]) -> list[RecipeImageTable]:
    rows: dict[str, RecipeImageTable] = {}
    for image in images:
        rows[image.url] = RecipeImageTable(url=image.url, type=image.type, caption=image.caption)
    return list(rows.values())
