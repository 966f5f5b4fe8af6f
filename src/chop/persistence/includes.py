"""Declarative include lists for fetching an entity with its associations.

Callers name the associations they need; ``loader_options`` turns the list
into SQLAlchemy eager-loading options. Associations not named stay unloaded
and are rendered as empty by the detail assemblers.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.interfaces import LoaderOption

from chop.persistence.tables import RecipeIngredientTable, RecipeTable, RegionTable


class Include(str, Enum):
    """Association names accepted in an include list."""

    # Recipe associations
    NATION = "nation"
    REGION = "region"
    CATEGORIES = "categories"
    SUBCATEGORIES = "subcategories"
    INSTRUCTIONS = "instructions"
    ALIASES = "aliases"
    IMAGES = "images"
    INGREDIENTS = "ingredients"

    # Region associations
    NATIONS = "nations"


RECIPE_DETAIL_INCLUDE: tuple[Include, ...] = (
    Include.NATION,
    Include.REGION,
    Include.CATEGORIES,
    Include.SUBCATEGORIES,
    Include.INSTRUCTIONS,
    Include.ALIASES,
    Include.IMAGES,
    Include.INGREDIENTS,
)

REGION_DETAIL_INCLUDE: tuple[Include, ...] = (Include.NATIONS,)


def recipe_loader_options(include: Iterable[Include]) -> list[LoaderOption]:
    """Map an include list to eager-loading options on ``RecipeTable``."""
    options: list[LoaderOption] = []
    for item in dict.fromkeys(include):
        if item is Include.NATION:
            options.append(joinedload(RecipeTable.nation))
        elif item is Include.REGION:
            options.append(joinedload(RecipeTable.region))
        elif item is Include.CATEGORIES:
            options.append(selectinload(RecipeTable.categories))
        elif item is Include.SUBCATEGORIES:
            options.append(selectinload(RecipeTable.subcategories))
        elif item is Include.INSTRUCTIONS:
            options.append(selectinload(RecipeTable.instructions))
        elif item is Include.ALIASES:
            options.append(selectinload(RecipeTable.aliases))
        elif item is Include.IMAGES:
            options.append(selectinload(RecipeTable.images))
        elif item is Include.INGREDIENTS:
            options.append(
                selectinload(RecipeTable.ingredient_links).joinedload(
                    RecipeIngredientTable.ingredient
                )
            )
        else:
            raise ValueError(f"{item.value!r} is not a recipe association")
    return options


def region_loader_options(include: Iterable[Include]) -> list[LoaderOption]:
    """Map an include list to eager-loading options on ``RegionTable``."""
    options: list[LoaderOption] = []
    for item in dict.fromkeys(include):
        if item is Include.NATIONS:
            options.append(selectinload(RegionTable.nations))
        else:
            raise ValueError(f"{item.value!r} is not a region association")
    return options
