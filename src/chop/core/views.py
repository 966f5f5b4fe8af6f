"""Shapes of the JSON documents served by the API and stored in the cache."""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

# Flat rows are plain column dictionaries of a single table
FlatRow = dict[str, Any]


class ImageView(TypedDict):
    id: int
    url: str
    type: str | None
    caption: str | None


class RecipeIngredientView(TypedDict):
    id: int
    name: str
    quantity: float
    unit: str


class RecipeDetailView(TypedDict):
    """Denormalized recipe with its associations flattened to scalars and lists."""

    id: int
    name: str
    description: str
    nation: NotRequired[str]
    region: NotRequired[str]
    instructions: list[str]
    categories: list[str]
    subcategories: list[str]
    aliases: list[str]
    images: list[ImageView]
    time: int
    cost: NotRequired[float]
    ingredients: list[RecipeIngredientView]


class NationView(TypedDict):
    id: int
    name: str


class RegionDetailView(TypedDict):
    id: int
    name: str
    nations: list[NationView]
