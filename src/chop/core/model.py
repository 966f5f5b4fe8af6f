"""Request models for the recipe API.

Validation rules:
- names, descriptions, nations and regions are strings
- ingredients: non-empty list of {name, quantity (number), unit}
- instructions: non-empty list of strings, stored as steps 1..n in order
- aliases: non-empty strings
- images: {url, type?, caption?}
- time > 0, cost >= 0
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from chop.core.text import normalize_name

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
Quantity = Annotated[float, Field(strict=True)]

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


class IngredientIn(BaseModel):
    """Ingredient reference with its per-recipe quantity and unit."""

    model_config = ConfigDict(extra="ignore")

    name: NonEmptyStr
    quantity: Quantity
    unit: StrictStr


class IngredientPatch(BaseModel):
    """Partial ingredient: quantity or unit may be omitted to keep the stored value."""

    model_config = ConfigDict(extra="ignore")

    name: NonEmptyStr
    quantity: Quantity | None = None
    unit: StrictStr | None = None


class ImageIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: NonEmptyStr
    type: StrictStr | None = None
    caption: StrictStr | None = None


class RecipeIn(BaseModel):
    """Full recipe body, used by create and replace."""

    model_config = ConfigDict(extra="ignore")

    name: NonEmptyStr
    description: NonEmptyStr
    nation: NonEmptyStr
    region: NonEmptyStr
    ingredients: list[IngredientIn] = Field(min_length=1)
    instructions: list[StrictStr] = Field(min_length=1)
    aliases: list[NonEmptyStr] = Field(default_factory=list)
    categories: list[StrictStr] = Field(default_factory=list)
    subcategories: list[StrictStr] = Field(default_factory=list)
    images: list[ImageIn] = Field(default_factory=list)
    time: Annotated[int, Field(strict=True, gt=0)]
    cost: Annotated[float, Field(strict=True, ge=0)] = 0


class RecipePatch(BaseModel):
    """Partial recipe update; omitted fields are left unchanged.

    Child collections given here are merged into the stored ones rather than
    replacing them.
    """

    model_config = ConfigDict(extra="ignore")

    name: NonEmptyStr | None = None
    description: NonEmptyStr | None = None
    nation: NonEmptyStr | None = None
    region: NonEmptyStr | None = None
    ingredients: list[IngredientPatch] | None = Field(default=None, min_length=1)
    instructions: list[StrictStr] | None = Field(default=None, min_length=1)
    aliases: list[NonEmptyStr] | None = None
    categories: list[StrictStr] | None = None
    subcategories: list[StrictStr] | None = None
    images: list[ImageIn] | None = None
    time: Annotated[int, Field(strict=True, gt=0)] | None = None
    cost: Annotated[float, Field(strict=True, ge=0)] | None = None


class AliasesIn(BaseModel):
    aliases: list[NonEmptyStr] = Field(min_length=1)


class IngredientsIn(BaseModel):
    ingredients: list[IngredientIn] = Field(min_length=1)


class InstructionsIn(BaseModel):
    instructions: list[StrictStr] = Field(min_length=1)


class NamesIn(BaseModel):
    """Category or subcategory names to attach to a recipe."""

    names: list[NonEmptyStr] = Field(min_length=1)


class ListQuery(BaseModel):
    """Filtering, sorting and paging for list endpoints.

    String filters are normalized the same way stored names are. ``limit``
    is clamped to ``MAX_PAGE_SIZE``.
    """

    category: str | None = None
    subcategory: str | None = None
    nation: str | None = None
    region: str | None = None
    time: Annotated[int, Field(gt=0)] | None = None
    cost: Annotated[float, Field(ge=0)] | None = None
    sort: str | None = None
    limit: Annotated[int, Field(gt=0)] = DEFAULT_PAGE_SIZE
    page: Annotated[int, Field(gt=0)] = 1
    search: str | None = None

    @field_validator("category", "subcategory", "nation", "region", "sort", "search")
    @classmethod
    def _normalize(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_name(value) or None

    @field_validator("limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return min(value, MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
