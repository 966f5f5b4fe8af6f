"""SQLAlchemy ORM models for the recipe catalog.

Lookup entities (ingredients, categories, subcategories, regions, nations)
store their names normalized, see ``chop.core.text.normalize_name``.

Relationships use ``lazy="raise"``: under asyncio every association must be
requested up front through loader options (see ``chop.persistence.includes``),
so an accidental lazy load fails loudly instead of blocking.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


region_nations = Table(
    "region_nations",
    Base.metadata,
    Column("region_id", ForeignKey("regions.id", ondelete="CASCADE"), primary_key=True),
    Column("nation_id", ForeignKey("nations.id", ondelete="CASCADE"), primary_key=True),
)

recipe_categories = Table(
    "recipe_categories",
    Base.metadata,
    Column("recipe_id", ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

recipe_subcategories = Table(
    "recipe_subcategories",
    Base.metadata,
    Column("recipe_id", ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "subcategory_id", ForeignKey("subcategories.id", ondelete="CASCADE"), primary_key=True
    ),
)


class NationTable(Base):
    __tablename__ = "nations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    regions: Mapped[list[RegionTable]] = relationship(
        secondary=region_nations, back_populates="nations", lazy="raise"
    )


class RegionTable(Base):
    __tablename__ = "regions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    nations: Mapped[list[NationTable]] = relationship(
        secondary=region_nations, back_populates="regions", lazy="raise"
    )


class CategoryTable(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)


class SubcategoryTable(Base):
    __tablename__ = "subcategories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)


class IngredientTable(Base):
    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)


class RecipeTable(Base):
    """Recipe row with its owned child collections.

    Instructions, aliases, images and ingredient links are owned by the
    recipe and removed with it.
    """

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    time: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    nation_id: Mapped[int | None] = mapped_column(
        ForeignKey("nations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    region_id: Mapped[int | None] = mapped_column(
        ForeignKey("regions.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    nation: Mapped[NationTable | None] = relationship(lazy="raise")
    region: Mapped[RegionTable | None] = relationship(lazy="raise")
    categories: Mapped[list[CategoryTable]] = relationship(
        secondary=recipe_categories, lazy="raise"
    )
    subcategories: Mapped[list[SubcategoryTable]] = relationship(
        secondary=recipe_subcategories, lazy="raise"
    )
    instructions: Mapped[list[RecipeInstructionTable]] = relationship(
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeInstructionTable.step",
        lazy="raise",
    )
    aliases: Mapped[list[RecipeAliasTable]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", lazy="raise"
    )
    images: Mapped[list[RecipeImageTable]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", lazy="raise"
    )
    ingredient_links: Mapped[list[RecipeIngredientTable]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", lazy="raise"
    )

    def to_row(self) -> dict[str, Any]:
        """Flat column dictionary used for the per-row cache."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "time": self.time,
            "cost": self.cost,
            "nationId": self.nation_id,
            "regionId": self.region_id,
        }


class RecipeIngredientTable(Base):
    """Join row carrying the per-recipe quantity and unit of an ingredient."""

    __tablename__ = "recipe_ingredients"

    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        ForeignKey("ingredients.id", ondelete="CASCADE"), primary_key=True
    )
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(64), nullable=False)

    recipe: Mapped[RecipeTable] = relationship(back_populates="ingredient_links", lazy="raise")
    ingredient: Mapped[IngredientTable] = relationship(lazy="raise")


class RecipeInstructionTable(Base):
    __tablename__ = "recipe_instructions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)

    recipe: Mapped[RecipeTable] = relationship(back_populates="instructions", lazy="raise")

    __table_args__ = (UniqueConstraint("recipe_id", "step", name="uq_recipe_instruction_step"),)


class RecipeAliasTable(Base):
    __tablename__ = "recipe_aliases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    alias: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    recipe: Mapped[RecipeTable] = relationship(back_populates="aliases", lazy="raise")

    __table_args__ = (UniqueConstraint("recipe_id", "alias", name="uq_recipe_alias"),)


class RecipeImageTable(Base):
    __tablename__ = "recipe_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    recipe: Mapped[RecipeTable] = relationship(back_populates="images", lazy="raise")

    __table_args__ = (UniqueConstraint("recipe_id", "url", name="uq_recipe_image_url"),)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recipeId": self.recipe_id,
            "url": self.url,
            "type": self.type,
            "caption": self.caption,
        }
