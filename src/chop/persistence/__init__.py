"""Persistence layer for the recipe catalog.

This module provides:
- Async PostgreSQL engine and session factory
- SQLAlchemy ORM models for recipes and their lookup entities
- Include lists mapped to eager-loading options
- Repositories for recipes, regions and name-only lookups
"""

from chop.persistence.db import get_engine, get_session, init_db
from chop.persistence.includes import Include
from chop.persistence.repositories import (
    LookupRepository,
    RecipeRepository,
    RegionRepository,
)
from chop.persistence.tables import RecipeTable, RegionTable

__all__ = [
    # DB
    "get_engine",
    "get_session",
    "init_db",
    # Tables
    "RecipeTable",
    "RegionTable",
    # Includes
    "Include",
    # Repositories
    "RecipeRepository",
    "RegionRepository",
    "LookupRepository",
]
