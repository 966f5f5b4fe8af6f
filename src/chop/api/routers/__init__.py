"""API routers for the recipe catalog."""

from chop.api.routers import admin, health, lookups, metrics, recipes, regions

__all__ = [
    "admin",
    "health",
    "lookups",
    "metrics",
    "recipes",
    "regions",
]
