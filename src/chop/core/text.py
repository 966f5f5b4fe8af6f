"""String helpers shared by validation and persistence."""

from __future__ import annotations


def normalize_name(value: str | None) -> str:
    """Normalize a lookup name for storage and comparison.

    Names of ingredients, categories, regions and nations are stored trimmed
    and lower-cased so that "Tomato " and "tomato" resolve to one row.
    Non-string input normalizes to the empty string.
    """
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def like_pattern(term: str) -> str:
    """Wrap a search term for a case-insensitive substring match."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
