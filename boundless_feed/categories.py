"""Category and kind vocabulary for postings."""

from __future__ import annotations

from typing import Any

__all__ = [
    "ACTIVITY_CATEGORIES",
    "RESOURCE_CATEGORIES",
    "OTHER_CATEGORIES",
    "ALL_CATEGORIES",
    "CATEGORY_COLORS",
    "FALLBACK_COLOR",
    "KIND_ACTIVITY",
    "KIND_RESOURCE",
    "KINDS",
    "normalize_category",
    "normalize_kind",
]

ACTIVITY_CATEGORIES = (
    "Meal",
    "Ride",
    "Meet-up",
    "Entertainment",
    "Relaxation",
    "Learning",
    "Help",
)
RESOURCE_CATEGORIES = ("Food / Drinks", "Items", "Clothing", "Space", "Parking")
OTHER_CATEGORIES = ("Others",)
ALL_CATEGORIES = frozenset(ACTIVITY_CATEGORIES + RESOURCE_CATEGORIES + OTHER_CATEGORIES)

CATEGORY_COLORS = {
    # Activity categories
    "Meal": "#FF6B6B",
    "Ride": "#4ECDC4",
    "Meet-up": "#FFD166",
    "Entertainment": "#06D6A0",
    "Relaxation": "#118AB2",
    "Learning": "#073B4C",
    "Help": "#EF476F",
    # Resource categories
    "Food / Drinks": "#7209B7",
    "Items": "#F72585",
    "Clothing": "#3A0CA3",
    "Space": "#4361EE",
    "Parking": "#4CC9F0",
    "Others": "#A0A0A0",
}
FALLBACK_COLOR = "#A0A0A0"

KIND_ACTIVITY = "activity"
KIND_RESOURCE = "resource"
KINDS = frozenset({KIND_ACTIVITY, KIND_RESOURCE})

# Spellings seen in older rows, keyed by their case-folded form.
_CATEGORY_ALIASES = {
    "food/drinks": "Food / Drinks",
    "food & drinks": "Food / Drinks",
    "meetup": "Meet-up",
    "meet up": "Meet-up",
    "other": "Others",
}
_CANONICAL_BY_FOLD = {name.casefold(): name for name in ALL_CATEGORIES}


def normalize_category(value: Any) -> str:
    """Return the canonical category name for ``value``.

    Known categories are matched case-insensitively. Unknown names are kept
    verbatim (stripped) so the marker palette can fall back to its neutral
    colour instead of the row being rejected.
    """

    text = str(value or "").strip()
    if not text:
        return "Others"
    folded = text.casefold()
    if folded in _CANONICAL_BY_FOLD:
        return _CANONICAL_BY_FOLD[folded]
    return _CATEGORY_ALIASES.get(folded, text)


def normalize_kind(value: Any, category: str | None = None) -> str:
    """Return ``"activity"`` or ``"resource"``.

    Missing kinds are inferred from the category; anything else unrecognised
    is treated as an activity.
    """

    normalized = str(value or "").strip().lower()
    if normalized in KINDS:
        return normalized
    if category in RESOURCE_CATEGORIES:
        return KIND_RESOURCE
    return KIND_ACTIVITY
