"""Shared field types for tool input models."""

import re
from datetime import date
from typing import (
    Annotated,
    Literal,
    get_args,
)

from pydantic import (
    AfterValidator,
    Field,
)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_record_id(value: str) -> str:
    if not _UUID_RE.match(value):
        raise ValueError("Invalid ID format")
    return value.lower()


def _check_iso_date(value: str) -> str:
    if not _ISO_DATE_RE.match(value):
        raise ValueError("Invalid date format - must be YYYY-MM-DD")
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Invalid date format - must be YYYY-MM-DD") from exc
    return value


RecordId = Annotated[
    str,
    AfterValidator(_check_record_id),
    Field(json_schema_extra={"format": "uuid"}),
]
"""UUID primary key of a stored row."""

IsoDate = Annotated[
    str,
    AfterValidator(_check_iso_date),
    Field(json_schema_extra={"format": "date"}),
]
"""Calendar date as ``YYYY-MM-DD``."""

MealType = Literal["breakfast", "lunch", "dinner", "snack"]

RecipeUnit = Literal[
    # Volume
    "cup",
    "tbsp",
    "tsp",
    "ml",
    "l",
    "fl oz",
    # Weight
    "lb",
    "oz",
    "g",
    "kg",
    # Count
    "whole",
    "clove",
    "can",
    "package",
    "slice",
]

GroceryUnit = Literal[
    "cup",
    "tbsp",
    "tsp",
    "ml",
    "l",
    "fl oz",
    "lb",
    "oz",
    "g",
    "kg",
    "whole",
    "clove",
    "can",
    "package",
    "slice",
    # Shopping-only
    "gallon",
    "quart",
    "pint",
    "dozen",
    "bunch",
    "bag",
    "box",
    "bottle",
    "jar",
    "each",
]

RECIPE_UNITS = frozenset(get_args(RecipeUnit))
GROCERY_UNITS = frozenset(get_args(GroceryUnit))
MEAL_TYPES = get_args(MealType)
