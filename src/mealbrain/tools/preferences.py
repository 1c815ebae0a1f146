"""
Household preferences.

Preferences are stored per user, and the household's first member holds the settings the
assistant uses for the whole household.  When nothing is stored the defaults below apply.
"""

import logging
import re
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from sqlalchemy import select
from sqlalchemy.orm import Session

from mealbrain.core.schema import (
    ErrorType,
    ToolContext,
    ToolResult,
)
from mealbrain.db.models import (
    User,
    UserPreferences,
)
from mealbrain.db.session import session_scope
from mealbrain.tools import register_tool

logger = logging.getLogger(__name__)

DEFAULT_THEME_COLOR = "#f97316"

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

DEFAULT_SHOPPING_CATEGORIES = [
    "Produce",
    "Meat & Seafood",
    "Dairy & Eggs",
    "Bakery",
    "Frozen",
    "Canned Goods",
    "Condiments & Sauces",
    "Beverages",
    "Snacks & Treats",
    "Pantry",
    "Household",
    "Other",
]

DEFAULT_MEAL_COURSES = [
    {"id": "breakfast", "name": "Breakfast", "time": "08:00", "color": "#22c55e"},
    {"id": "lunch", "name": "Lunch", "time": "12:00", "color": "#3b82f6"},
    {"id": "dinner", "name": "Dinner", "time": "18:00", "color": "#f97316"},
    {"id": "snack", "name": "Snack", "time": "15:00", "color": "#a855f7"},
]


def default_preferences() -> Dict[str, Any]:
    """Preferences of a household that has not saved any."""
    return {
        "household_context": None,
        "dietary_constraints": [],
        "ai_style": None,
        "planning_preferences": [],
        "ai_learning_enabled": True,
        "shopping_categories": list(DEFAULT_SHOPPING_CATEGORIES),
        "meal_courses": [dict(course) for course in DEFAULT_MEAL_COURSES],
        "default_grocery_list_id": None,
        "theme_color": DEFAULT_THEME_COLOR,
    }


class GetPreferencesInput(BaseModel):
    """No parameters."""


class MealCourse(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class UpdatePreferencesInput(BaseModel):
    """Fields to change; anything omitted keeps its current value."""

    household_context: Optional[str] = Field(
        None, description="Free text about the household, e.g. 'two adults, one toddler'"
    )
    dietary_constraints: Optional[List[str]] = Field(None, description="e.g. ['vegetarian']")
    ai_style: Optional[str] = None
    planning_preferences: Optional[List[str]] = None
    ai_learning_enabled: Optional[bool] = None
    shopping_categories: Optional[List[str]] = None
    meal_courses: Optional[List[MealCourse]] = None
    default_grocery_list_id: Optional[str] = None
    theme_color: Optional[str] = Field(None, description="Hex color, e.g. #f97316")

    @field_validator("theme_color")
    @classmethod
    def _hex_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _HEX_COLOR.match(value):
            raise ValueError(
                "Invalid theme_color format. Must be a valid hex color (e.g., #f97316)"
            )
        return value

    @model_validator(mode="after")
    def _something_to_update(self) -> "UpdatePreferencesInput":
        if not self.model_fields_set:
            raise ValueError("No preferences to update")
        return self


_NOT_NULL_DEFAULTS: Dict[str, Any] = {
    "dietary_constraints": [],
    "planning_preferences": [],
    "ai_learning_enabled": True,
}


def _household_owner(session: Session, household_id: str) -> Optional[User]:
    return session.scalars(
        select(User).where(User.household_id == household_id).order_by(User.created_at, User.id)
    ).first()


def _preferences_view(row: Optional[UserPreferences]) -> Dict[str, Any]:
    view = default_preferences()
    if row is None:
        return view
    view.update(
        {
            "household_context": row.household_context,
            "dietary_constraints": list(row.dietary_constraints or []),
            "ai_style": row.ai_style,
            "planning_preferences": list(row.planning_preferences or []),
            "ai_learning_enabled": row.ai_learning_enabled,
            "default_grocery_list_id": row.default_grocery_list_id,
            "theme_color": row.theme_color or DEFAULT_THEME_COLOR,
        }
    )
    if row.shopping_categories is not None:
        view["shopping_categories"] = list(row.shopping_categories)
    if row.meal_courses is not None:
        view["meal_courses"] = list(row.meal_courses)
    return view


def household_shopping_categories(session: Session, household_id: str) -> List[str]:
    """The household's shopping categories, or the defaults when none are saved."""
    owner = _household_owner(session, household_id)
    row = session.get(UserPreferences, owner.id) if owner is not None else None
    return _preferences_view(row)["shopping_categories"]


@register_tool(
    "preferences_get",
    description=(
        "Get the household's preferences: dietary constraints, household context, planning "
        "preferences and preferred assistant style. Check these before suggesting meals."
    ),
    input_model=GetPreferencesInput,
)
def get_preferences(_params: GetPreferencesInput, context: ToolContext) -> ToolResult:
    with session_scope() as session:
        owner = _household_owner(session, context.household_id)
        if owner is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, "No user found for household")
        return ToolResult.ok(_preferences_view(session.get(UserPreferences, owner.id)))


def _preview_update(tool_input: Mapping[str, Any]) -> str:
    return f"Update preferences ({', '.join(sorted(tool_input))})"


@register_tool(
    "preferences_update",
    description=(
        "Update household preferences such as dietary constraints or planning preferences. "
        "Only the provided fields change."
    ),
    input_model=UpdatePreferencesInput,
    mutates=True,
    preview=_preview_update,
    confirmation=lambda _input, _data: "Preferences saved.",
)
def update_preferences(params: UpdatePreferencesInput, context: ToolContext) -> ToolResult:
    """Upsert the household preferences row; returns the resulting preferences."""
    with session_scope() as session:
        owner = _household_owner(session, context.household_id)
        if owner is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, "No user found for household")

        row = session.get(UserPreferences, owner.id)
        if row is None:
            row = UserPreferences(user_id=owner.id, dietary_constraints=[], planning_preferences=[])
            session.add(row)
        for field, value in params.model_dump(exclude_unset=True).items():
            if value is None and field in _NOT_NULL_DEFAULTS:
                value = _NOT_NULL_DEFAULTS[field]
            setattr(row, field, value)
        session.flush()
        view = _preferences_view(row)

    logger.info("Preferences updated for household %s", context.household_id)
    return ToolResult.ok(view)
