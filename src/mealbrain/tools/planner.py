"""Meal planner tools: schedule recipes or custom items on dates."""

import logging
from typing import (
    Any,
    Dict,
    Literal,
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
    PlannerMeal,
    Recipe,
)
from mealbrain.db.session import session_scope
from mealbrain.tools import register_tool
from mealbrain.tools.fields import (
    IsoDate,
    RecordId,
)

logger = logging.getLogger(__name__)

CustomItemType = Literal["side", "leftovers", "other"]

RECIPE_NOT_IN_HOUSEHOLD = "Recipe not found or does not belong to your household"


class AddMealInput(BaseModel):
    """Either ``recipe_id`` or ``custom_title`` must be given, not both."""

    recipe_id: Optional[RecordId] = Field(None, description="Recipe to schedule")
    date: IsoDate = Field(..., description="Date in YYYY-MM-DD format")
    meal_type: str = Field(
        ..., min_length=1, description="Meal course, e.g. breakfast, lunch, dinner, snack"
    )
    serving_size: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None
    custom_title: Optional[str] = Field(None, description="Title of a non-recipe item")
    custom_item_type: Optional[CustomItemType] = None

    @model_validator(mode="after")
    def _recipe_or_custom(self) -> "AddMealInput":
        if bool(self.recipe_id) == bool(self.custom_title):
            raise ValueError("Either recipe_id or custom_title must be provided, but not both")
        return self


class UpdateMealInput(BaseModel):
    """Partial update of a planned meal."""

    planner_meal_id: RecordId
    recipe_id: Optional[RecordId] = None
    date: Optional[IsoDate] = None
    meal_type: Optional[str] = Field(None, min_length=1)
    serving_size: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None
    custom_title: Optional[str] = None
    custom_item_type: Optional[CustomItemType] = None

    @field_validator("date", "meal_type")
    @classmethod
    def _not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class RemoveMealInput(BaseModel):
    """Identify the planned meal to remove."""

    planner_meal_id: RecordId


class ListMealsInput(BaseModel):
    """Inclusive date range."""

    start_date: IsoDate = Field(..., description="First date (YYYY-MM-DD)")
    end_date: IsoDate = Field(..., description="Last date (YYYY-MM-DD), inclusive")


def _meal_view(meal: PlannerMeal) -> Dict[str, Any]:
    recipe = meal.recipe
    return {
        "id": meal.id,
        "recipe_id": meal.recipe_id,
        "date": meal.date,
        "meal_type": meal.meal_type,
        "serving_size": meal.serving_size,
        "notes": meal.notes,
        "custom_title": meal.custom_title,
        "custom_item_type": meal.custom_item_type,
        "recipe": (
            {"title": recipe.title, "tags": list(recipe.tags or []), "rating": recipe.rating}
            if recipe is not None
            else None
        ),
    }


def _recipe_in_household(session: Session, recipe_id: str, household_id: str) -> bool:
    return (
        session.scalars(
            select(Recipe.id).where(Recipe.id == recipe_id, Recipe.household_id == household_id)
        ).first()
        is not None
    )


def _owned_meal(
    session: Session, meal_id: str, context: ToolContext, verb: str
) -> PlannerMeal | ToolResult:
    meal = session.get(PlannerMeal, meal_id)
    if meal is None:
        return ToolResult.fail(ErrorType.NOT_FOUND, "Meal not found")
    if meal.household_id != context.household_id:
        return ToolResult.fail(
            ErrorType.AUTHORIZATION_ERROR, f"You do not have permission to {verb} this meal"
        )
    return meal


def _preview_add(tool_input: Mapping[str, Any]) -> str:
    slot = f"{tool_input['meal_type']} on {tool_input['date']}"
    title = tool_input.get("custom_title")
    return f'Add "{title}" to {slot}' if title else f"Add to {slot}"


@register_tool(
    "planner_list_meals",
    description=(
        "List planned meals between two dates (inclusive), with the title, tags and rating of "
        "each scheduled recipe. Use date_parse first to turn phrases like 'next week' into dates."
    ),
    input_model=ListMealsInput,
)
def list_meals(params: ListMealsInput, context: ToolContext) -> ToolResult:
    """Meals ordered by date, then meal type."""
    with session_scope() as session:
        meals = session.scalars(
            select(PlannerMeal)
            .where(
                PlannerMeal.household_id == context.household_id,
                PlannerMeal.date >= params.start_date,
                PlannerMeal.date <= params.end_date,
            )
            .order_by(PlannerMeal.date, PlannerMeal.meal_type)
        ).all()
        views = [_meal_view(meal) for meal in meals]
    return ToolResult.ok({"meals": views, "total": len(views)})


def _confirm_add(tool_input: Mapping[str, Any], data: Mapping[str, Any]) -> str:
    course = str(tool_input["meal_type"]).capitalize()
    return f"Added {data.get('title') or 'the recipe'} to {course} on {tool_input['date']}!"


@register_tool(
    "planner_add_meal",
    description=(
        "Schedule a household recipe, or a custom item such as leftovers, on a date for a meal. "
        "Provide either recipe_id or custom_title. Several meals may share a slot."
    ),
    input_model=AddMealInput,
    mutates=True,
    preview=_preview_add,
    confirmation=_confirm_add,
)
def add_meal(params: AddMealInput, context: ToolContext) -> ToolResult:
    """Insert a planner meal; returns ``planner_meal_id`` and the title of what was planned."""
    with session_scope() as session:
        title = params.custom_title
        if params.recipe_id:
            title = session.scalars(
                select(Recipe.title).where(
                    Recipe.id == params.recipe_id, Recipe.household_id == context.household_id
                )
            ).first()
            if title is None:
                return ToolResult.fail(ErrorType.NOT_FOUND, RECIPE_NOT_IN_HOUSEHOLD)

        meal = PlannerMeal(household_id=context.household_id, **params.model_dump())
        session.add(meal)
        session.flush()
        meal_id = meal.id

    logger.info("Planned %s on %s (meal %s)", params.meal_type, params.date, meal_id)
    return ToolResult.ok({"planner_meal_id": meal_id, "title": title})


@register_tool(
    "planner_update_meal",
    description="Change the date, meal type, recipe, servings or notes of a planned meal.",
    input_model=UpdateMealInput,
    mutates=True,
    preview=lambda tool_input: (
        f"Move meal to {tool_input['meal_type'] if 'meal_type' in tool_input else 'its slot'}"
        f" on {tool_input['date']}"
        if "date" in tool_input
        else "Update planned meal"
    ),
    confirmation=lambda _input, _data: "Meal plan updated.",
)
def update_meal(params: UpdateMealInput, context: ToolContext) -> ToolResult:
    """Apply only the provided fields."""
    with session_scope() as session:
        meal = _owned_meal(session, params.planner_meal_id, context, "update")
        if isinstance(meal, ToolResult):
            return meal

        if (
            params.recipe_id
            and params.recipe_id != meal.recipe_id
            and not _recipe_in_household(session, params.recipe_id, context.household_id)
        ):
            return ToolResult.fail(ErrorType.NOT_FOUND, RECIPE_NOT_IN_HOUSEHOLD)

        for field, value in params.model_dump(
            exclude_unset=True, exclude={"planner_meal_id"}
        ).items():
            setattr(meal, field, value)

    return ToolResult.ok({"message": "Meal updated successfully"})


@register_tool(
    "planner_remove_meal",
    description="Remove a planned meal from the calendar.",
    input_model=RemoveMealInput,
    mutates=True,
    preview=lambda _input: "Remove meal from planner",
    confirmation=lambda _input, _data: "Removed from your meal plan.",
)
def remove_meal(params: RemoveMealInput, context: ToolContext) -> ToolResult:
    """Delete a planned meal of the caller's household."""
    with session_scope() as session:
        meal = _owned_meal(session, params.planner_meal_id, context, "remove")
        if isinstance(meal, ToolResult):
            return meal
        session.delete(meal)

    return ToolResult.ok({"message": "Meal removed successfully"})
