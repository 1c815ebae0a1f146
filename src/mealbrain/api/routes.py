"""
REST routes for the app's screens.

Each route is a thin wrapper over the same domain functions the assistant uses, so validation,
household scoping and error types are identical on both paths.  Failed tool results become
``HTTPException`` responses via :func:`mealbrain.api.deps.unwrap`.
"""

from typing import (
    Any,
    Dict,
    Optional,
)

from fastapi import (
    APIRouter,
    Body,
    Depends,
    Query,
)

from mealbrain.api.deps import (
    get_tool_context,
    unwrap,
)
from mealbrain.core.schema import ToolContext
from mealbrain.tools import (
    grocery,
    planner,
    preferences,
    recipe,
)

router = APIRouter()

JsonBody = Dict[str, Any]


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------
@router.get("/recipes", summary="List recipes")
def list_recipes(
    search: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    meal_type: Optional[str] = None,
    min_rating: Optional[float] = None,
    context: ToolContext = Depends(get_tool_context),
) -> Any:
    filters: JsonBody = {"search": search, "meal_type": meal_type, "min_rating": min_rating}
    if tags:
        filters["tags"] = [tag.strip() for tag in tags.split(",") if tag.strip()]
    return unwrap(recipe.list_recipes({k: v for k, v in filters.items() if v is not None}, context))


@router.post("/recipes", status_code=201, summary="Create a recipe")
def create_recipe(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(recipe.create_recipe(payload, context))


@router.get("/recipes/{recipe_id}", summary="Get a recipe")
def get_recipe(recipe_id: str, context: ToolContext = Depends(get_tool_context)) -> Any:
    return unwrap(recipe.get_recipe({"recipe_id": recipe_id}, context))


@router.patch("/recipes/{recipe_id}", summary="Update a recipe")
def update_recipe(
    recipe_id: str,
    payload: JsonBody = Body(...),
    context: ToolContext = Depends(get_tool_context),
) -> Any:
    return unwrap(recipe.update_recipe({**payload, "recipe_id": recipe_id}, context))


@router.delete("/recipes/{recipe_id}", summary="Delete a recipe")
def delete_recipe(recipe_id: str, context: ToolContext = Depends(get_tool_context)) -> Any:
    return unwrap(recipe.delete_recipe({"recipe_id": recipe_id}, context))


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------
@router.get("/planner", summary="List planned meals in a date range")
def list_meals(
    start_date: str, end_date: str, context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(planner.list_meals({"start_date": start_date, "end_date": end_date}, context))


@router.post("/planner", status_code=201, summary="Plan a meal")
def add_meal(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(planner.add_meal(payload, context))


@router.patch("/planner/{meal_id}", summary="Update a planned meal")
def update_meal(
    meal_id: str,
    payload: JsonBody = Body(...),
    context: ToolContext = Depends(get_tool_context),
) -> Any:
    return unwrap(planner.update_meal({**payload, "planner_meal_id": meal_id}, context))


@router.delete("/planner/{meal_id}", summary="Remove a planned meal")
def remove_meal(meal_id: str, context: ToolContext = Depends(get_tool_context)) -> Any:
    return unwrap(planner.remove_meal({"planner_meal_id": meal_id}, context))


# ---------------------------------------------------------------------------
# Grocery
# ---------------------------------------------------------------------------
@router.get("/grocery/lists", summary="List grocery lists")
def list_grocery_lists(context: ToolContext = Depends(get_tool_context)) -> Any:
    return unwrap(grocery.list_lists({}, context))


@router.post("/grocery/lists", status_code=201, summary="Create a grocery list")
def create_grocery_list(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(grocery.create_list(payload, context))


@router.get("/grocery/lists/{list_id}", summary="Get a grocery list with its items")
def get_grocery_list(list_id: str, context: ToolContext = Depends(get_tool_context)) -> Any:
    return unwrap(grocery.get_list({"grocery_list_id": list_id}, context))


@router.post("/grocery/items", status_code=201, summary="Add a grocery item")
def add_grocery_item(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(grocery.add_item(payload, context))


@router.post("/grocery/items/check", summary="Check or uncheck a grocery item")
def check_grocery_item(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(grocery.check_item(payload, context))


@router.post("/grocery/push-ingredients", summary="Merge ingredient lines onto a list")
def push_ingredients(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(grocery.push_ingredients(payload, context))


@router.post("/grocery/categorize", summary="Suggest a shopping category for an item")
def categorize_grocery_item(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(grocery.categorize(payload, context))


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------
@router.get("/user/preferences", summary="Get household preferences")
def get_preferences(context: ToolContext = Depends(get_tool_context)) -> Any:
    return unwrap(preferences.get_preferences({}, context))


@router.put("/user/preferences", summary="Update household preferences")
def update_preferences(
    payload: JsonBody = Body(...), context: ToolContext = Depends(get_tool_context)
) -> Any:
    return unwrap(preferences.update_preferences(payload, context))
