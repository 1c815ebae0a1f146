"""
Grocery list tools.

Pushing ingredients onto a list merges deterministically: an incoming line is folded into a line
already on the list only when ingredient, unit, display name and source recipe all match exactly.
Lines within one push are never merged with each other.  Quantities are never converted between
units.  New items are filed under one of the household's shopping categories.
"""

import logging
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)
from sqlalchemy import select
from sqlalchemy.orm import Session

from mealbrain.core.schema import (
    ErrorType,
    ToolContext,
    ToolResult,
)
from mealbrain.db.models import (
    GroceryItem,
    GroceryList,
    Recipe,
)
from mealbrain.db.session import session_scope
from mealbrain.tools import (
    register_tool,
    validate_input,
)
from mealbrain.tools.categories import categorize_item
from mealbrain.tools.fields import (
    GroceryUnit,
    RecordId,
)
from mealbrain.tools.preferences import household_shopping_categories

logger = logging.getLogger(__name__)

LIST_NOT_IN_HOUSEHOLD = "Grocery list not found or does not belong to your household"


def add_quantities(first: float, second: float) -> float:
    """Sum two quantities, rounded to 2 decimals to keep float noise out of stored values."""
    return round(first + second, 2)


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------
class CreateListInput(BaseModel):
    """Name of the new list."""

    name: str = Field(
        ..., min_length=1, max_length=100, description="List name, e.g. 'Weekly shop'"
    )


class ListListsInput(BaseModel):
    """No parameters."""


class GetListInput(BaseModel):
    """Identify a grocery list."""

    grocery_list_id: RecordId


class AddItemInput(BaseModel):
    """One item to add to a list."""

    grocery_list_id: RecordId
    name: str = Field(..., min_length=1, description="Item name as shown on the list")
    quantity: float = Field(..., gt=0)
    unit: GroceryUnit
    category: Optional[str] = Field(
        None, description="Shopping category; chosen from the item name when omitted"
    )


class CheckItemInput(BaseModel):
    """Mark an item as bought, or not."""

    grocery_item_id: RecordId
    checked: bool


class PushLine(BaseModel):
    """One ingredient line to push onto a list."""

    ingredient_id: Optional[str] = None
    display_name: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: GroceryUnit
    prep_state: Optional[str] = None
    source_recipe_id: Optional[str] = None


class PushIngredientsInput(BaseModel):
    """Explicit ingredient lines to merge onto a list."""

    grocery_list_id: RecordId
    ingredients: List[PushLine] = Field(..., min_length=1)


class PushRecipeInput(BaseModel):
    """Push every ingredient of a recipe onto a list."""

    grocery_list_id: RecordId = Field(..., description="Target grocery list")
    recipe_id: RecordId = Field(..., description="Recipe whose ingredients are added")


class CategorizeInput(BaseModel):
    """Item name to file under a shopping category."""

    item_name: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _household_list(session: Session, list_id: str, context: ToolContext) -> Optional[GroceryList]:
    return session.scalars(
        select(GroceryList).where(
            GroceryList.id == list_id, GroceryList.household_id == context.household_id
        )
    ).first()


def _item_view(item: GroceryItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "ingredient_id": item.ingredient_id,
        "display_name": item.display_name,
        "quantity": item.quantity,
        "unit": item.unit,
        "category": item.category,
        "checked": item.checked,
        "source_recipe_id": item.source_recipe_id,
    }


def _same_line(item: GroceryItem, line: PushLine) -> bool:
    return (
        item.ingredient_id == line.ingredient_id
        and item.unit == line.unit
        and item.display_name == line.display_name
        and item.source_recipe_id == line.source_recipe_id
    )


def merge_lines(
    session: Session, grocery_list: GroceryList, lines: List[PushLine]
) -> Dict[str, int]:
    """
    Merge *lines* into *grocery_list* and return the added/merged counts.

    Only items already on the list are merge targets, so two identical lines in *lines* become
    two new items.
    """
    added = merged = 0
    items = list(grocery_list.items)
    categories = household_shopping_categories(session, grocery_list.household_id)
    for line in lines:
        match = next((item for item in items if _same_line(item, line)), None)
        if match is not None:
            match.quantity = add_quantities(match.quantity, line.quantity)
            merged += 1
            continue
        item = GroceryItem(
            grocery_list_id=grocery_list.id,
            ingredient_id=line.ingredient_id,
            display_name=line.display_name,
            quantity=line.quantity,
            unit=line.unit,
            category=categorize_item(line.display_name, categories),
            checked=False,
            source_recipe_id=line.source_recipe_id,
        )
        session.add(item)
        added += 1
    return {"items_added": added, "items_merged": merged}


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------
@register_tool(
    "grocery_list_lists",
    description="List the household's grocery lists (id, name, created_at), newest first.",
    input_model=ListListsInput,
)
def list_lists(_params: ListListsInput, context: ToolContext) -> ToolResult:
    with session_scope() as session:
        lists = session.scalars(
            select(GroceryList)
            .where(GroceryList.household_id == context.household_id)
            .order_by(GroceryList.created_at.desc())
        ).all()
        views = [
            {"id": g.id, "name": g.name, "created_at": g.created_at.isoformat()} for g in lists
        ]
    return ToolResult.ok({"lists": views})


@register_tool(
    "grocery_get_list",
    description="Get one grocery list with all of its items.",
    input_model=GetListInput,
)
def get_list(params: GetListInput, context: ToolContext) -> ToolResult:
    with session_scope() as session:
        grocery_list = _household_list(session, params.grocery_list_id, context)
        if grocery_list is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, "Grocery list not found")
        return ToolResult.ok(
            {
                "id": grocery_list.id,
                "name": grocery_list.name,
                "items": [_item_view(item) for item in grocery_list.items],
            }
        )


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------
@register_tool(
    "grocery_create_list",
    description="Create a new, empty grocery list. Names must be unique within the household.",
    input_model=CreateListInput,
    mutates=True,
    preview=lambda tool_input: f'Create grocery list "{tool_input["name"]}"',
    confirmation=lambda tool_input, _data: f'Created grocery list "{tool_input["name"]}".',
)
def create_list(params: CreateListInput, context: ToolContext) -> ToolResult:
    """Returns ``grocery_list_id``; a duplicate name is a validation error."""
    name = params.name.strip()
    with session_scope() as session:
        existing = session.scalars(
            select(GroceryList.id).where(
                GroceryList.household_id == context.household_id, GroceryList.name == name
            )
        ).first()
        if existing is not None:
            return ToolResult.fail(
                ErrorType.VALIDATION_ERROR,
                f'A grocery list named "{name}" already exists',
                field="name",
            )
        grocery_list = GroceryList(household_id=context.household_id, name=name)
        session.add(grocery_list)
        session.flush()
        list_id = grocery_list.id

    return ToolResult.ok({"grocery_list_id": list_id})


@register_tool(
    "grocery_add_item",
    description="Add a single item to a grocery list.",
    input_model=AddItemInput,
    mutates=True,
    preview=lambda tool_input: (
        f"Add {tool_input['quantity']} {tool_input['unit']} {tool_input['name']} to grocery list"
    ),
    confirmation=lambda tool_input, _data: f"Added {tool_input['name']} to your grocery list.",
)
def add_item(params: AddItemInput, context: ToolContext) -> ToolResult:
    """Returns ``grocery_item_id`` and the ``category`` the item was filed under."""
    with session_scope() as session:
        if _household_list(session, params.grocery_list_id, context) is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, LIST_NOT_IN_HOUSEHOLD)
        category = params.category or categorize_item(
            params.name, household_shopping_categories(session, context.household_id)
        )
        item = GroceryItem(
            grocery_list_id=params.grocery_list_id,
            display_name=params.name,
            quantity=params.quantity,
            unit=params.unit,
            category=category,
            checked=False,
        )
        session.add(item)
        session.flush()
        item_id = item.id

    return ToolResult.ok({"grocery_item_id": item_id, "category": category})


@register_tool(
    "grocery_check_item",
    description="Check off (or uncheck) an item on a grocery list.",
    input_model=CheckItemInput,
    mutates=True,
    preview=lambda tool_input: (
        "Check off grocery item" if tool_input.get("checked") else "Uncheck grocery item"
    ),
    confirmation=lambda tool_input, _data: (
        "Item checked off." if tool_input.get("checked") else "Item unchecked."
    ),
)
def check_item(params: CheckItemInput, context: ToolContext) -> ToolResult:
    with session_scope() as session:
        item = session.scalars(
            select(GroceryItem)
            .join(GroceryList, GroceryItem.grocery_list_id == GroceryList.id)
            .where(
                GroceryItem.id == params.grocery_item_id,
                GroceryList.household_id == context.household_id,
            )
        ).first()
        if item is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, "Grocery item not found")
        item.checked = params.checked

    return ToolResult.ok({"grocery_item_id": params.grocery_item_id, "checked": params.checked})


@validate_input(PushIngredientsInput)
def push_ingredients(params: PushIngredientsInput, context: ToolContext) -> ToolResult:
    """Merge explicit ingredient lines onto a household list."""
    with session_scope() as session:
        grocery_list = _household_list(session, params.grocery_list_id, context)
        if grocery_list is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, LIST_NOT_IN_HOUSEHOLD)
        counts = merge_lines(session, grocery_list, params.ingredients)

    logger.info("Pushed to list %s: %s", params.grocery_list_id, counts)
    return ToolResult.ok(counts)


@validate_input(CategorizeInput)
def categorize(params: CategorizeInput, context: ToolContext) -> ToolResult:
    """Shopping category the household would file *item_name* under."""
    with session_scope() as session:
        categories = household_shopping_categories(session, context.household_id)
    category = categorize_item(params.item_name, categories)
    logger.debug("Categorised %r as %s", params.item_name, category)
    return ToolResult.ok({"category": category, "source": "keywords"})


@register_tool(
    "grocery_push_ingredients",
    description=(
        "Add all ingredients of a recipe to a grocery list. Lines for the same ingredient, unit "
        "and recipe already on the list have their quantities increased instead of duplicated."
    ),
    input_model=PushRecipeInput,
    mutates=True,
    preview=lambda _input: "Add recipe ingredients to grocery list",
    confirmation=lambda _input, data: (
        f"Added {data['items_added']} items to your grocery list"
        f" ({data['items_merged']} merged with existing items)."
    ),
)
def push_recipe_ingredients(params: PushRecipeInput, context: ToolContext) -> ToolResult:
    """Push a household recipe's ingredient lines, tagged with the recipe as their source."""
    with session_scope() as session:
        recipe = session.scalars(
            select(Recipe).where(
                Recipe.id == params.recipe_id, Recipe.household_id == context.household_id
            )
        ).first()
        if recipe is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, "Recipe not found")
        lines = [
            PushLine(
                ingredient_id=line.ingredient_id,
                display_name=line.display_name,
                quantity=line.quantity,
                unit=line.unit,
                prep_state=line.prep_state,
                source_recipe_id=recipe.id,
            )
            for line in recipe.ingredients
        ]

    return push_ingredients(
        PushIngredientsInput(grocery_list_id=params.grocery_list_id, ingredients=lines), context
    )
