"""
Recipe tools: list, get, create, update, delete.

All queries are scoped to ``context.household_id``.  Creating or replacing ingredient lines also
makes sure a canonical ``ingredients`` row exists for each ingredient name; the recipe and its
lines are written in one transaction.
"""

import logging
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
    Ingredient,
    Recipe,
    RecipeIngredient,
)
from mealbrain.db.session import session_scope
from mealbrain.tools import (
    register_tool,
    validate_input,
)
from mealbrain.tools.fields import (
    MealType,
    RecipeUnit,
    RecordId,
)

logger = logging.getLogger(__name__)

ASSISTANT_SOURCE = "AI sous chef"


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------
class IngredientLine(BaseModel):
    """One ingredient of a recipe being written."""

    name: str = Field(..., min_length=1, description="Ingredient name, e.g. 'chicken thigh'")
    quantity: float = Field(..., gt=0, description="Amount in the given unit")
    unit: RecipeUnit
    prep_state: Optional[str] = Field(None, description="e.g. 'diced', 'minced'")
    optional: bool = False


class RecipeListInput(BaseModel):
    """Filters for listing recipes.  All are optional and combine with AND."""

    search: Optional[str] = Field(
        None, description="Case-insensitive text matched against title, tags, notes, instructions"
    )
    tags: Optional[List[str]] = Field(None, description="Only recipes carrying all of these tags")
    meal_type: Optional[MealType] = Field(None, description="Filter recipes by meal type")
    min_rating: Optional[float] = Field(None, ge=1, le=5, description="Minimum rating (1-5)")


class RecipeGetInput(BaseModel):
    """Identify a recipe."""

    recipe_id: RecordId = Field(..., description="The UUID of the recipe")


class _RecipeFields(BaseModel):
    title: str = Field(..., max_length=100, description="Recipe title")
    ingredients: List[IngredientLine] = Field(..., min_length=1)
    instructions: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    meal_type: Optional[MealType] = None
    serving_size: Optional[int] = Field(None, gt=0)
    prep_time: Optional[int] = Field(None, ge=0, description="Minutes")
    cook_time: Optional[int] = Field(None, ge=0, description="Minutes")
    image_url: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


class CreateRecipeInput(_RecipeFields):
    """A recipe created by a person through the app."""

    rating: Optional[int] = Field(None, ge=1, le=5)
    source: Optional[str] = None


class AssistantRecipeInput(_RecipeFields):
    """A recipe proposed by the assistant.  Assistant-created recipes start unrated."""

    source: Optional[str] = Field(None, description="Where the recipe came from")


class UpdateRecipeInput(BaseModel):
    """Partial update; only provided fields change.  ``ingredients`` replaces the whole list."""

    recipe_id: RecordId
    title: Optional[str] = Field(None, max_length=100)
    ingredients: Optional[List[IngredientLine]] = Field(None, min_length=1)
    instructions: Optional[str] = None
    tags: Optional[List[str]] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None
    meal_type: Optional[MealType] = Field(None, description="Set to null to clear")
    serving_size: Optional[int] = Field(None, gt=0)
    prep_time: Optional[int] = Field(None, ge=0)
    cook_time: Optional[int] = Field(None, ge=0)
    source: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            raise ValueError("Title cannot be empty")
        return value.strip()

    @field_validator("ingredients")
    @classmethod
    def _ingredients_not_null(cls, value: Optional[List[IngredientLine]]) -> List[IngredientLine]:
        if value is None:
            raise ValueError("Ingredients cannot be null")
        return value

    @model_validator(mode="after")
    def _something_to_update(self) -> "UpdateRecipeInput":
        if not self.model_fields_set - {"recipe_id"}:
            raise ValueError("No fields to update")
        return self


class RecipeDeleteInput(BaseModel):
    """Identify the recipe to delete."""

    recipe_id: RecordId


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _canonical_ingredient(session: Session, name: str) -> Ingredient:
    canonical = name.strip().lower()
    ingredient = session.scalars(
        select(Ingredient).where(Ingredient.canonical_name == canonical)
    ).first()
    if ingredient is None:
        ingredient = Ingredient(canonical_name=canonical)
        session.add(ingredient)
        session.flush()
    return ingredient


def _ingredient_rows(session: Session, lines: List[IngredientLine]) -> List[RecipeIngredient]:
    rows = []
    for position, line in enumerate(lines):
        ingredient = _canonical_ingredient(session, line.name)
        rows.append(
            RecipeIngredient(
                ingredient_id=ingredient.id,
                position=position,
                display_name=line.name,
                quantity=line.quantity,
                unit=line.unit,
                prep_state=line.prep_state,
                optional=line.optional,
            )
        )
    return rows


def recipe_summary(recipe: Recipe) -> Dict[str, Any]:
    """Metadata-only view used by listings."""
    return {
        "id": recipe.id,
        "title": recipe.title,
        "rating": recipe.rating,
        "tags": list(recipe.tags or []),
        "meal_type": recipe.meal_type,
        "created_at": recipe.created_at.isoformat(),
    }


def recipe_detail(recipe: Recipe) -> Dict[str, Any]:
    """Full view including ingredient lines."""
    detail = recipe_summary(recipe)
    detail.update(
        {
            "notes": recipe.notes,
            "instructions": recipe.instructions,
            "image_url": recipe.image_url,
            "source": recipe.source,
            "serving_size": recipe.serving_size,
            "prep_time": recipe.prep_time,
            "cook_time": recipe.cook_time,
            "recipe_ingredients": [
                {
                    "id": line.id,
                    "ingredient_id": line.ingredient_id,
                    "display_name": line.display_name,
                    "quantity": line.quantity,
                    "unit": line.unit,
                    "prep_state": line.prep_state,
                    "optional": line.optional,
                }
                for line in recipe.ingredients
            ],
        }
    )
    return detail


def _matches_search(recipe: Recipe, needle: str) -> bool:
    haystack = [recipe.title, recipe.notes or "", recipe.instructions or "", *(recipe.tags or [])]
    return any(needle in text.lower() for text in haystack)


def _owned_recipe(session: Session, recipe_id: str, context: ToolContext) -> Recipe | ToolResult:
    recipe = session.get(Recipe, recipe_id)
    if recipe is None:
        return ToolResult.fail(ErrorType.NOT_FOUND, "Recipe not found")
    if recipe.household_id != context.household_id:
        return ToolResult.fail(
            ErrorType.PERMISSION_DENIED, "You do not have permission to modify this recipe"
        )
    return recipe


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------
@register_tool(
    "recipe_list",
    description=(
        "List all recipes for the household with optional filters. Use this to find recipes by "
        "name, tags, meal type, or rating. Returns basic metadata only - use recipe_get to see "
        "full details including ingredients and instructions."
    ),
    input_model=RecipeListInput,
)
def list_recipes(params: RecipeListInput, context: ToolContext) -> ToolResult:
    """List household recipes, newest first."""
    with session_scope() as session:
        stmt = select(Recipe).where(Recipe.household_id == context.household_id)
        if params.meal_type:
            stmt = stmt.where(Recipe.meal_type == params.meal_type)
        if params.min_rating is not None:
            stmt = stmt.where(Recipe.rating >= params.min_rating)
        recipes = session.scalars(stmt.order_by(Recipe.created_at.desc())).all()

        if params.tags:
            wanted = {tag.lower() for tag in params.tags}
            recipes = [r for r in recipes if wanted <= {t.lower() for t in r.tags or []}]
        if params.search and params.search.strip():
            needle = params.search.strip().lower()
            recipes = [r for r in recipes if _matches_search(r, needle)]

        summaries = [recipe_summary(r) for r in recipes]

    return ToolResult.ok({"recipes": summaries, "total": len(summaries)})


@register_tool(
    "recipe_get",
    description=(
        "Get full details of a specific recipe including all ingredients (with quantities and "
        "units), instructions, notes, and metadata. Use this when you need to see what "
        "ingredients are in a recipe or how to make it."
    ),
    input_model=RecipeGetInput,
)
def get_recipe(params: RecipeGetInput, context: ToolContext) -> ToolResult:
    """Full recipe, or ``NOT_FOUND`` when absent or owned by another household."""
    with session_scope() as session:
        recipe = session.scalars(
            select(Recipe).where(
                Recipe.id == params.recipe_id, Recipe.household_id == context.household_id
            )
        ).first()
        if recipe is None:
            return ToolResult.fail(ErrorType.NOT_FOUND, "Recipe not found")
        return ToolResult.ok(recipe_detail(recipe))


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------
@validate_input(CreateRecipeInput)
def create_recipe(params: CreateRecipeInput, context: ToolContext) -> ToolResult:
    """
    Create a recipe with its ingredient lines.

    The recipe row, any new canonical ingredients and the ingredient lines share one transaction;
    if any insert fails nothing is kept.
    """
    with session_scope() as session:
        recipe = Recipe(
            household_id=context.household_id,
            title=params.title,
            rating=params.rating,
            tags=params.tags or [],
            notes=params.notes,
            instructions=params.instructions,
            meal_type=params.meal_type,
            serving_size=params.serving_size,
            prep_time=params.prep_time,
            cook_time=params.cook_time,
            source=params.source,
            image_url=params.image_url,
        )
        recipe.ingredients = _ingredient_rows(session, params.ingredients)
        session.add(recipe)
        session.flush()
        recipe_id = recipe.id

    logger.info("Created recipe %s for household %s", recipe_id, context.household_id)
    return ToolResult.ok({"recipe_id": recipe_id})


def _preview_create(tool_input: Mapping[str, Any]) -> str:
    count = len(tool_input.get("ingredients") or [])
    return f'Create recipe "{tool_input["title"]}" with {count} ingredients'


@register_tool(
    "recipe_create",
    description=(
        "Create a new recipe in the household's collection. Requires a title and at least one "
        "ingredient with quantity and unit. The user must approve before it is saved."
    ),
    input_model=AssistantRecipeInput,
    mutates=True,
    preview=_preview_create,
    confirmation=lambda tool_input, _data: (
        f'Created "{tool_input["title"]}"! You can find it in your recipes.'
    ),
)
def create_recipe_for_assistant(params: AssistantRecipeInput, context: ToolContext) -> ToolResult:
    """Assistant-created recipes are unrated and attributed to the assistant by default."""
    values = params.model_dump()
    values["source"] = params.source or ASSISTANT_SOURCE
    return create_recipe(CreateRecipeInput(**values, rating=None), context)


def _preview_update(tool_input: Mapping[str, Any]) -> str:
    fields = sorted(key for key in tool_input if key != "recipe_id")
    return f"Update recipe ({', '.join(fields)})" if fields else "Update recipe"


@register_tool(
    "recipe_update",
    description=(
        "Update fields of an existing recipe. Only the fields provided change; passing "
        "ingredients replaces the full ingredient list. Set meal_type to null to clear it."
    ),
    input_model=UpdateRecipeInput,
    mutates=True,
    preview=_preview_update,
    confirmation=lambda _input, _data: "Recipe updated.",
)
def update_recipe(params: UpdateRecipeInput, context: ToolContext) -> ToolResult:
    """Apply a partial update to a household recipe."""
    with session_scope() as session:
        recipe = _owned_recipe(session, params.recipe_id, context)
        if isinstance(recipe, ToolResult):
            return recipe

        changes = params.model_dump(exclude_unset=True, exclude={"recipe_id", "ingredients"})
        for field, value in changes.items():
            setattr(recipe, field, value if field != "tags" else (value or []))
        if "ingredients" in params.model_fields_set and params.ingredients is not None:
            recipe.ingredients = _ingredient_rows(session, params.ingredients)

    return ToolResult.ok({"recipe_id": params.recipe_id, "message": "Recipe updated successfully"})


@register_tool(
    "recipe_delete",
    description="Delete a recipe from the household's collection.",
    input_model=RecipeDeleteInput,
    mutates=True,
    preview=lambda _input: "Delete recipe",
    confirmation=lambda _input, _data: "Recipe deleted.",
)
def delete_recipe(params: RecipeDeleteInput, context: ToolContext) -> ToolResult:
    """Delete a household recipe; planned meals that used it keep their slot without a recipe."""
    with session_scope() as session:
        recipe = _owned_recipe(session, params.recipe_id, context)
        if isinstance(recipe, ToolResult):
            return recipe
        session.delete(recipe)

    return ToolResult.ok({"recipe_id": params.recipe_id, "message": "Recipe deleted successfully"})
