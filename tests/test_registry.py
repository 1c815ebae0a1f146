"""Tests for tool registration, classification and declarations."""

import json

import pytest
from pydantic import BaseModel

from mealbrain.tools import (
    TOOL_REGISTRY,
    get_tool,
    get_tool_declarations,
    is_write_tool,
    read_tool_names,
    register_tool,
    write_tool_names,
)

READ_TOOLS = {
    "recipe_list",
    "recipe_get",
    "planner_list_meals",
    "grocery_list_lists",
    "grocery_get_list",
    "preferences_get",
    "date_parse",
}

WRITE_TOOLS = {
    "recipe_create",
    "recipe_update",
    "recipe_delete",
    "planner_add_meal",
    "planner_update_meal",
    "planner_remove_meal",
    "grocery_create_list",
    "grocery_add_item",
    "grocery_check_item",
    "grocery_push_ingredients",
    "preferences_update",
}


class _Empty(BaseModel):
    pass


def test_classification_matches_tool_table() -> None:
    """Every domain tool is registered with the expected read/write classification."""

    assert READ_TOOLS <= set(read_tool_names())
    assert set(write_tool_names()) == WRITE_TOOLS
    assert not is_write_tool("recipe_get")
    assert is_write_tool("recipe_create")
    assert not is_write_tool("no_such_tool")


def test_every_write_tool_has_a_preview() -> None:
    """Write tools must describe themselves before they run."""

    for name in WRITE_TOOLS:
        assert TOOL_REGISTRY[name].preview is not None, name


def test_duplicate_name_rejected() -> None:
    """A tool name can only be registered once."""

    with pytest.raises(ValueError, match="already registered"):

        @register_tool("recipe_get", description="dup", input_model=_Empty)
        def _dup(params, context):  # pragma: no cover
            return None


def test_write_tool_without_preview_rejected() -> None:
    """Registering a write tool without a preview fails and leaves no entry behind."""

    with pytest.raises(ValueError, match="preview"):

        @register_tool("test_unpreviewed_write", description="x", input_model=_Empty, mutates=True)
        def _write(params, context):  # pragma: no cover
            return None

    assert get_tool("test_unpreviewed_write") is None


def test_declarations_are_self_contained() -> None:
    """Declarations carry name, description and an inlined object schema."""

    declarations = {d["name"]: d for d in get_tool_declarations()}
    assert (READ_TOOLS | WRITE_TOOLS) <= set(declarations)

    for declaration in declarations.values():
        assert declaration["description"]
        assert declaration["input_schema"]["type"] == "object"
        assert "$ref" not in json.dumps(declaration["input_schema"])

    create = declarations["recipe_create"]["input_schema"]
    assert set(create["required"]) == {"title", "ingredients"}
    # a property called "title" survives title-stripping
    assert "title" in create["properties"]
    unit = create["properties"]["ingredients"]["items"]["properties"]["unit"]
    assert "fl oz" in unit["enum"]
    assert "gallon" not in unit["enum"]


def test_grocery_units_extend_recipe_units() -> None:
    """Grocery items accept shopping units on top of recipe units."""

    declarations = {d["name"]: d for d in get_tool_declarations()}
    unit = declarations["grocery_add_item"]["input_schema"]["properties"]["unit"]
    assert {"gallon", "dozen", "cup", "each"} <= set(unit["enum"])


def test_previews_are_readable() -> None:
    """Previews read as plain sentences."""

    add_meal = get_tool("planner_add_meal")
    assert add_meal.describe({"date": "2026-01-16", "meal_type": "dinner"}) == (
        "Add to dinner on 2026-01-16"
    )
    assert add_meal.describe(
        {"date": "2026-01-16", "meal_type": "dinner", "custom_title": "Leftovers"}
    ) == 'Add "Leftovers" to dinner on 2026-01-16'

    create_list = get_tool("grocery_create_list")
    assert create_list.describe({"name": "Weekly Shop"}) == 'Create grocery list "Weekly Shop"'


def test_preview_falls_back_on_malformed_input() -> None:
    """A preview that cannot be built names the tool instead."""

    assert get_tool("recipe_create").describe({}) == "Run recipe_create"
