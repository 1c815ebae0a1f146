"""Tests for grocery lists, items, the ingredient merge rule and item categories."""

import pytest

from mealbrain.core.schema import ErrorType
from mealbrain.tools import (
    grocery,
    preferences,
)
from mealbrain.tools.categories import (
    categorize_item,
    suggest_category,
)
from mealbrain.tools.grocery import add_quantities
from mealbrain.tools.preferences import DEFAULT_SHOPPING_CATEGORIES


def _new_list(context, name="Weekly Shop") -> str:
    result = grocery.create_list({"name": name}, context)
    assert result.success, result.error
    return result.data["grocery_list_id"]


def _items(list_id, context):
    result = grocery.get_list({"grocery_list_id": list_id}, context)
    assert result.success, result.error
    return result.data["items"]


def test_create_list_rejects_duplicate_name(household, other_household) -> None:
    """A list name can be used once per household."""

    _new_list(household.context)

    duplicate = grocery.create_list({"name": "Weekly Shop"}, household.context)
    assert duplicate.error.type is ErrorType.VALIDATION_ERROR
    assert "already exists" in duplicate.error.message

    # names are only unique within a household
    _new_list(other_household.context)


def test_list_and_get_lists(household, other_household) -> None:
    """Listing shows only the caller's lists; another household's list is not found."""

    list_id = _new_list(household.context)
    _new_list(other_household.context, "Theirs")

    lists = grocery.list_lists({}, household.context).data["lists"]
    assert len(lists) == 1
    assert set(lists[0]) == {"id", "name", "created_at"}
    assert lists[0]["id"] == list_id

    fetched = grocery.get_list({"grocery_list_id": list_id}, household.context).data
    assert fetched["id"] == list_id
    assert fetched["name"] == "Weekly Shop"
    assert fetched["items"] == []

    foreign = grocery.get_list({"grocery_list_id": list_id}, other_household.context)
    assert foreign.error.type is ErrorType.NOT_FOUND


def test_add_item_units(household) -> None:
    """Only grocery units are accepted, and the failure names the field."""

    list_id = _new_list(household.context)

    ok = grocery.add_item(
        {"grocery_list_id": list_id, "name": "milk", "quantity": 1, "unit": "gallon"},
        household.context,
    )
    assert ok.success
    assert ok.data["grocery_item_id"]

    bad = grocery.add_item(
        {"grocery_list_id": list_id, "name": "basil", "quantity": 2, "unit": "handfuls"},
        household.context,
    )
    assert bad.error.type is ErrorType.VALIDATION_ERROR
    assert bad.error.field == "unit"

    [item] = _items(list_id, household.context)
    assert (item["display_name"], item["quantity"], item["unit"], item["checked"]) == (
        "milk",
        1,
        "gallon",
        False,
    )


def test_add_item_to_foreign_list(household, other_household) -> None:
    """Adding to another household's list is reported as not found."""

    list_id = _new_list(other_household.context)
    result = grocery.add_item(
        {"grocery_list_id": list_id, "name": "milk", "quantity": 1, "unit": "gallon"},
        household.context,
    )
    assert result.error.type is ErrorType.NOT_FOUND


def test_check_item(household, other_household) -> None:
    """Items can be checked and unchecked by their own household only."""

    list_id = _new_list(household.context)
    item_id = grocery.add_item(
        {"grocery_list_id": list_id, "name": "eggs", "quantity": 1, "unit": "dozen"},
        household.context,
    ).data["grocery_item_id"]

    check = {"grocery_item_id": item_id, "checked": True}
    foreign = grocery.check_item(check, other_household.context)
    assert foreign.error.type is ErrorType.NOT_FOUND

    assert grocery.check_item(check, household.context).success
    assert _items(list_id, household.context)[0]["checked"] is True

    grocery.check_item({**check, "checked": False}, household.context)
    assert _items(list_id, household.context)[0]["checked"] is False


def test_push_merges_only_identical_lines(household) -> None:
    """Same ingredient, unit, name and source merge; any difference adds a new line."""

    list_id = _new_list(household.context)
    line = {"ingredient_id": "ing-1", "display_name": "flour", "quantity": 1, "unit": "cup"}

    first = grocery.push_ingredients(
        {"grocery_list_id": list_id, "ingredients": [line]}, household.context
    )
    assert first.data == {"items_added": 1, "items_merged": 0}

    second = grocery.push_ingredients(
        {
            "grocery_list_id": list_id,
            "ingredients": [
                line,
                {**line, "unit": "g", "quantity": 200},
                {**line, "display_name": "Flour"},
                {**line, "source_recipe_id": "recipe-1"},
            ],
        },
        household.context,
    )
    assert second.data == {"items_added": 3, "items_merged": 1}

    items = _items(list_id, household.context)
    assert len(items) == 4
    [merged] = [
        i
        for i in items
        if (i["display_name"], i["unit"], i["source_recipe_id"]) == ("flour", "cup", None)
    ]
    assert merged["quantity"] == 2


def test_push_does_not_merge_lines_within_one_batch(household) -> None:
    """Identical lines in a single push become separate items; later pushes merge into both."""

    list_id = _new_list(household.context)
    line = {"ingredient_id": "ing-1", "display_name": "sugar", "quantity": 0.1, "unit": "cup"}

    result = grocery.push_ingredients(
        {"grocery_list_id": list_id, "ingredients": [line, {**line, "quantity": 0.2}]},
        household.context,
    )
    assert result.data == {"items_added": 2, "items_merged": 0}
    assert sorted(i["quantity"] for i in _items(list_id, household.context)) == [0.1, 0.2]

    again = grocery.push_ingredients(
        {"grocery_list_id": list_id, "ingredients": [line]}, household.context
    )
    assert again.data == {"items_added": 0, "items_merged": 1}
    assert len(_items(list_id, household.context)) == 2


def test_push_validation_and_scoping(household, other_household) -> None:
    """An empty push is invalid; pushing to a foreign list is not found."""

    list_id = _new_list(household.context)

    empty = grocery.push_ingredients(
        {"grocery_list_id": list_id, "ingredients": []}, household.context
    )
    assert empty.error.type is ErrorType.VALIDATION_ERROR
    assert empty.error.field == "ingredients"

    line = {"display_name": "salt", "quantity": 1, "unit": "tsp"}
    foreign = grocery.push_ingredients(
        {"grocery_list_id": list_id, "ingredients": [line]}, other_household.context
    )
    assert foreign.error.type is ErrorType.NOT_FOUND


def test_push_recipe_ingredients_twice_merges(household, make_recipe) -> None:
    """Pushing the same recipe twice doubles quantities instead of duplicating lines."""

    recipe_id = make_recipe()
    list_id = _new_list(household.context)
    payload = {"grocery_list_id": list_id, "recipe_id": recipe_id}

    first = grocery.push_recipe_ingredients(payload, household.context)
    assert first.data == {"items_added": 3, "items_merged": 0}
    second = grocery.push_recipe_ingredients(payload, household.context)
    assert second.data == {"items_added": 0, "items_merged": 3}

    items = {i["display_name"]: i for i in _items(list_id, household.context)}
    assert items["chicken thigh"]["quantity"] == 3
    assert items["chicken thigh"]["unit"] == "lb"
    assert {i["source_recipe_id"] for i in items.values()} == {recipe_id}


def test_push_recipe_from_other_household(household, other_household, make_recipe) -> None:
    """Another household's recipe cannot be pushed."""

    recipe_id = make_recipe(other_household.context)
    list_id = _new_list(household.context)
    result = grocery.push_recipe_ingredients(
        {"grocery_list_id": list_id, "recipe_id": recipe_id}, household.context
    )
    assert result.error.type is ErrorType.NOT_FOUND


def test_add_quantities_rounds_to_two_decimals() -> None:
    """Summed quantities carry no float noise."""

    assert add_quantities(0.1, 0.2) == 0.3
    assert add_quantities(1.333, 1.333) == 2.67


@pytest.mark.parametrize(
    "name, category",
    [
        ("chicken thigh", "Meat & Seafood"),
        ("milk", "Dairy & Eggs"),
        ("Yellow Onions", "Produce"),
        ("coconut milk", "Canned Goods"),
        ("olive oil", "Condiments & Sauces"),
        ("rice", "Pantry"),
        ("dragonfruit syrup concentrate", None),
    ],
)
def test_suggest_category(name, category) -> None:
    """Whole-word keywords decide the section, and the longest keyword wins."""

    assert suggest_category(name) == category


def test_categorize_item_maps_onto_household_categories() -> None:
    """Sections the household does not use fall back to its "Other" category."""

    assert categorize_item("milk", DEFAULT_SHOPPING_CATEGORIES) == "Dairy & Eggs"
    assert categorize_item("quince paste", DEFAULT_SHOPPING_CATEGORIES) == "Other"

    custom = ["produce", "Fridge", "other stuff"]
    assert categorize_item("spinach", custom) == "produce"
    assert categorize_item("milk", custom) == "Other"
    assert categorize_item("milk", ["Dairy & Eggs", "OTHER"]) == "Dairy & Eggs"
    assert categorize_item("bread", ["Dairy & Eggs", "OTHER"]) == "OTHER"


def test_add_item_is_filed_under_a_category(household) -> None:
    """New items get a category from their name unless one is given."""

    list_id = _new_list(household.context)

    milk = grocery.add_item(
        {"grocery_list_id": list_id, "name": "milk", "quantity": 1, "unit": "gallon"},
        household.context,
    )
    assert milk.data["category"] == "Dairy & Eggs"

    grocery.add_item(
        {
            "grocery_list_id": list_id,
            "name": "birthday candles",
            "quantity": 1,
            "unit": "package",
            "category": "Party",
        },
        household.context,
    )

    categories = {i["display_name"]: i["category"] for i in _items(list_id, household.context)}
    assert categories == {"milk": "Dairy & Eggs", "birthday candles": "Party"}


def test_pushed_ingredients_use_household_categories(household) -> None:
    """Pushed lines are categorised against the household's own category list."""

    updated = preferences.update_preferences(
        {"shopping_categories": ["Meat & Seafood", "Other"]}, household.context
    )
    assert updated.success, updated.error
    list_id = _new_list(household.context)

    grocery.push_ingredients(
        {
            "grocery_list_id": list_id,
            "ingredients": [
                {"display_name": "chicken thigh", "quantity": 1, "unit": "lb"},
                {"display_name": "onion", "quantity": 2, "unit": "whole"},
            ],
        },
        household.context,
    )

    categories = {i["display_name"]: i["category"] for i in _items(list_id, household.context)}
    assert categories == {"chicken thigh": "Meat & Seafood", "onion": "Other"}


def test_categorize_uses_household_categories(household) -> None:
    """The categorise operation reports the household's section and its source."""

    result = grocery.categorize({"item_name": "Cheddar"}, household.context)
    assert result.data == {"category": "Dairy & Eggs", "source": "keywords"}

    blank = grocery.categorize({"item_name": ""}, household.context)
    assert blank.error.type is ErrorType.VALIDATION_ERROR
    assert blank.error.field == "item_name"
