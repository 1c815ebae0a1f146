"""Tests for the meal planner tools."""

from mealbrain.core.schema import ErrorType
from mealbrain.tools import (
    planner,
    recipe,
)

MISSING_ID = "00000000-0000-4000-8000-000000000000"


def _add(context, **fields):
    result = planner.add_meal(fields, context)
    assert result.success, result.error
    return result.data["planner_meal_id"]


def test_add_and_list_meals(household, make_recipe) -> None:
    """Recipe and custom meals are listed by date with recipe details."""

    recipe_id = make_recipe(rating=5)
    _add(household.context, recipe_id=recipe_id, date="2026-01-16", meal_type="dinner")
    _add(
        household.context,
        custom_title="Leftovers",
        custom_item_type="leftovers",
        date="2026-01-15",
        meal_type="lunch",
    )

    result = planner.list_meals(
        {"start_date": "2026-01-15", "end_date": "2026-01-16"}, household.context
    )
    assert result.success
    meals = result.data["meals"]
    assert result.data["total"] == 2
    assert [m["date"] for m in meals] == ["2026-01-15", "2026-01-16"]
    assert meals[0]["custom_title"] == "Leftovers"
    assert meals[0]["recipe"] is None
    assert meals[1]["recipe"] == {
        "title": "Chicken Curry",
        "tags": ["curry", "weeknight"],
        "rating": 5,
    }


def test_list_range_is_inclusive_and_ordered(household) -> None:
    """The range includes both ends and is ordered by date, then meal type."""

    for date, meal_type in [
        ("2026-01-20", "lunch"),
        ("2026-01-19", "lunch"),
        ("2026-01-20", "breakfast"),
        ("2026-01-22", "dinner"),
    ]:
        _add(household.context, custom_title="Toast", date=date, meal_type=meal_type)

    meals = planner.list_meals(
        {"start_date": "2026-01-19", "end_date": "2026-01-20"}, household.context
    ).data["meals"]
    assert [(m["date"], m["meal_type"]) for m in meals] == [
        ("2026-01-19", "lunch"),
        ("2026-01-20", "breakfast"),
        ("2026-01-20", "lunch"),
    ]


def test_duplicate_slots_are_allowed(household, make_recipe) -> None:
    """Several meals may share a date and meal type."""

    recipe_id = make_recipe()
    first = _add(household.context, recipe_id=recipe_id, date="2026-01-16", meal_type="dinner")
    second = _add(household.context, recipe_id=recipe_id, date="2026-01-16", meal_type="dinner")
    assert first != second


def test_add_requires_exactly_one_of_recipe_or_custom_title(household, make_recipe) -> None:
    """A meal needs either a recipe or a custom title, not both."""

    recipe_id = make_recipe()
    for fields in (
        {"date": "2026-01-16", "meal_type": "dinner"},
        {
            "recipe_id": recipe_id,
            "custom_title": "Pizza",
            "date": "2026-01-16",
            "meal_type": "dinner",
        },
    ):
        result = planner.add_meal(fields, household.context)
        assert result.error.type is ErrorType.VALIDATION_ERROR
        assert "Either recipe_id or custom_title" in result.error.message


def test_add_rejects_bad_date(household) -> None:
    """Dates must be YYYY-MM-DD."""

    result = planner.add_meal(
        {"custom_title": "Pizza", "date": "16/01/2026", "meal_type": "dinner"}, household.context
    )
    assert result.error.type is ErrorType.VALIDATION_ERROR
    assert result.error.field == "date"
    assert result.error.message == "Invalid date format - must be YYYY-MM-DD"


def test_add_with_foreign_recipe_is_not_found(household, other_household, make_recipe) -> None:
    """Another household's recipe cannot be planned."""

    foreign_recipe = make_recipe(other_household.context)
    result = planner.add_meal(
        {"recipe_id": foreign_recipe, "date": "2026-01-16", "meal_type": "dinner"},
        household.context,
    )
    assert result.error.type is ErrorType.NOT_FOUND
    assert result.error.message.startswith("Recipe not found")


def test_update_meal(household) -> None:
    """Updating a meal leaves unsent fields alone."""

    meal_id = _add(household.context, custom_title="Pizza", date="2026-01-16", meal_type="dinner")
    result = planner.update_meal(
        {"planner_meal_id": meal_id, "date": "2026-01-17", "notes": "Friday treat"},
        household.context,
    )
    assert result.success

    meals = planner.list_meals(
        {"start_date": "2026-01-17", "end_date": "2026-01-17"}, household.context
    ).data["meals"]
    assert meals[0]["notes"] == "Friday treat"
    assert meals[0]["meal_type"] == "dinner"


def test_update_and_remove_enforce_household(household, other_household) -> None:
    """Only the owning household can change or remove a meal."""

    meal_id = _add(household.context, custom_title="Pizza", date="2026-01-16", meal_type="dinner")

    update = planner.update_meal(
        {"planner_meal_id": meal_id, "notes": "x"}, other_household.context
    )
    assert update.error.type is ErrorType.AUTHORIZATION_ERROR

    remove = planner.remove_meal({"planner_meal_id": meal_id}, other_household.context)
    assert remove.error.type is ErrorType.AUTHORIZATION_ERROR

    missing = planner.remove_meal({"planner_meal_id": MISSING_ID}, household.context)
    assert missing.error.type is ErrorType.NOT_FOUND
    assert missing.error.message == "Meal not found"

    assert planner.remove_meal({"planner_meal_id": meal_id}, household.context).success
    assert planner.list_meals(
        {"start_date": "2026-01-16", "end_date": "2026-01-16"}, household.context
    ).data["meals"] == []


def test_deleting_a_recipe_keeps_the_planned_slot(household, make_recipe) -> None:
    """A planned meal outlives its deleted recipe."""

    recipe_id = make_recipe()
    _add(household.context, recipe_id=recipe_id, date="2026-01-16", meal_type="dinner")
    assert recipe.delete_recipe({"recipe_id": recipe_id}, household.context).success

    meals = planner.list_meals(
        {"start_date": "2026-01-16", "end_date": "2026-01-16"}, household.context
    ).data["meals"]
    assert len(meals) == 1
    assert meals[0]["recipe_id"] is None


def test_add_meal_reports_what_was_planned(household, make_recipe) -> None:
    """The result carries the recipe's title, or the custom title."""

    recipe_id = make_recipe()
    planned = planner.add_meal(
        {"recipe_id": recipe_id, "date": "2026-01-12", "meal_type": "dinner"}, household.context
    )
    assert planned.data["title"] == "Chicken Curry"
    assert planned.data["planner_meal_id"]

    custom = planner.add_meal(
        {"custom_title": "Leftovers", "date": "2026-01-12", "meal_type": "lunch"},
        household.context,
    )
    assert custom.data["title"] == "Leftovers"
