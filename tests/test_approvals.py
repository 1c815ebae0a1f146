"""Tests for executing and rejecting approved write actions."""

import pytest

from mealbrain.core.approvals import (
    REJECTION_MESSAGE,
    ApprovalError,
    build_approval_actions,
    execute_approval,
    execute_batch,
    reject,
)
from mealbrain.core.schema import (
    ErrorType,
    PendingAction,
    ToolCall,
)
from mealbrain.tools import recipe

from helpers import CHICKEN_CURRY


def _recipes(context):
    return recipe.list_recipes({}, context).data["recipes"]


def test_build_actions_have_unique_ids_and_previews() -> None:
    """Every proposed write gets its own id and a preview."""

    calls = [
        ToolCall(id="a", name="grocery_create_list", input={"name": "Weekend"}),
        ToolCall(id="b", name="grocery_create_list", input={"name": "Weekend"}),
    ]
    first, second = build_approval_actions(calls)
    assert first.id != second.id
    assert first.tool_input == {"name": "Weekend"}
    assert "Weekend" in first.preview


def test_execute_approval_creates_recipe(household) -> None:
    """An approved recipe is created and confirmed by title."""

    outcome = execute_approval("recipe_create", CHICKEN_CURRY, household.context, "approval-1")

    assert outcome.success
    assert outcome.approval_id == "approval-1"
    assert outcome.message == 'Created "Chicken Curry"! You can find it in your recipes.'
    assert outcome.data["recipe_id"]

    [created] = _recipes(household.context)
    assert created["id"] == outcome.data["recipe_id"]
    detail = recipe.get_recipe({"recipe_id": created["id"]}, household.context).data
    assert detail["source"] == "AI sous chef"
    assert detail["rating"] is None
    assert len(detail["recipe_ingredients"]) == 3


def test_approving_twice_writes_twice(household) -> None:
    """Approvals are not deduplicated."""

    for _ in range(2):
        assert execute_approval("recipe_create", CHICKEN_CURRY, household.context).success
    assert len(_recipes(household.context)) == 2


def test_input_is_validated_again(household) -> None:
    """Approved input goes through validation again."""

    outcome = execute_approval(
        "recipe_create", {**CHICKEN_CURRY, "title": "   "}, household.context
    )
    assert not outcome.success
    assert outcome.error.type is ErrorType.VALIDATION_ERROR
    assert outcome.error.field == "title"
    assert _recipes(household.context) == []


def test_domain_failures_are_reported(household, other_household, make_recipe) -> None:
    """A failing write reports its error and changes nothing."""

    recipe_id = make_recipe(other_household.context)
    outcome = execute_approval("recipe_delete", {"recipe_id": recipe_id}, household.context)
    assert not outcome.success
    assert outcome.error.type in (ErrorType.NOT_FOUND, ErrorType.PERMISSION_DENIED)
    assert len(_recipes(other_household.context)) == 1


@pytest.mark.parametrize("tool_name", ["no_such_tool", "recipe_list", "date_parse"])
def test_only_write_tools_can_be_approved(household, tool_name) -> None:
    """Unknown and read-only tools cannot be approved."""

    with pytest.raises(ApprovalError):
        execute_approval(tool_name, {}, household.context)


def test_reject_has_no_effect(household) -> None:
    """Rejecting writes nothing."""

    outcome = reject("approval-9")
    assert outcome.success
    assert outcome.approval_id == "approval-9"
    assert outcome.message == REJECTION_MESSAGE
    assert _recipes(household.context) == []


def _action(action_id, tool_name, tool_input):
    return PendingAction(id=action_id, tool_name=tool_name, tool_input=tool_input, preview="")


def test_batch_runs_in_order_without_rollback(household) -> None:
    """A failed action in a batch neither stops nor undoes the others."""

    actions = [
        _action("1", "grocery_create_list", {"name": "Weekend"}),
        _action("2", "grocery_create_list", {"name": "Weekend"}),
        _action("3", "recipe_list", {}),
        _action("4", "recipe_create", CHICKEN_CURRY),
    ]

    outcomes = execute_batch(actions, household.context)

    assert [o.approval_id for o in outcomes] == ["1", "2", "3", "4"]
    assert [o.success for o in outcomes] == [True, False, False, True]
    assert "already exists" in outcomes[1].message
    assert outcomes[2].error.type is ErrorType.VALIDATION_ERROR
    assert outcomes[2].error.field == "tool_name"
    assert len(_recipes(household.context)) == 1


def test_planned_meal_confirmation_names_the_recipe(household, make_recipe) -> None:
    """Confirming a planned meal names the recipe, or the custom title, and the course."""

    recipe_id = make_recipe()
    slot = {"date": "2026-01-12", "meal_type": "dinner"}

    outcome = execute_approval(
        "planner_add_meal", {"recipe_id": recipe_id, **slot}, household.context
    )
    assert outcome.success
    assert outcome.message == "Added Chicken Curry to Dinner on 2026-01-12!"

    custom = execute_approval(
        "planner_add_meal", {"custom_title": "Leftovers", **slot}, household.context
    )
    assert custom.message == "Added Leftovers to Dinner on 2026-01-12!"
