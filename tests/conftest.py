"""Shared fixtures: a throwaway SQLite database per test and two separate households."""

from typing import (
    Callable,
    Iterator,
)

import pytest
from fastapi.testclient import TestClient

from mealbrain.api.app import app
from mealbrain.api.deps import get_planner
from mealbrain.core.schema import ToolContext
from mealbrain.db.session import (
    configure_engine,
    get_engine,
    init_db,
)
from mealbrain.tools import recipe

from helpers import (
    CHICKEN_CURRY,
    Member,
    ScriptedPlanner,
    create_member,
)


@pytest.fixture(autouse=True)
def database(tmp_path) -> Iterator[None]:
    """Bind the app to an empty SQLite file for the duration of the test."""
    configure_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db()
    yield
    get_engine().dispose()


@pytest.fixture
def household() -> Member:
    return create_member("Test Household", "cook@example.com")


@pytest.fixture
def other_household() -> Member:
    return create_member("Other Household", "neighbour@example.com")


@pytest.fixture
def make_recipe(household) -> Callable[..., str]:
    """Create a recipe (default: chicken curry) in a household and return its id."""

    def factory(context: ToolContext | None = None, **overrides) -> str:
        result = recipe.create_recipe({**CHICKEN_CURRY, **overrides}, context or household.context)
        assert result.success, result.error
        return result.data["recipe_id"]

    return factory


@pytest.fixture
def planner() -> ScriptedPlanner:
    return ScriptedPlanner()


@pytest.fixture
def client(planner) -> Iterator[TestClient]:
    """API client whose planner is the scripted one."""
    app.dependency_overrides[get_planner] = lambda: planner
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers(household) -> dict[str, str]:
    return household.headers
