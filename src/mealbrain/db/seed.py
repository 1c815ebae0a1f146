"""Demo data: one household with a user, a session token, a few recipes and a grocery list."""

import logging
import secrets
from datetime import timedelta
from typing import (
    Any,
    Dict,
    List,
)

from sqlalchemy import select

from mealbrain.common import utcnow
from mealbrain.config import settings
from mealbrain.core.schema import ToolContext
from mealbrain.db.models import (
    AuthSession,
    Household,
    User,
)
from mealbrain.db.session import (
    init_db,
    session_scope,
)
from mealbrain.tools import (
    grocery,
    recipe,
)

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@mealbrain.local"

DEMO_RECIPES: List[Dict[str, Any]] = [
    {
        "title": "Chicken Curry",
        "meal_type": "dinner",
        "rating": 5,
        "tags": ["curry", "weeknight"],
        "serving_size": 4,
        "prep_time": 15,
        "cook_time": 30,
        "instructions": "Brown the chicken, add onion and spices, simmer in coconut milk.",
        "ingredients": [
            {"name": "chicken thigh", "quantity": 1.5, "unit": "lb", "prep_state": "diced"},
            {"name": "onion", "quantity": 1, "unit": "whole", "prep_state": "chopped"},
            {"name": "garlic", "quantity": 3, "unit": "clove", "prep_state": "minced"},
            {"name": "coconut milk", "quantity": 1, "unit": "can"},
            {"name": "curry powder", "quantity": 2, "unit": "tbsp"},
        ],
    },
    {
        "title": "Overnight Oats",
        "meal_type": "breakfast",
        "rating": 4,
        "tags": ["make-ahead", "vegetarian"],
        "serving_size": 1,
        "ingredients": [
            {"name": "rolled oats", "quantity": 0.5, "unit": "cup"},
            {"name": "milk", "quantity": 0.5, "unit": "cup"},
            {"name": "maple syrup", "quantity": 1, "unit": "tsp", "optional": True},
        ],
    },
    {
        "title": "Tomato Pasta",
        "meal_type": "dinner",
        "rating": 4,
        "tags": ["pasta", "vegetarian", "quick"],
        "serving_size": 2,
        "ingredients": [
            {"name": "spaghetti", "quantity": 200, "unit": "g"},
            {"name": "crushed tomatoes", "quantity": 1, "unit": "can"},
            {"name": "garlic", "quantity": 2, "unit": "clove", "prep_state": "sliced"},
            {"name": "olive oil", "quantity": 2, "unit": "tbsp"},
        ],
    },
]


def seed_demo_data() -> str:
    """
    Create the demo household (once) and return a fresh bearer token for its user.

    Running it again reuses the existing household and only issues a new token.
    """
    init_db()

    with session_scope() as session:
        user = session.scalars(select(User).where(User.email == DEMO_EMAIL)).first()
        created = user is None
        if user is None:
            household = Household(name="Demo Household")
            session.add(household)
            session.flush()
            user = User(email=DEMO_EMAIL, display_name="Demo Cook", household_id=household.id)
            session.add(user)
            session.flush()

        token = secrets.token_urlsafe(32)
        session.add(
            AuthSession(
                token=token,
                user_id=user.id,
                expires_at=utcnow() + timedelta(hours=settings.SESSION_TTL_HOURS),
            )
        )
        context = ToolContext(user_id=user.id, household_id=user.household_id)

    if created:
        for data in DEMO_RECIPES:
            result = recipe.create_recipe(data, context)
            if not result.success:
                raise RuntimeError(f"Seeding recipe '{data['title']}' failed: {result.error}")
        result = grocery.create_list({"name": "Weekly Shop"}, context)
        if not result.success:
            raise RuntimeError(f"Seeding grocery list failed: {result.error}")
        logger.info("Seeded demo household %s", context.household_id)

    return token
