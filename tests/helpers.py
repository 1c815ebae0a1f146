"""Test doubles shared across the suite."""

import copy
import itertools
import secrets
from datetime import timedelta
from typing import (
    Any,
    Dict,
    List,
    NamedTuple,
    Sequence,
    Tuple,
)

from mealbrain.common import utcnow
from mealbrain.core.planner import (
    BasePlanner,
    PlannerError,
)
from mealbrain.core.schema import (
    ModelResponse,
    ToolCall,
    ToolContext,
)
from mealbrain.db.models import (
    AuthSession,
    Household,
    User,
)
from mealbrain.db.session import session_scope

_call_ids = itertools.count(1)


class Member(NamedTuple):
    """A signed-in household member."""

    context: ToolContext
    token: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def create_member(
    household_name: str,
    email: str,
    household_id: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> Member:
    """Create a user (and a household unless one is given) with a session token."""
    with session_scope() as session:
        if household_id is None:
            household = Household(name=household_name)
            session.add(household)
            session.flush()
            household_id = household.id
        user = User(email=email, household_id=household_id)
        session.add(user)
        session.flush()
        token = secrets.token_urlsafe(16)
        session.add(AuthSession(token=token, user_id=user.id, expires_at=utcnow() + expires_in))
        return Member(ToolContext(user_id=user.id, household_id=household_id), token)


CHICKEN_CURRY = {
    "title": "Chicken Curry",
    "meal_type": "dinner",
    "tags": ["curry", "weeknight"],
    "ingredients": [
        {"name": "chicken thigh", "quantity": 1.5, "unit": "lb", "prep_state": "diced"},
        {"name": "onion", "quantity": 1, "unit": "whole"},
        {"name": "coconut milk", "quantity": 1, "unit": "can"},
    ],
}


def text_reply(text: str) -> ModelResponse:
    """A model turn that only talks."""
    return ModelResponse(
        stop_reason="end_turn",
        text=text,
        content=[{"type": "text", "text": text}] if text else [],
        usage={"input_tokens": 10, "output_tokens": 5},
    )


def tool_reply(*calls: Tuple[str, Dict[str, Any]], text: str = "") -> ModelResponse:
    """A model turn requesting ``(name, input)`` tool calls."""
    tool_calls = [
        ToolCall(id=f"toolu_{next(_call_ids):04d}", name=name, input=tool_input)
        for name, tool_input in calls
    ]
    content: List[Dict[str, Any]] = [{"type": "text", "text": text}] if text else []
    content += [
        {"type": "tool_use", "id": call.id, "name": call.name, "input": call.input}
        for call in tool_calls
    ]
    return ModelResponse(
        stop_reason="tool_use",
        text=text,
        tool_calls=tool_calls,
        content=content,
        usage={"input_tokens": 10, "output_tokens": 5},
    )


class ScriptedPlanner(BasePlanner):
    """Replays canned model turns and records the history it was shown."""

    def __init__(self, replies: Sequence[ModelResponse] = (), repeat: ModelResponse | None = None):
        self.replies = list(replies)
        self.repeat = repeat
        self.seen: List[List[Dict[str, Any]]] = []

    def respond(self, messages, tools, system=None) -> ModelResponse:
        self.seen.append(copy.deepcopy(list(messages)))
        if self.replies:
            return self.replies.pop(0)
        if self.repeat is not None:
            # fresh ids every round, as a real model would produce
            return tool_reply(*((c.name, c.input) for c in self.repeat.tool_calls))
        raise AssertionError("ScriptedPlanner ran out of replies")

    @property
    def calls(self) -> int:
        return len(self.seen)


class FailingPlanner(BasePlanner):
    """Always fails like an unreachable model API."""

    def respond(self, messages, tools, system=None) -> ModelResponse:
        raise PlannerError("Error calling Anthropic: connection refused")
