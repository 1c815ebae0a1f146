"""
Planner interface for MealBrain.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
approvals) stays model-agnostic and speaks one message shape: the Anthropic Messages format, with
``text``, ``tool_use`` and ``tool_result`` content blocks.

We support two back-ends out of the box:

1. **Anthropic** via the Messages API, which uses that shape natively.
2. **OpenAI** via Chat Completions; history and replies are translated at this boundary.

Additional providers can be added by subclassing :class:`BasePlanner` and registering via
:func:`register_planner`.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Sequence,
    Type,
)

from mealbrain.config import settings
from mealbrain.core.schema import (
    ModelResponse,
    ToolCall,
)

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
ToolDeclaration = Dict[str, Any]


class PlannerError(RuntimeError):
    """Raised when the language model cannot be reached or returns something unusable."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PLANNER_REGISTRY: dict[str, Type["BasePlanner"]] = {}


def register_planner(name: str) -> Callable:
    """Decorator to register a planner class under *name*."""

    def wrapper(cls: Type["BasePlanner"]) -> Type["BasePlanner"]:
        _PLANNER_REGISTRY[name] = cls
        return cls

    return wrapper


def load_planner(name: str | None = None) -> "BasePlanner":
    """
    Factory that returns an instantiated planner.

    Fallback order:
    1. *name* arg
    2. ``settings.PLANNER`` env option
    """

    target = name or settings.PLANNER
    cls = _PLANNER_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Planner '{target}' is not registered.")
    return cls()


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BasePlanner(ABC):
    """Abstract planner: conversation history + tool declarations -> one model reply."""

    SYSTEM_PROMPT: ClassVar[
        str
    ] = """\
You are an AI sous chef for MealBrain, a meal planning and recipe management app.

Your role:
- Help users plan meals, find recipes, and manage grocery lists
- Be helpful, friendly, and concise (this is a mobile app)
- Use the available tools to read data when needed
- Explain your reasoning clearly but briefly
- Never hallucinate data - always use tools to check facts

Important rules:
- Always use tools to check recipes, meals, and grocery lists
- Use date_parse to turn relative dates into YYYY-MM-DD before planning
- Tools that change data (creating recipes, planning meals, editing grocery lists) are shown to
  the user for approval before they run; propose them, then briefly say what you proposed
- When suggesting meal plans, be specific about which recipes to use
- Keep responses concise and mobile-friendly (2-3 sentences max unless asked for details)

The user's household context is important - recipes and meals are specific to their household.
"""

    @abstractmethod
    def respond(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        system: str | None = None,
    ) -> ModelResponse:
        """Send the full history and return the model's next reply."""


def _tool_calls_from_content(content: List[Dict[str, Any]]) -> List[ToolCall]:
    return [
        ToolCall(id=block["id"], name=block["name"], input=block.get("input") or {})
        for block in content
        if block.get("type") == "tool_use"
    ]


def _text_from_content(content: List[Dict[str, Any]]) -> str:
    return "".join(block.get("text", "") for block in content if block.get("type") == "text")


# ---------------------------------------------------------------------------
# Concrete planners
# ---------------------------------------------------------------------------
@register_planner("anthropic")
class AnthropicPlanner(BasePlanner):
    """Anthropic Claude-based planner with native tool use."""

    def respond(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        system: str | None = None,
    ) -> ModelResponse:
        try:
            import anthropic  # pylint: disable=import-outside-toplevel

            client = anthropic.Anthropic(api_key=settings.ANTHROPIC_API_KEY)
            response = client.messages.create(
                model=settings.ANTHROPIC_MODEL,
                max_tokens=settings.MAX_TOKENS,
                system=system or self.SYSTEM_PROMPT,
                tools=list(tools),
                messages=list(messages),
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Anthropic planner error: %s", exc)
            raise PlannerError(f"Error calling Anthropic: {exc}") from exc

        content = [block.model_dump(exclude_none=True) for block in response.content]
        logger.debug("Anthropic planner response (%s): %s", response.stop_reason, content)

        return ModelResponse(
            stop_reason=response.stop_reason,
            text=_text_from_content(content),
            tool_calls=_tool_calls_from_content(content),
            content=content,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )


@register_planner("openai")
class OpenAIPlanner(BasePlanner):
    """OpenAI-based planner using function calling."""

    @staticmethod
    def _to_openai_messages(messages: Sequence[Message], system: str) -> List[Dict[str, Any]]:
        converted: List[Dict[str, Any]] = [{"role": "system", "content": system}]
        for message in messages:
            role, content = message["role"], message["content"]
            if isinstance(content, str):
                converted.append({"role": role, "content": content})
                continue

            if role == "assistant":
                entry: Dict[str, Any] = {
                    "role": "assistant",
                    "content": _text_from_content(content),
                }
                calls = [
                    {
                        "id": block["id"],
                        "type": "function",
                        "function": {
                            "name": block["name"],
                            "arguments": json.dumps(block.get("input") or {}),
                        },
                    }
                    for block in content
                    if block.get("type") == "tool_use"
                ]
                if calls:
                    entry["tool_calls"] = calls
                converted.append(entry)
                continue

            for block in content:
                if block.get("type") == "tool_result":
                    converted.append(
                        {
                            "role": "tool",
                            "tool_call_id": block["tool_use_id"],
                            "content": block.get("content", ""),
                        }
                    )
                elif block.get("type") == "text":
                    converted.append({"role": "user", "content": block["text"]})
        return converted

    @staticmethod
    def _to_openai_tools(tools: Sequence[ToolDeclaration]) -> List[Dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["input_schema"],
                },
            }
            for tool in tools
        ]

    def respond(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        system: str | None = None,
    ) -> ModelResponse:
        try:
            import openai  # pylint: disable=import-outside-toplevel

            client = openai.OpenAI(api_key=settings.OPENAI_API_KEY)
            resp = client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                max_tokens=settings.MAX_TOKENS,
                messages=self._to_openai_messages(messages, system or self.SYSTEM_PROMPT),
                tools=self._to_openai_tools(tools),
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("OpenAI planner error: %s", exc)
            raise PlannerError(f"Error calling OpenAI: {exc}") from exc

        if not resp.choices:
            raise PlannerError("Error: Empty response from OpenAI")
        choice = resp.choices[0]

        content: List[Dict[str, Any]] = []
        if choice.message.content:
            content.append({"type": "text", "text": choice.message.content})
        for call in choice.message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning("Unparseable arguments for '%s'", call.function.name)
                arguments = {}
            content.append(
                {"type": "tool_use", "id": call.id, "name": call.function.name, "input": arguments}
            )

        logger.debug("OpenAI planner response (%s): %s", choice.finish_reason, content)

        usage = {}
        if resp.usage is not None:
            usage = {
                "input_tokens": resp.usage.prompt_tokens,
                "output_tokens": resp.usage.completion_tokens,
            }
        return ModelResponse(
            stop_reason="tool_use" if choice.finish_reason == "tool_calls" else "end_turn",
            text=_text_from_content(content),
            tool_calls=_tool_calls_from_content(content),
            content=content,
            usage=usage,
        )
