"""
Tool registry for MealBrain.

This module provides a decorator to register tools and a registry to look them up by name.  Each
tool is a handler ``(input, context) -> ToolResult`` together with the pydantic model its input is
validated against, a description for the language model and a ``mutates`` flag.

The ``mutates`` flag is the authoritative read/write classification: the agent loop runs read
tools on its own and stops for user approval before any write tool.  It lives on the definition,
next to the schema the model sees, so the two cannot drift apart.
"""

import functools
import logging
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Type,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
)
from sqlalchemy.exc import SQLAlchemyError

from mealbrain.core.schema import (
    ErrorType,
    ToolContext,
    ToolResult,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any, ToolContext], ToolResult]
PreviewBuilder = Callable[[Mapping[str, Any]], str]
ConfirmationBuilder = Callable[[Mapping[str, Any], Any], str]


class ToolDefinition(BaseModel):
    """Everything the registry knows about one tool."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Handler
    mutates: bool = False
    preview: Optional[PreviewBuilder] = None
    confirmation: Optional[ConfirmationBuilder] = None

    def declaration(self) -> Dict[str, Any]:
        """The ``{name, description, input_schema}`` entry sent to the language model."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": input_schema_for(self.input_model),
        }

    def describe(self, tool_input: Mapping[str, Any]) -> str:
        """Human-readable preview of a proposed call."""
        if self.preview is None:
            return f"Run {self.name}"
        try:
            return self.preview(tool_input)
        except Exception:  # pylint: disable=broad-except
            # Previews see raw model input, which may not match the schema
            logger.debug("Preview for '%s' failed on %s", self.name, tool_input, exc_info=True)
            return f"Run {self.name}"


TOOL_REGISTRY: Dict[str, ToolDefinition] = {}
"""Global registry of tool definitions, keyed by tool name."""


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def validation_failure(exc: ValidationError) -> ToolResult:
    """Convert the first pydantic error into a ``VALIDATION_ERROR`` result with a field path."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = str(first.get("msg", "Invalid input")).removeprefix("Value error, ")
    return ToolResult.fail(ErrorType.VALIDATION_ERROR, message, field=field)


def validate_input(model: Type[BaseModel]) -> Callable[[Callable], Handler]:
    """
    Decorate a domain function so it accepts raw mappings as well as *model* instances.

    Raw input is validated against *model* before the function runs; validation problems and
    database failures come back as typed ``ToolResult`` errors instead of exceptions.
    """

    def decorator(fn: Callable) -> Handler:
        @functools.wraps(fn)
        def wrapper(params: Any, context: ToolContext) -> ToolResult:
            if not isinstance(params, model):
                try:
                    params = model.model_validate(params if params is not None else {})
                except ValidationError as exc:
                    return validation_failure(exc)
            try:
                return fn(params, context)
            except SQLAlchemyError as exc:
                logger.exception("Database error in '%s'", fn.__name__)
                return ToolResult.fail(ErrorType.DATABASE_ERROR, str(getattr(exc, "orig", exc)))

        wrapper.input_model = model  # type: ignore[attr-defined]
        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------
def register_tool(
    name: str,
    *,
    description: str,
    input_model: Type[BaseModel],
    mutates: bool = False,
    preview: Optional[PreviewBuilder] = None,
    confirmation: Optional[ConfirmationBuilder] = None,
) -> Callable[[Callable], Handler]:
    """
    Register a tool handler under *name*.

    Used as a decorator::

        @register_tool("recipe_get", description="...", input_model=GetRecipeInput)
        def get_recipe(params: GetRecipeInput, context: ToolContext) -> ToolResult:
            ...

    The decorated function is wrapped with :func:`validate_input`, so it can be called directly
    with a raw mapping (the REST routes do this) and behaves exactly as it does for the agent.

    Parameters
    ----------
    name: str
        Unique tool name.
    description: str
        What the tool does, phrased for the language model.
    input_model: Type[BaseModel]
        Validation model; its JSON schema becomes the tool's ``input_schema``.
    mutates: bool
        True for write tools, which are only executed after explicit user approval.
    preview: Callable
        Builds the human-readable approval preview from raw input.  Required for write tools.
    confirmation: Callable
        Builds the message shown after an approved call succeeds.

    Raises
    ------
    ValueError
        If *name* is already registered, or a write tool has no preview.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name}' is already registered.")
    if mutates and preview is None:
        raise ValueError(f"Write tool '{name}' needs a preview builder.")
    logger.debug("Registering tool '%s' (mutates=%s)", name, mutates)

    def wrapper(fn: Callable) -> Handler:
        handler = validate_input(input_model)(fn)
        TOOL_REGISTRY[name] = ToolDefinition(
            name=name,
            description=description,
            input_model=input_model,
            handler=handler,
            mutates=mutates,
            preview=preview,
            confirmation=confirmation,
        )
        return handler

    return wrapper


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def get_tool(name: str) -> ToolDefinition | None:
    """Return the definition registered under *name*, if any."""
    return TOOL_REGISTRY.get(name)


def is_write_tool(name: str) -> bool:
    """True if *name* is a registered tool with ``mutates=True``."""
    tool = TOOL_REGISTRY.get(name)
    return tool is not None and tool.mutates


def read_tool_names() -> List[str]:
    """Names of all auto-executable tools."""
    return [name for name, tool in TOOL_REGISTRY.items() if not tool.mutates]


def write_tool_names() -> List[str]:
    """Names of all approval-gated tools."""
    return [name for name, tool in TOOL_REGISTRY.items() if tool.mutates]


def get_tool_declarations() -> List[Dict[str, Any]]:
    """Declarations for every registered tool, in registration order."""
    return [tool.declaration() for tool in TOOL_REGISTRY.values()]


def input_schema_for(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    JSON schema of *model* in the subset function-calling APIs accept.

    ``$ref`` pointers are inlined and pydantic's generated ``title`` annotations dropped; property
    names are left alone even when a property is itself called ``title``.
    """
    schema = model.model_json_schema()
    defs = schema.pop("$defs", {})

    def resolve(node: Any, in_properties: bool = False) -> Any:
        if isinstance(node, list):
            return [resolve(item) for item in node]
        if not isinstance(node, dict):
            return node
        if in_properties:
            return {key: resolve(value) for key, value in node.items()}
        if "$ref" in node:
            target = resolve(defs[node["$ref"].rsplit("/", 1)[-1]])
            extra = {k: resolve(v) for k, v in node.items() if k not in ("$ref", "title")}
            return {**target, **extra}
        return {
            key: resolve(value, in_properties=(key == "properties"))
            for key, value in node.items()
            if key != "title"
        }

    return resolve(schema)


# Importing the tool modules populates the registry.
from mealbrain.tools import (  # noqa: E402  pylint: disable=wrong-import-position
    dates,
    grocery,
    planner,
    preferences,
    recipe,
)

__all__ = [
    "TOOL_REGISTRY",
    "ToolDefinition",
    "dates",
    "get_tool",
    "get_tool_declarations",
    "grocery",
    "input_schema_for",
    "is_write_tool",
    "planner",
    "preferences",
    "read_tool_names",
    "recipe",
    "register_tool",
    "validate_input",
    "validation_failure",
    "write_tool_names",
]
