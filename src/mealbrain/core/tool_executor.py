"""Dispatches tool calls registered in ``mealbrain.tools`` and wraps errors."""

import logging
from typing import (
    Any,
    Dict,
)

from mealbrain.core.schema import (
    ToolContext,
    ToolResult,
)
from mealbrain.tools import TOOL_REGISTRY

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


def execute_tool(
    name: str, tool_input: Dict[str, Any] | None, context: ToolContext
) -> ToolResult:
    """
    Look up *name* in the registry and invoke it with *tool_input*.

    Parameters
    ----------
    name:
        The registered tool name.
    tool_input:
        Raw input object as produced by the model.  If *None*, an empty dict is assumed.  The
        tool validates it against its own input model.
    context:
        Identity of the authenticated caller; tools scope every query by its household.

    Returns
    -------
    ToolResult
        The tool's result.  Validation and domain failures are ordinary (unsuccessful) results.

    Raises
    ------
    ToolExecutionError
        If the tool is missing or its invocation raises an exception.
    """

    if tool_input is None:
        tool_input = {}

    tool = TOOL_REGISTRY.get(name)
    if tool is None:
        raise ToolExecutionError(f"Tool '{name}' is not registered.")

    try:
        logger.debug("Executing tool '%s' with input=%s", name, tool_input)
        return tool.handler(tool_input, context)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", name)
        raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc
