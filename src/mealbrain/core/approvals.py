"""
Approval boundary between proposed write tool calls and their execution.

The agent loop never runs a write tool.  It hands the client one :class:`PendingAction` per
proposed call; the client shows the preview and sends the action back when the user approves.
Nothing is stored server side: the tool name and input the client echoes back are looked up and
validated again here, exactly as on the normal tool path, and run with the caller's own context.
"""

import logging
from typing import (
    Any,
    Dict,
    List,
    Sequence,
)

from mealbrain.common import new_id
from mealbrain.core.schema import (
    ApprovalOutcome,
    ErrorType,
    PendingAction,
    ToolCall,
    ToolContext,
    ToolError,
    ToolResult,
)
from mealbrain.core.tool_executor import (
    ToolExecutionError,
    execute_tool,
)
from mealbrain.tools import (
    ToolDefinition,
    get_tool,
)

logger = logging.getLogger(__name__)

REJECTION_MESSAGE = "Okay, I won't do that."


class ApprovalError(ValueError):
    """The approval request names no tool that may be approved."""


def build_approval_actions(write_calls: Sequence[ToolCall]) -> List[PendingAction]:
    """One pending action, with a fresh id and a readable preview, per proposed write call."""
    actions = []
    for call in write_calls:
        tool = get_tool(call.name)
        preview = tool.describe(call.input) if tool is not None else f"Run {call.name}"
        actions.append(
            PendingAction(id=new_id(), tool_name=call.name, tool_input=call.input, preview=preview)
        )
    return actions


def _approvable(tool_name: str) -> ToolDefinition:
    tool = get_tool(tool_name)
    if tool is None:
        raise ApprovalError(f"Unknown tool: {tool_name}")
    if not tool.mutates:
        raise ApprovalError(f"Tool '{tool_name}' does not require approval")
    return tool


def _confirmation(tool: ToolDefinition, tool_input: Dict[str, Any], data: Any) -> str:
    if tool.confirmation is None:
        return "Done."
    try:
        return tool.confirmation(tool_input, data)
    except Exception:  # pylint: disable=broad-except
        logger.debug("Confirmation for '%s' failed", tool.name, exc_info=True)
        return "Done."


def execute_approval(
    tool_name: str,
    tool_input: Dict[str, Any] | None,
    context: ToolContext,
    approval_id: str | None = None,
) -> ApprovalOutcome:
    """
    Run one approved write call.

    Raises
    ------
    ApprovalError
        If *tool_name* is unknown or names a read-only tool.
    """
    tool = _approvable(tool_name)
    tool_input = tool_input or {}

    try:
        result = execute_tool(tool_name, tool_input, context)
    except ToolExecutionError as exc:
        result = ToolResult.fail(ErrorType.EXECUTION_ERROR, str(exc))

    if not result.success:
        logger.info("Approved %s failed: %s", tool_name, result.error)
        return ApprovalOutcome(
            approval_id=approval_id,
            success=False,
            message=result.error.message if result.error else "Failed to execute action",
            error=result.error,
        )

    logger.info("Approved %s executed for household %s", tool_name, context.household_id)
    return ApprovalOutcome(
        approval_id=approval_id,
        success=True,
        message=_confirmation(tool, tool_input, result.data),
        data=result.data,
    )


def reject(approval_id: str | None = None) -> ApprovalOutcome:
    """A declined action has no effect."""
    return ApprovalOutcome(approval_id=approval_id, success=True, message=REJECTION_MESSAGE)


def execute_batch(actions: Sequence[PendingAction], context: ToolContext) -> List[ApprovalOutcome]:
    """
    Run approved actions one after another, in order.

    There is no atomicity across actions: an action that fails does not undo earlier ones or stop
    later ones.  Each action gets its own outcome.
    """
    outcomes = []
    for action in actions:
        try:
            outcome = execute_approval(action.tool_name, action.tool_input, context, action.id)
        except ApprovalError as exc:
            outcome = ApprovalOutcome(
                approval_id=action.id,
                success=False,
                message=str(exc),
                error=ToolError(
                    type=ErrorType.VALIDATION_ERROR, message=str(exc), field="tool_name"
                ),
            )
        outcomes.append(outcome)
    return outcomes
