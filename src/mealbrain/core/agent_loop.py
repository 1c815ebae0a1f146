"""
Main orchestration loop for MealBrain.

One chat request runs one bounded loop:

* the planner sees the whole history and the tool declarations;
* a reply without tool calls ends the loop with its text;
* a reply proposing any write tool ends the loop with approval actions for the client (read calls
  proposed in the same reply are dropped);
* a reply with only read calls runs them concurrently, appends the results to the history and asks
  the planner again, up to ``settings.MAX_TOOL_ITERATIONS`` rounds.
"""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    Dict,
    List,
    Sequence,
    Tuple,
)

from mealbrain.config import settings
from mealbrain.core.approvals import build_approval_actions
from mealbrain.core.planner import BasePlanner
from mealbrain.core.schema import (
    AgentOutcome,
    AgentState,
    ChatMessage,
    ErrorType,
    ModelResponse,
    PendingAction,
    ToolCall,
    ToolContext,
    ToolExecution,
    ToolResult,
)
from mealbrain.core.tool_executor import (
    ToolExecutionError,
    execute_tool,
)
from mealbrain.tools import (
    get_tool_declarations,
    is_write_tool,
)

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I apologize, but I'm having trouble processing your request. "
    "Could you try rephrasing your question more simply?"
)
NO_RESPONSE_MESSAGE = "No response generated"
APPROVAL_MESSAGE = "I'd like to make the following changes. Please review them."


def partition_calls(calls: Sequence[ToolCall]) -> Tuple[List[ToolCall], List[ToolCall]]:
    """
    Split *calls* into ``(read_calls, write_calls)`` by the registry's ``mutates`` flag.

    Unknown names land with the reads: they fail at execution and the model is told so.
    """
    reads: List[ToolCall] = []
    writes: List[ToolCall] = []
    for call in calls:
        (writes if is_write_tool(call.name) else reads).append(call)
    return reads, writes


def _assistant_content(response: ModelResponse) -> List[Dict[str, Any]]:
    if response.content:
        return response.content
    blocks: List[Dict[str, Any]] = []
    if response.text:
        blocks.append({"type": "text", "text": response.text})
    blocks.extend(
        {"type": "tool_use", "id": call.id, "name": call.name, "input": call.input}
        for call in response.tool_calls
    )
    return blocks


class AgentLoop:
    """Bounded model/tool loop for one chat request."""

    def __init__(
        self,
        planner: BasePlanner,
        context: ToolContext,
        max_iterations: int | None = None,
        system: str | None = None,
    ) -> None:
        self.planner = planner
        self.context = context
        self.max_iterations = (
            max_iterations if max_iterations is not None else settings.MAX_TOOL_ITERATIONS
        )
        self.system = system or planner.SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Tool execution
    # ------------------------------------------------------------------
    def _run_read_tool(self, call: ToolCall) -> ToolExecution:
        try:
            result = execute_tool(call.name, call.input, self.context)
        except ToolExecutionError as exc:
            logger.warning("Tool failure: %s", exc)
            result = ToolResult.fail(ErrorType.EXECUTION_ERROR, str(exc))
        return ToolExecution(tool_call_id=call.id, tool_name=call.name, result=result)

    async def _execute_reads(self, calls: Sequence[ToolCall]) -> List[ToolExecution]:
        """Run read calls concurrently, each in a worker thread with its own DB session."""
        return list(
            await asyncio.gather(*(asyncio.to_thread(self._run_read_tool, call) for call in calls))
        )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    async def run(self, messages: Sequence[ChatMessage | Dict[str, Any]]) -> AgentOutcome:
        """
        Drive the loop until it reaches a terminal state.

        Raises
        ------
        PlannerError
            If the model call fails.  Planner calls are not retried.
        """
        history: List[Dict[str, Any]] = [
            m.model_dump() if isinstance(m, ChatMessage) else dict(m) for m in messages
        ]
        declarations = get_tool_declarations()

        state = AgentState.AWAITING_MODEL
        response = ModelResponse()
        read_calls: List[ToolCall] = []
        actions: List[PendingAction] = []
        executions: List[ToolExecution] = []
        usage = {"input_tokens": 0, "output_tokens": 0}
        iterations = 0

        while not state.is_terminal:
            if state is AgentState.AWAITING_MODEL:
                response = await asyncio.to_thread(
                    self.planner.respond, history, declarations, self.system
                )
                for key, value in response.usage.items():
                    usage[key] = usage.get(key, 0) + value
                state = (
                    AgentState.MODEL_RESPONDED_TOOLS
                    if response.tool_calls
                    else AgentState.MODEL_RESPONDED_TEXT
                )

            elif state is AgentState.MODEL_RESPONDED_TOOLS:
                read_calls, write_calls = partition_calls(response.tool_calls)
                logger.info(
                    "Planner returned %d tool calls: %s",
                    len(response.tool_calls),
                    [call.name for call in response.tool_calls],
                )
                if write_calls:
                    if read_calls:
                        logger.debug("Dropping %d read calls proposed with writes", len(read_calls))
                    actions = build_approval_actions(write_calls)
                    state = AgentState.AWAITING_APPROVAL
                elif iterations >= self.max_iterations:
                    state = AgentState.ITERATION_LIMIT_EXCEEDED
                else:
                    state = AgentState.EXECUTING_READ_TOOLS

            elif state is AgentState.EXECUTING_READ_TOOLS:
                batch = await self._execute_reads(read_calls)
                executions.extend(batch)
                history.append({"role": "assistant", "content": _assistant_content(response)})
                results = [execution.to_content_block() for execution in batch]
                history.append({"role": "user", "content": results})
                iterations += 1
                state = AgentState.AWAITING_MODEL

        if state is AgentState.AWAITING_APPROVAL:
            message = response.text or APPROVAL_MESSAGE
        elif state is AgentState.ITERATION_LIMIT_EXCEEDED:
            logger.warning("Tool iteration limit (%d) reached", self.max_iterations)
            message = FALLBACK_MESSAGE
        else:
            message = response.text or NO_RESPONSE_MESSAGE

        return AgentOutcome(
            state=state,
            message=message,
            approval_actions=actions,
            usage=usage,
            iterations=iterations,
            executions=executions,
        )


async def run_agent(
    messages: Sequence[ChatMessage | Dict[str, Any]],
    context: ToolContext,
    planner: BasePlanner,
) -> AgentOutcome:
    """Convenience wrapper: run one loop with default limits."""
    return await AgentLoop(planner, context).run(messages)
