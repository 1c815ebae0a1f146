"""
Schema definitions for model <-> agent loop <-> tool messages.

These data models serve as the contract between the language model, the orchestration loop, the
approval boundary and individual tools.  We keep them separate from runtime logic so they can be
imported anywhere without side-effects.
"""

from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# ---------------------------------------------------------------------------
# Tool side
# ---------------------------------------------------------------------------
class ToolContext(BaseModel):
    """Authenticated caller identity.  Always built from the request, never from model input."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    household_id: str


class ErrorType(str, Enum):
    """Discriminator for failed tool results."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DATABASE_ERROR = "DATABASE_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"


class ToolError(BaseModel):
    """Error payload of a failed tool result."""

    type: ErrorType
    message: str
    field: Optional[str] = None


class ToolResult(BaseModel):
    """Discriminated result returned by every domain tool."""

    success: bool
    data: Any = None
    error: Optional[ToolError] = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        """Successful result carrying *data*."""
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls, error_type: ErrorType, message: str, field: Optional[str] = None
    ) -> "ToolResult":
        """Failed result with a typed error."""
        return cls(success=False, error=ToolError(type=error_type, message=message, field=field))


class ToolCall(BaseModel):
    """A call that the model wants the agent to execute."""

    id: str = Field(..., description="Tool-call id assigned by the model")
    name: str = Field(..., description="Registered tool name")
    input: Dict[str, Any] = Field(default_factory=dict, description="Tool input object")


class ToolExecution(BaseModel):
    """Result of one tool call, attributed to the call id rather than its position."""

    tool_call_id: str
    tool_name: str
    result: ToolResult

    def to_content_block(self) -> Dict[str, Any]:
        """Render as a ``tool_result`` content block for the next user-role message."""
        block: Dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_call_id,
            "content": self.result.model_dump_json(exclude_none=True),
        }
        if not self.result.success:
            block["is_error"] = True
        return block


# ---------------------------------------------------------------------------
# Conversation side
# ---------------------------------------------------------------------------
class ChatMessage(BaseModel):
    """One entry of the conversation history resent on every model call."""

    role: Literal["user", "assistant"]
    content: Union[str, List[Dict[str, Any]]]


class ModelResponse(BaseModel):
    """A language-model reply normalised across planner back-ends."""

    stop_reason: Optional[str] = None
    text: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    content: List[Dict[str, Any]] = Field(
        default_factory=list, description="Assistant content blocks, echoed back verbatim"
    )
    usage: Dict[str, int] = Field(default_factory=dict)


class PendingAction(BaseModel):
    """A proposed write tool invocation awaiting explicit user approval."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    tool_name: str = Field(..., alias="toolName")
    tool_input: Dict[str, Any] = Field(..., alias="toolInput")
    preview: str


class AgentState(str, Enum):
    """States of the bounded agent loop."""

    AWAITING_MODEL = "AWAITING_MODEL"
    MODEL_RESPONDED_TEXT = "MODEL_RESPONDED_TEXT"
    MODEL_RESPONDED_TOOLS = "MODEL_RESPONDED_TOOLS"
    EXECUTING_READ_TOOLS = "EXECUTING_READ_TOOLS"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    ITERATION_LIMIT_EXCEEDED = "ITERATION_LIMIT_EXCEEDED"

    @property
    def is_terminal(self) -> bool:
        """Whether the loop stops in this state."""
        return self in _TERMINAL_STATES


_TERMINAL_STATES = {
    AgentState.MODEL_RESPONDED_TEXT,
    AgentState.AWAITING_APPROVAL,
    AgentState.ITERATION_LIMIT_EXCEEDED,
}


class AgentOutcome(BaseModel):
    """What one run of the agent loop hands back to the caller."""

    state: AgentState
    message: str
    approval_actions: List[PendingAction] = Field(default_factory=list)
    usage: Dict[str, int] = Field(default_factory=dict)
    iterations: int = 0
    executions: List[ToolExecution] = Field(default_factory=list)

    @property
    def approval_required(self) -> bool:
        """True when the turn is gated on user approval."""
        return self.state is AgentState.AWAITING_APPROVAL


class ApprovalOutcome(BaseModel):
    """Result of executing (or discarding) one approval action."""

    approval_id: Optional[str] = None
    success: bool
    message: str
    data: Any = None
    error: Optional[ToolError] = None
