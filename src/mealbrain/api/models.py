"""
Pydantic models for MealBrain API requests and responses.
This module defines the request and response schemas used by the chat and approval endpoints.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from mealbrain.core.schema import (
    ChatMessage,
    PendingAction,
    ToolError,
)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------
class ChatRequest(BaseModel):
    """Full conversation history; the server keeps no chat state."""

    messages: List[ChatMessage] = Field(..., min_length=1, description="Conversation so far")


class ChatResponse(BaseModel):
    """Assistant reply, optionally gated on approval of proposed changes."""

    message: str
    usage: Dict[str, int] = Field(default_factory=dict)
    approval_required: Optional[bool] = None
    approval_actions: Optional[List[PendingAction]] = None


# ---------------------------------------------------------------------------
# Approvals
# ---------------------------------------------------------------------------
class ApproveRequest(BaseModel):
    """A single approval decision.  ``tool_name``/``tool_input`` echo the pending action."""

    approval_id: str
    approved: bool
    tool_name: str = Field(..., min_length=1)
    tool_input: Dict[str, Any]


class ApproveResponse(BaseModel):
    """Outcome of an approval decision."""

    success: bool
    message: str
    data: Any = None


class BatchAction(BaseModel):
    """One approved action of a batch."""

    approval_id: str
    tool_name: str = Field(..., min_length=1)
    tool_input: Dict[str, Any]


class BatchApproveRequest(BaseModel):
    """Actions to run in order."""

    actions: List[BatchAction] = Field(..., min_length=1)


class BatchResult(BaseModel):
    """Per-action outcome of a batch."""

    approval_id: Optional[str] = None
    success: bool
    message: str
    data: Any = None
    error: Optional[ToolError] = None


class BatchApproveResponse(BaseModel):
    """One result per requested action, in request order."""

    results: List[BatchResult]
