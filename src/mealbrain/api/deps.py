"""FastAPI dependencies: caller identity, planner and error mapping."""

import logging
from datetime import timezone
from typing import Any

from fastapi import (
    Depends,
    HTTPException,
)
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBearer,
)

from mealbrain.common import utcnow
from mealbrain.core.planner import (
    BasePlanner,
    load_planner,
)
from mealbrain.core.schema import (
    ErrorType,
    ToolContext,
    ToolError,
    ToolResult,
)
from mealbrain.db.models import (
    AuthSession,
    User,
)
from mealbrain.db.session import session_scope

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ERROR_STATUS = {
    ErrorType.NOT_FOUND: 404,
    ErrorType.AUTHORIZATION_ERROR: 403,
    ErrorType.PERMISSION_DENIED: 403,
    ErrorType.VALIDATION_ERROR: 400,
}


def status_for(error: ToolError | None) -> int:
    """HTTP status for a failed tool result; anything unmapped is a server error."""
    if error is None:
        return 500
    return ERROR_STATUS.get(error.type, 500)


def unwrap(result: ToolResult) -> Any:
    """Return ``result.data`` or raise the matching ``HTTPException``."""
    if result.success:
        return result.data
    if result.error is None:
        raise HTTPException(status_code=500, detail="Internal server error")
    raise HTTPException(
        status_code=status_for(result.error),
        detail=result.error.model_dump(mode="json", exclude_none=True),
    )


def get_tool_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> ToolContext:
    """
    Resolve the bearer token to the caller's user and household.

    401 when the token is missing, unknown or expired; 400 when the user has no household.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    with session_scope() as session:
        auth = session.get(AuthSession, credentials.credentials)
        if auth is None:
            raise HTTPException(status_code=401, detail="Unauthorized")

        expires_at = auth.expires_at
        if expires_at.tzinfo is None:
            # SQLite hands back naive datetimes
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= utcnow():
            raise HTTPException(status_code=401, detail="Session expired")

        user = session.get(User, auth.user_id)
        if user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        if not user.household_id:
            raise HTTPException(status_code=400, detail="User not associated with household")
        return ToolContext(user_id=user.id, household_id=user.household_id)


def get_planner() -> BasePlanner:
    """The configured planner back-end."""
    return load_planner()
