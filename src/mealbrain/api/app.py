"""
Core API backend for MealBrain.

This module exposes the assistant and the app's data through a RESTful API:
- **GET /health**               - liveness check.
- **POST /chat**                - run the agent loop over the client's message history.
- **POST /chat/approve**        - approve or reject one proposed change.
- **POST /chat/approve/batch**  - run several approved changes in order.
- recipe, planner, grocery and preference routes from :mod:`mealbrain.api.routes`.

Every route except ``/health`` requires ``Authorization: Bearer <token>``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
    Request,
)
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mealbrain.api.deps import (
    get_planner,
    get_tool_context,
    status_for,
)
from mealbrain.api.models import (
    ApproveRequest,
    ApproveResponse,
    BatchApproveRequest,
    BatchApproveResponse,
    BatchResult,
    ChatRequest,
    ChatResponse,
)
from mealbrain.api.routes import router
from mealbrain.common import (
    AnsiColors,
    colored_print,
)
from mealbrain.config import settings
from mealbrain.core.agent_loop import AgentLoop
from mealbrain.core.approvals import (
    ApprovalError,
    execute_approval,
    execute_batch,
    reject,
)
from mealbrain.core.planner import (
    BasePlanner,
    PlannerError,
)
from mealbrain.core.schema import (
    PendingAction,
    ToolContext,
)
from mealbrain.db.session import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Make sure the schema exists before serving."""
    init_db()
    yield


app = FastAPI(
    title="MealBrain API",
    version="0.1.0",
    description="Meal planning assistant API",
    lifespan=lifespan,
)

# Add CORS middleware to allow requests from the web app
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are client errors (400), not 422."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    summary="Send the conversation to the assistant",
)
async def chat(
    req: ChatRequest,
    context: ToolContext = Depends(get_tool_context),
    planner: BasePlanner = Depends(get_planner),
) -> ChatResponse:
    """Run one bounded agent loop and return its reply or the changes awaiting approval."""
    logger.info("Chat request with %d messages", len(req.messages))
    try:
        outcome = await AgentLoop(planner, context).run(req.messages)
    except PlannerError as exc:
        logger.error("Planner failure: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to process chat request") from exc

    logger.info("Chat finished in state %s after %d tool rounds", outcome.state, outcome.iterations)
    if outcome.approval_required:
        return ChatResponse(
            message=outcome.message,
            usage=outcome.usage,
            approval_required=True,
            approval_actions=outcome.approval_actions,
        )
    return ChatResponse(message=outcome.message, usage=outcome.usage)


@app.post(
    "/chat/approve",
    response_model=ApproveResponse,
    response_model_exclude_none=True,
    summary="Approve or reject a proposed change",
)
def approve(
    req: ApproveRequest, context: ToolContext = Depends(get_tool_context)
) -> ApproveResponse:
    """Execute the echoed action with the caller's identity, or discard it."""
    if not req.approved:
        outcome = reject(req.approval_id)
    else:
        try:
            outcome = execute_approval(req.tool_name, req.tool_input, context, req.approval_id)
        except ApprovalError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not outcome.success:
        raise HTTPException(status_code=status_for(outcome.error), detail=outcome.message)
    return ApproveResponse(success=True, message=outcome.message, data=outcome.data)


@app.post(
    "/chat/approve/batch",
    response_model=BatchApproveResponse,
    response_model_exclude_none=True,
    summary="Run several approved changes in order",
)
def approve_batch(
    req: BatchApproveRequest, context: ToolContext = Depends(get_tool_context)
) -> BatchApproveResponse:
    """Actions run sequentially; a failure does not stop or undo the others."""
    actions = [
        PendingAction(id=a.approval_id, tool_name=a.tool_name, tool_input=a.tool_input, preview="")
        for a in req.actions
    ]
    outcomes = execute_batch(actions, context)
    return BatchApproveResponse(
        results=[BatchResult.model_validate(outcome.model_dump()) for outcome in outcomes]
    )


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0",
    port: int | None = None,
    reload: bool = False,
    log_level: str | None = None,
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server (port defaults to ``settings.API_PORT``).
    reload:
        If *True*, enable auto-reload.
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn out of the import path for tests and the CLI client
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:
        log_level = settings.LOG_LEVEL
    if port is None:
        port = settings.API_PORT

    logger.info(
        "Starting MealBrain API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    logger.debug(
        "API settings: %s",
        settings.model_dump(exclude={"ANTHROPIC_API_KEY", "OPENAI_API_KEY", "API_TOKEN"}),
    )

    colored_print(f"MealBrain API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "mealbrain.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m mealbrain.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
