"""FastAPI routes for learning, querying, and maintaining personal context.

All routes live under ``/personal-context`` and delegate to the
``LearningCoordinator`` stored in ``app.state.services["coordinator"]``.
The ``/server-logs`` routes read and write the in-memory progress buffer in
``app.state.services["server_logs"]``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field, SecretStr

from personal_context.domain.models import LearningInput, LearningOptions
from personal_context.domain.types import LearningStatus
from personal_context.email.models import EmailThread
from personal_context.learning.coordinator import LearningCoordinator
from personal_context.learning.models import ContextUpdateInput
from personal_context.observability.middleware import get_request_id
from personal_context.observability.server_logs import ServerLogBuffer, ServerLogEntry

logger = structlog.get_logger()

router = APIRouter(prefix="/personal-context")

# A "running" record older than this is treated as abandoned
STALE_RUN_AFTER = timedelta(hours=1)


class LearnRequest(BaseModel):
    user_id: str = Field(min_length=1)
    access_token: SecretStr
    options: LearningOptions = Field(default_factory=LearningOptions)


class ProfileUpdateRequest(BaseModel):
    user_id: str = Field(min_length=1)
    email_content: str = Field(min_length=1)
    recipient_email: str = Field(min_length=1)
    user_reply: str = Field(min_length=1)
    thread_context: EmailThread | None = None


class ConnectionTestRequest(BaseModel):
    access_token: SecretStr


class ServerLogRequest(BaseModel):
    message: str = ""
    source: str = "client"


def _coordinator(request: Request) -> LearningCoordinator:
    coordinator: LearningCoordinator | None = request.app.state.services.get("coordinator")
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Learning coordinator is not initialized")
    return coordinator


def _server_logs(request: Request) -> ServerLogBuffer:
    buffer: ServerLogBuffer | None = request.app.state.services.get("server_logs")
    if buffer is None:
        raise HTTPException(status_code=503, detail="Server log buffer is not initialized")
    return buffer


@router.post("/learn")
async def learn(body: LearnRequest, request: Request) -> dict[str, Any]:
    """Run a full learning pass and return its result.

    The returned ``api_call_id`` is the request ID, so it matches the
    ``request_id`` on every log line the run writes.

    Raises:
        HTTPException: 409 if a run for the same user is already in progress.
    """
    coordinator = _coordinator(request)
    api_call_id = get_request_id(request)
    log = logger.bind(api_call_id=api_call_id, user_id=body.user_id)

    current = coordinator.get_progress(body.user_id)
    if (
        current is not None
        and current.status is LearningStatus.RUNNING
        and datetime.now(tz=UTC) - current.start_time < STALE_RUN_AFTER
    ):
        log.warning("Learning already running, rejecting request")
        raise HTTPException(
            status_code=409, detail="Learning is already in progress for this user"
        )

    log.info("Learning request accepted", options=body.options.model_dump(mode="json"))
    result = await coordinator.learn_personal_context(
        LearningInput(user_id=body.user_id, access_token=body.access_token, options=body.options)
    )
    log.info("Learning request finished", success=result.success, persisted=result.persisted)
    return {**result.model_dump(mode="json"), "api_call_id": api_call_id}


@router.get("/learn")
async def learning_progress(request: Request, user_id: str = Query(min_length=1)) -> dict[str, Any]:
    progress = _coordinator(request).get_progress(user_id)
    return {
        "success": True,
        "progress": progress.model_dump(mode="json") if progress else None,
    }


@router.get("/profile")
async def get_profile(request: Request, user_id: str = Query(min_length=1)) -> dict[str, Any]:
    profile = _coordinator(request).get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="No personal context found for this user")
    return {"success": True, "profile": profile.model_dump(mode="json")}


@router.post("/profile")
async def update_profile(body: ProfileUpdateRequest, request: Request) -> dict[str, Any]:
    """Fold one sent reply into the stored profile."""
    result = _coordinator(request).update_personal_context(
        ContextUpdateInput(
            user_id=body.user_id,
            email_content=body.email_content,
            recipient_email=body.recipient_email,
            user_reply=body.user_reply,
            thread_context=body.thread_context,
        )
    )
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Update failed")
    return {
        "success": True,
        "message": "Personal context updated successfully",
        "updates": result.updates,
    }


@router.delete("/profile")
async def delete_profile(request: Request, user_id: str = Query(min_length=1)) -> dict[str, Any]:
    result = _coordinator(request).delete_data(user_id)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return {"success": True, "message": "Personal context data deleted successfully"}


@router.get("/statistics")
async def statistics(request: Request, user_id: str = Query(min_length=1)) -> dict[str, Any]:
    stats = _coordinator(request).get_statistics(user_id)
    if stats is None:
        raise HTTPException(status_code=500, detail="Failed to get statistics")
    return {"success": True, "statistics": stats.model_dump(mode="json")}


@router.post("/test-connection")
async def test_connection(body: ConnectionTestRequest, request: Request) -> dict[str, Any]:
    result = await _coordinator(request).test_connection(body.access_token.get_secret_value())
    return result.model_dump(mode="json")


@router.get("/draft-context")
async def draft_context(request: Request, user_id: str = Query(min_length=1)) -> dict[str, Any]:
    """Return the prompt-ready context paragraph for reply drafting."""
    text, has_profile = _coordinator(request).draft_context(user_id)
    return {"success": True, "user_context": text, "has_profile": has_profile}


@router.get("/server-logs")
async def server_logs(
    request: Request,
    limit: int = Query(default=100, ge=1, le=1000),
    after: datetime | None = None,
) -> dict[str, Any]:
    """Return buffered progress messages, most recent first."""
    entries = _server_logs(request).recent(limit=limit, after=after)
    return {"logs": [entry.model_dump(mode="json") for entry in entries]}


@router.delete("/server-logs")
async def clear_server_logs(request: Request) -> dict[str, Any]:
    _server_logs(request).clear()
    return {"success": True}


@router.post("/server-logs")
async def add_server_log(body: ServerLogRequest, request: Request) -> dict[str, Any]:
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Missing message parameter")
    entry: ServerLogEntry = _server_logs(request).append(body.message, body.source)
    return {"success": True, "log": entry.model_dump(mode="json")}
