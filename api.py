"""HTTP routes for connection timelines.

Mounted at /api/connections. Every route checks that the connection exists
before touching its timeline. Engine errors are mapped to status codes by the
handlers installed with install_error_handlers().
"""
import logging
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import db.repositories.connections as connections_repo
from db.connection import get_db
from db.models import MAX_FOLLOW_UP_WAIT_DAYS, MIN_FOLLOW_UP_WAIT_DAYS
from schemas.timeline import StageStatus, StageType
from timeline import progression
from timeline.deadlines import check_response_deadlines
from timeline.errors import InvalidInput, NotFound, TimelineError, UnsupportedOperation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/connections", tags=["Timeline"])

ADVANCE_ACTIONS = ("initialize", "send_email", "create_draft", "mark_response", "check_deadlines")

# Actions that write a status onto an existing stage
_ACTION_STATUSES = {"send_email": "sent", "create_draft": "draft", "mark_response": "received"}


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class StageCreateRequest(BaseModel):
    stage_type: Optional[StageType] = None
    current_stage_id: Optional[int] = None


class StageUpdateRequest(BaseModel):
    stage_status: StageStatus
    draft_content: Optional[str] = None
    email_content: Optional[str] = None


class AdvanceRequest(BaseModel):
    action: str
    stage_id: Optional[int] = None
    content: Optional[dict[str, Any]] = None


class SettingsUpdateRequest(BaseModel):
    follow_up_wait_days: int = Field(ge=MIN_FOLLOW_UP_WAIT_DAYS, le=MAX_FOLLOW_UP_WAIT_DAYS)


# ---------------------------------------------------------------------------
# Dependencies and error mapping
# ---------------------------------------------------------------------------


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_db() as session:
        yield session


async def _require_connection(session: AsyncSession, connection_id: int) -> None:
    if await connections_repo.get_by_id(session, connection_id) is None:
        raise NotFound("Connection not found")


_STATUS_FOR_ERROR = (
    (InvalidInput, status.HTTP_400_BAD_REQUEST, "Validation failed"),
    (NotFound, status.HTTP_404_NOT_FOUND, "Not found"),
    (UnsupportedOperation, status.HTTP_501_NOT_IMPLEMENTED, "Not implemented"),
)


async def _timeline_error_handler(request: Request, exc: TimelineError) -> JSONResponse:
    for error_type, status_code, label in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"error": label, "message": str(exc)})
    logger.error("Unmapped timeline error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": str(exc)},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TimelineError, _timeline_error_handler)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/{connection_id}/timeline")
async def get_timeline(connection_id: int, session: AsyncSession = Depends(get_session)):
    await _require_connection(session, connection_id)
    timeline = await progression.get_connection_timeline(session, connection_id)
    return {"message": "Timeline retrieved successfully", "timeline": timeline}


@router.post("/{connection_id}/timeline/stage", status_code=status.HTTP_201_CREATED)
async def create_timeline_stage(
    connection_id: int,
    body: StageCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    """Create the next stage of a given type, or initialize the timeline."""
    await _require_connection(session, connection_id)
    if body.stage_type:
        if not body.current_stage_id:
            raise InvalidInput("current_stage_id is required when creating specific stage types")
        result = await progression.create_next_stage(
            session, connection_id, body.current_stage_id, body.stage_type
        )
    else:
        result = await progression.initialize_timeline(session, connection_id)
    return {"message": "Timeline stage created successfully", "stage": result}


@router.put("/{connection_id}/timeline/stage/{stage_id}")
async def update_timeline_stage(
    connection_id: int,
    stage_id: int,
    body: StageUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    await _require_connection(session, connection_id)
    content = body.model_dump(include={"draft_content", "email_content"}, exclude_none=True)
    result = await progression.update_stage_status(
        session, connection_id, stage_id, body.stage_status, content
    )
    return {"message": "Timeline stage updated successfully", "result": result}


@router.delete("/{connection_id}/timeline/stage/{stage_id}")
async def delete_timeline_stage(
    connection_id: int,
    stage_id: int,
    session: AsyncSession = Depends(get_session),
):
    await _require_connection(session, connection_id)
    await progression.delete_stage(session, connection_id, stage_id)


@router.post("/{connection_id}/timeline/advance")
async def advance_timeline(
    connection_id: int,
    body: AdvanceRequest,
    session: AsyncSession = Depends(get_session),
):
    await _require_connection(session, connection_id)
    action = body.action

    if action == "initialize":
        result = await progression.initialize_timeline(session, connection_id)
    elif action in _ACTION_STATUSES:
        if not body.stage_id:
            raise InvalidInput(f"stage_id is required for {action} action")
        result = await progression.update_stage_status(
            session, connection_id, body.stage_id, _ACTION_STATUSES[action], body.content or {}
        )
    elif action == "check_deadlines":
        # System-wide sweep; runs in its own sessions
        result = await check_response_deadlines()
    else:
        raise InvalidInput(f"Action must be one of: {', '.join(ADVANCE_ACTIONS)}")

    return {"message": f"Timeline advance action '{action}' completed successfully", "result": result}


@router.get("/{connection_id}/timeline/settings")
async def get_timeline_settings(connection_id: int, session: AsyncSession = Depends(get_session)):
    await _require_connection(session, connection_id)
    timeline = await progression.get_connection_timeline(session, connection_id)
    return {"message": "Timeline settings retrieved successfully", "settings": timeline.settings}


@router.put("/{connection_id}/timeline/settings")
async def update_timeline_settings(
    connection_id: int,
    body: SettingsUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    await _require_connection(session, connection_id)
    settings = await progression.update_timeline_settings(
        session, connection_id, body.follow_up_wait_days
    )
    return {"message": "Timeline settings updated successfully", "settings": settings}
