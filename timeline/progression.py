"""Stage progression engine.

Any status may be written to any stage. The one consequential rule: sending a
first_impression or follow_up stage stamps a response deadline on it and opens
a new response stage, which is what the deadline sweep later escalates.

All functions take the caller's AsyncSession and leave commit/rollback to it,
so a status update and the stage it spawns land in one transaction.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

import db.repositories.connections as connections_repo
import db.repositories.timeline as timeline_repo
from db.models import DEFAULT_FOLLOW_UP_WAIT_DAYS, OUTBOUND_STAGE_TYPES, STAGE_STATUSES
from schemas.timeline import (
    InitializedTimeline,
    NextStage,
    SettingsRead,
    StageRead,
    StageStatusUpdate,
    TimelineView,
)
from timeline.errors import InvalidInput, NotFound, UnsupportedOperation
from timeline.visibility import (
    calculate_progression_status,
    get_current_stage,
    get_visible_stages,
)

logger = logging.getLogger(__name__)

NEXT_STAGE_TYPES = ("response", "follow_up")

# Caller-supplied content; timestamps are only ever set by transitions
CONTENT_FIELDS = ("draft_content", "email_content")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def initialize_timeline(session: AsyncSession, connection_id: int) -> InitializedTimeline:
    """Create the first_impression stage for a connection (idempotent)."""
    if not connection_id:
        raise InvalidInput("Connection ID is required")

    connection = await connections_repo.get_by_id(session, connection_id)
    if connection is None:
        raise NotFound("Connection not found")

    stage, created = await timeline_repo.create_initial_timeline(session, connection_id)
    timeline = await timeline_repo.get_timeline_stages(session, connection_id)

    if created:
        logger.info(
            "Initialized timeline for connection_id=%s (stage_id=%s)", connection_id, stage.id
        )
        message = "Timeline initialized with first impression stage"
    else:
        message = "Timeline already initialized"

    return InitializedTimeline(
        connection_id=connection_id,
        stage=StageRead.model_validate(stage),
        total_stages=timeline.stage_count,
        initialized=created,
        message=message,
    )


async def get_connection_timeline(session: AsyncSession, connection_id: int) -> TimelineView:
    """Return all stages with settings, the visible window and a progress summary."""
    timeline = await timeline_repo.get_timeline_stages(session, connection_id)
    stages = [StageRead.model_validate(stage) for stage in timeline.stages]

    return TimelineView(
        connection_id=connection_id,
        stages=stages,
        settings=SettingsRead.model_validate(timeline.settings),
        visible_stages=get_visible_stages(stages),
        total_stages=len(stages),
        current_stage=get_current_stage(stages),
        progression_status=calculate_progression_status(stages),
    )


async def update_stage_status(
    session: AsyncSession,
    connection_id: int,
    stage_id: int,
    new_status: str,
    content: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> StageStatusUpdate:
    """Write a new status to a stage and apply its side effects.

    sent: stamps sent_at. first_impression/follow_up stages also get
        response_deadline = now + follow_up_wait_days and spawn a waiting
        response stage at the next order carrying the same deadline.
    received: stamps response_received_at on response stages.
    draft/waiting: content only.
    """
    if not connection_id or not stage_id or not new_status:
        raise InvalidInput("Connection ID, stage ID, and new status are required")
    if new_status not in STAGE_STATUSES:
        raise InvalidInput(
            f"Invalid status: {new_status}. Must be one of: {', '.join(STAGE_STATUSES)}"
        )

    timeline = await timeline_repo.get_timeline_stages(session, connection_id)
    stage = next((s for s in timeline.stages if s.id == stage_id), None)
    if stage is None:
        raise NotFound("Stage not found")

    now = now or _utcnow()
    stage_type = stage.stage_type
    opens_response = new_status == "sent" and stage_type in OUTBOUND_STAGE_TYPES

    fields = {k: v for k, v in (content or {}).items() if k in CONTENT_FIELDS}
    fields["stage_status"] = new_status

    deadline = None
    if new_status == "sent":
        fields["sent_at"] = now
        if opens_response:
            wait_days = timeline.settings.follow_up_wait_days or DEFAULT_FOLLOW_UP_WAIT_DAYS
            deadline = now + relativedelta(days=wait_days)
            fields["response_deadline"] = deadline
    elif new_status == "received" and stage_type == "response":
        fields["response_received_at"] = now

    updated = await timeline_repo.update_stage(session, connection_id, stage_id, fields)

    next_stage = None
    if opens_response:
        next_stage = await create_next_stage(
            session, connection_id, stage_id, "response", response_deadline=deadline
        )
        logger.info(
            "Stage %s (%s) sent for connection_id=%s; response stage %s opened",
            stage_id, stage_type, connection_id, next_stage.stage_id,
        )

    message = f"Stage status updated to {new_status}"
    if next_stage is not None:
        message += ", response stage created"

    return StageStatusUpdate(
        stage_id=stage_id,
        connection_id=connection_id,
        new_status=new_status,
        stage=StageRead.model_validate(updated),
        next_stage_created=next_stage,
        message=message,
    )


async def create_next_stage(
    session: AsyncSession,
    connection_id: int,
    current_stage_id: int,
    stage_type: str,
    response_deadline: Optional[datetime] = None,
) -> NextStage:
    """Append a waiting response or follow_up stage after the highest order."""
    if not connection_id or not current_stage_id or not stage_type:
        raise InvalidInput("Connection ID, current stage ID, and stage type are required")
    if stage_type not in NEXT_STAGE_TYPES:
        raise InvalidInput(
            f"Invalid stage type: {stage_type}. Must be one of: {', '.join(NEXT_STAGE_TYPES)}"
        )

    next_order = await timeline_repo.get_max_stage_order(session, connection_id) + 1
    data = {"stage_type": stage_type, "stage_order": next_order, "stage_status": "waiting"}
    if response_deadline is not None:
        data["response_deadline"] = response_deadline
    stage = await timeline_repo.create_stage(session, connection_id, data)

    return NextStage(
        stage_id=stage.id,
        stage_type=stage_type,
        stage_order=next_order,
        initial_status="waiting",
    )


async def update_timeline_settings(
    session: AsyncSession, connection_id: int, follow_up_wait_days: int
) -> SettingsRead:
    settings = await timeline_repo.update_settings(session, connection_id, follow_up_wait_days)
    logger.info(
        "Timeline settings for connection_id=%s: follow_up_wait_days=%s",
        connection_id, follow_up_wait_days,
    )
    return SettingsRead.model_validate(settings)


async def delete_stage(session: AsyncSession, connection_id: int, stage_id: int) -> None:
    """Stage deletion would break stage_order contiguity, so it is rejected."""
    raise UnsupportedOperation(
        "Stage deletion is not supported. Consider updating stage status instead."
    )
