"""Timeline store: stage and settings persistence.

Pure CRUD over connection_timeline_stages and connection_settings. Business
rules (vocabulary checks, auto-advancement, deadlines) live in
timeline.progression; this module only signals missing rows and empty updates.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import (
    DEFAULT_FOLLOW_UP_WAIT_DAYS,
    MAX_FOLLOW_UP_WAIT_DAYS,
    MIN_FOLLOW_UP_WAIT_DAYS,
    Connection,
    TimelineSettings,
    TimelineStage,
)
from db.repositories import connections as connections_repo
from timeline.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "stage_status",
    "email_content",
    "draft_content",
    "sent_at",
    "response_received_at",
    "response_deadline",
)


@dataclass
class TimelineStages:
    """Stages of one connection (ordered by stage_order) plus its settings."""

    connection_id: int
    stages: list[TimelineStage]
    settings: TimelineSettings

    @property
    def stage_count(self) -> int:
        return len(self.stages)


async def get_settings(
    session: AsyncSession, connection_id: int
) -> Optional[TimelineSettings]:
    result = await session.execute(
        select(TimelineSettings).where(TimelineSettings.connection_id == connection_id)
    )
    return result.scalar_one_or_none()


async def create_initial_timeline(
    session: AsyncSession, connection_id: int
) -> tuple[TimelineStage, bool]:
    """Create the first_impression stage and default settings for a connection.

    Idempotent: when the connection already has stages, its first stage is
    returned and nothing is inserted. Returns (stage, created).
    """
    if not connection_id:
        raise InvalidInput("Connection ID is required")
    if not await connections_repo.exists(session, connection_id):
        raise NotFound("Connection not found")

    result = await session.execute(
        select(TimelineStage)
        .where(TimelineStage.connection_id == connection_id)
        .order_by(TimelineStage.stage_order)
        .limit(1)
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing, False

    stage = TimelineStage(
        connection_id=connection_id,
        stage_type="first_impression",
        stage_order=1,
        stage_status="waiting",
    )
    session.add(stage)
    if await get_settings(session, connection_id) is None:
        session.add(
            TimelineSettings(
                connection_id=connection_id,
                follow_up_wait_days=DEFAULT_FOLLOW_UP_WAIT_DAYS,
            )
        )
    await session.flush()
    return stage, True


async def get_timeline_stages(session: AsyncSession, connection_id: int) -> TimelineStages:
    """Return all stages for a connection, ordered by stage_order, with settings.

    Settings fall back to an unsaved default row when none exists.
    """
    if not connection_id:
        raise InvalidInput("Connection ID is required")

    result = await session.execute(
        select(TimelineStage)
        .where(TimelineStage.connection_id == connection_id)
        .order_by(TimelineStage.stage_order)
    )
    stages = list(result.scalars().all())

    settings = await get_settings(session, connection_id)
    if settings is None:
        settings = TimelineSettings(
            connection_id=connection_id,
            follow_up_wait_days=DEFAULT_FOLLOW_UP_WAIT_DAYS,
        )
    return TimelineStages(connection_id=connection_id, stages=stages, settings=settings)


async def get_stage(
    session: AsyncSession, connection_id: int, stage_id: int
) -> Optional[TimelineStage]:
    """Return the stage if it belongs to the connection, or None."""
    result = await session.execute(
        select(TimelineStage)
        .where(TimelineStage.id == stage_id)
        .where(TimelineStage.connection_id == connection_id)
    )
    return result.scalar_one_or_none()


async def get_max_stage_order(session: AsyncSession, connection_id: int) -> int:
    """Return the highest stage_order for a connection, 0 when it has none."""
    result = await session.execute(
        select(func.max(TimelineStage.stage_order)).where(
            TimelineStage.connection_id == connection_id
        )
    )
    return result.scalar_one_or_none() or 0


async def create_stage(session: AsyncSession, connection_id: int, data: dict) -> TimelineStage:
    """Insert a stage row.

    data dict keys: stage_type, stage_order, stage_status (default 'waiting'),
    and optionally email_content, draft_content, sent_at,
    response_received_at, response_deadline.
    The caller is responsible for computing the next stage_order.
    """
    stage_type = data.get("stage_type")
    stage_order = data.get("stage_order")
    if not connection_id or not stage_type or not stage_order:
        raise InvalidInput("Connection ID, stage type, and stage order are required")

    extra = {k: v for k, v in data.items() if k in _UPDATABLE_FIELDS and k != "stage_status"}
    stage = TimelineStage(
        connection_id=connection_id,
        stage_type=stage_type,
        stage_order=stage_order,
        stage_status=data.get("stage_status") or "waiting",
        **extra,
    )
    session.add(stage)
    await session.flush()
    logger.debug(
        "Created stage id=%s connection_id=%s type=%s order=%s",
        stage.id, connection_id, stage_type, stage_order,
    )
    return stage


async def update_stage(
    session: AsyncSession, connection_id: int, stage_id: int, fields: dict
) -> TimelineStage:
    """Merge recognized fields into a stage owned by the connection.

    Unrecognized keys are ignored. Raises InvalidInput when nothing is left to
    update and NotFound when (connection_id, stage_id) matches no row.
    """
    if not connection_id or not stage_id or fields is None:
        raise InvalidInput("Connection ID, stage ID, and data are required")

    values = {k: v for k, v in fields.items() if k in _UPDATABLE_FIELDS}
    if not values:
        raise InvalidInput("No valid fields to update")

    result = await session.execute(
        update(TimelineStage)
        .where(TimelineStage.id == stage_id)
        .where(TimelineStage.connection_id == connection_id)
        .values(**values, updated_at=func.now())
        .returning(TimelineStage),
        execution_options={"populate_existing": True},
    )
    stage = result.scalar_one_or_none()
    if stage is None:
        raise NotFound("Stage not found or access denied")
    await session.flush()
    return stage


async def update_settings(
    session: AsyncSession, connection_id: int, follow_up_wait_days: int
) -> TimelineSettings:
    """Insert or update the settings row for a connection."""
    if not connection_id:
        raise InvalidInput("Connection ID is required")
    if (
        isinstance(follow_up_wait_days, bool)
        or not isinstance(follow_up_wait_days, int)
        or not MIN_FOLLOW_UP_WAIT_DAYS <= follow_up_wait_days <= MAX_FOLLOW_UP_WAIT_DAYS
    ):
        raise InvalidInput(
            f"Follow-up wait days must be an integer between "
            f"{MIN_FOLLOW_UP_WAIT_DAYS} and {MAX_FOLLOW_UP_WAIT_DAYS}"
        )

    settings = await get_settings(session, connection_id)
    if settings is None:
        settings = TimelineSettings(
            connection_id=connection_id, follow_up_wait_days=follow_up_wait_days
        )
        session.add(settings)
    else:
        settings.follow_up_wait_days = follow_up_wait_days
    await session.flush()
    return settings


async def get_expired_response_stages(
    session: AsyncSession, now: datetime
) -> list[tuple[TimelineStage, Optional[int]]]:
    """Return waiting response stages whose deadline is at or before now.

    Each item is (stage, owning connection's user_id).
    """
    result = await session.execute(
        select(TimelineStage, Connection.user_id)
        .join(Connection, Connection.id == TimelineStage.connection_id)
        .where(TimelineStage.stage_type == "response")
        .where(TimelineStage.stage_status == "waiting")
        .where(TimelineStage.response_deadline.is_not(None))
        .where(TimelineStage.response_deadline <= now)
        .order_by(TimelineStage.response_deadline, TimelineStage.id)
    )
    return [(stage, user_id) for stage, user_id in result.all()]
