"""Response deadline sweep and its recurring scheduler.

check_response_deadlines() finds waiting response stages whose deadline has
passed and opens a follow_up stage for each. Every match runs in its own
session, so one connection's failure is recorded in the result and the rest
of the sweep carries on.

DeadlineScheduler owns the recurring job. It is created by the composition
root (app.py) and started/stopped with the application lifespan.
"""
import logging
from datetime import datetime, timezone
from typing import AsyncContextManager, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession

import db.repositories.timeline as timeline_repo
import runtime_config
from db.connection import get_db
from schemas.timeline import DeadlineCheckResult, DeadlineSweepError, FollowUpCreated
from timeline.progression import create_next_stage

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

DEADLINE_JOB_ID = "response_deadline_check"


async def check_response_deadlines(
    session_factory: SessionFactory = get_db,
    now: Optional[datetime] = None,
) -> DeadlineCheckResult:
    """Create follow_up stages for every expired, still-waiting response stage.

    Note: the matched response stage is left as is, so a later sweep matches it
    again and opens another follow_up. A warning is logged when that happens.
    """
    now = now or datetime.now(timezone.utc)

    async with session_factory() as session:
        expired = await timeline_repo.get_expired_response_stages(session, now)
        matches = [
            (stage.connection_id, stage.id, stage.stage_order, stage.response_deadline, user_id)
            for stage, user_id in expired
        ]

    follow_ups: list[FollowUpCreated] = []
    errors: list[DeadlineSweepError] = []

    for connection_id, stage_id, stage_order, deadline, user_id in matches:
        try:
            async with session_factory() as session:
                latest_order = await timeline_repo.get_max_stage_order(session, connection_id)
                if latest_order > stage_order:
                    logger.warning(
                        "Response stage %s for connection_id=%s already has later stages "
                        "(latest order %s); another follow-up will be created",
                        stage_id, connection_id, latest_order,
                    )
                follow_up = await create_next_stage(session, connection_id, stage_id, "follow_up")
        except Exception as exc:
            logger.warning(
                "Follow-up creation failed for connection_id=%s stage_id=%s: %s",
                connection_id, stage_id, exc, exc_info=True,
            )
            errors.append(
                DeadlineSweepError(connection_id=connection_id, stage_id=stage_id, error=str(exc))
            )
            continue

        follow_ups.append(
            FollowUpCreated(
                connection_id=connection_id,
                user_id=user_id,
                expired_stage_id=stage_id,
                follow_up_stage_id=follow_up.stage_id,
                deadline=deadline,
            )
        )

    logger.info(
        "Response deadline check: %d expired, %d follow-ups created, %d errors",
        len(matches), len(follow_ups), len(errors),
    )
    return DeadlineCheckResult(
        success=True,
        expired_stages_found=len(matches),
        follow_ups_created=len(follow_ups),
        follow_ups=follow_ups,
        errors=errors,
        checked_at=now,
    )


class DeadlineScheduler:
    """Runs check_response_deadlines on a fixed interval.

    start() is a no-op under test mode and when the job is already running;
    stop() is safe to call at any time.
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_db,
        interval_seconds: int = runtime_config.DEADLINE_CHECK_INTERVAL_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self._interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started

    def start(self) -> bool:
        """Schedule the recurring sweep. Returns True when a job was started.

        Must be called from within a running event loop.
        """
        if runtime_config.is_test_mode():
            logger.info("Skipping job scheduling in test environment")
            return False

        if self._started or self._scheduler is not None:
            logger.info("Timeline jobs already started, skipping duplicate scheduling")
            return False

        logger.info("Starting timeline background jobs...")
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self._interval_seconds,
            id=DEADLINE_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()

        self._scheduler = scheduler
        self._started = True
        logger.info(
            "Timeline background jobs scheduled (deadline check every %ss)",
            self._interval_seconds,
        )
        return True

    def stop(self) -> None:
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Timeline deadline checker stopped")

        self._started = False
        logger.info("Timeline background jobs stopped")

    async def run_once(self) -> Optional[DeadlineCheckResult]:
        """One sweep; failures are logged, never raised into the scheduler."""
        logger.debug("Running response deadline check...")
        try:
            return await check_response_deadlines(self._session_factory)
        except Exception:
            logger.exception("Error in response deadline checker")
            return None
