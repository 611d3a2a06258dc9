"""Visible-window selection and progression summaries.

Pure functions over stage-like objects exposing ``stage_order`` and
``stage_status`` (ORM rows or StageRead models). Inputs are never mutated.
"""
from typing import Optional, Sequence, TypeVar

from db.models import STAGE_STATUSES
from schemas.timeline import ProgressionStatus

VISIBLE_WINDOW_SIZE = 3

S = TypeVar("S")


def _ordered(stages: Sequence[S]) -> list[S]:
    return sorted(stages, key=lambda stage: stage.stage_order)


def _current_index(ordered: Sequence) -> int:
    """Index of the last non-waiting stage; 0 when every stage is waiting."""
    for index in range(len(ordered) - 1, -1, -1):
        if ordered[index].stage_status != "waiting":
            return index
    return 0


def get_visible_stages(stages: Optional[Sequence[S]]) -> list[S]:
    """Select at most three stages around the current one for display.

    Up to three stages are returned whole. Beyond that the window is the
    first three when the current stage is first, the last three when it is
    last, and (previous, current, next) otherwise.
    """
    if not stages:
        return []

    ordered = _ordered(stages)
    if len(ordered) <= VISIBLE_WINDOW_SIZE:
        return ordered

    current = _current_index(ordered)
    if current == 0:
        return ordered[:VISIBLE_WINDOW_SIZE]
    if current == len(ordered) - 1:
        return ordered[-VISIBLE_WINDOW_SIZE:]
    return ordered[current - 1:current + 2]


def get_current_stage(stages: Optional[Sequence[S]]) -> Optional[S]:
    """Return the last non-waiting stage, the first stage if all wait, or None."""
    if not stages:
        return None
    ordered = _ordered(stages)
    return ordered[_current_index(ordered)]


def calculate_progression_status(stages: Optional[Sequence]) -> ProgressionStatus:
    """Summarize a timeline into a phase and per-status counts."""
    if not stages:
        return ProgressionStatus(phase="not_started")

    counts = {status: 0 for status in STAGE_STATUSES}
    for stage in stages:
        counts[stage.stage_status] = counts.get(stage.stage_status, 0) + 1

    if counts["received"]:
        phase = "conversation_active"
    elif counts["draft"] or counts["sent"]:
        phase = "outreach_active"
    else:
        phase = "not_started"

    return ProgressionStatus(
        phase=phase,
        active_stages=counts["draft"] + counts["sent"],
        completed_stages=counts["sent"] + counts["received"],
        waiting_stages=counts["waiting"],
        total_stages=len(stages),
        status_breakdown=counts,
    )
