from .timeline import (
    StageRead,
    SettingsRead,
    InitializedTimeline,
    NextStage,
    StageStatusUpdate,
    ProgressionStatus,
    TimelineView,
    FollowUpCreated,
    DeadlineSweepError,
    DeadlineCheckResult,
)
from .messaging import (
    ProgressStage,
    ResponseType,
    StageOverride,
    ResponseTypeOverride,
    StatusTemplate,
    MessagingContext,
)

__all__ = [
    "StageRead", "SettingsRead", "InitializedTimeline", "NextStage",
    "StageStatusUpdate", "ProgressionStatus", "TimelineView",
    "FollowUpCreated", "DeadlineSweepError", "DeadlineCheckResult",
    "ProgressStage", "ResponseType", "StageOverride", "ResponseTypeOverride",
    "StatusTemplate", "MessagingContext",
]
