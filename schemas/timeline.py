"""Timeline stage, progression and deadline sweep schemas."""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StageType = Literal["first_impression", "response", "follow_up"]
StageStatus = Literal["waiting", "draft", "sent", "received"]
ProgressionPhase = Literal["not_started", "outreach_active", "conversation_active"]


class StageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    connection_id: int
    stage_type: StageType
    stage_order: int = Field(ge=1)
    stage_status: StageStatus
    draft_content: Optional[str] = None
    email_content: Optional[str] = None
    sent_at: Optional[datetime] = None
    response_deadline: Optional[datetime] = None
    response_received_at: Optional[datetime] = None


class SettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    connection_id: int
    follow_up_wait_days: int = Field(ge=1, le=30)


class InitializedTimeline(BaseModel):
    connection_id: int
    stage: StageRead
    total_stages: int
    initialized: bool  # False when the timeline already existed
    message: str


class NextStage(BaseModel):
    stage_id: int
    stage_type: StageType
    stage_order: int
    initial_status: StageStatus = "waiting"


class StageStatusUpdate(BaseModel):
    stage_id: int
    connection_id: int
    new_status: StageStatus
    stage: StageRead
    next_stage_created: Optional[NextStage] = None
    message: str


class ProgressionStatus(BaseModel):
    phase: ProgressionPhase
    active_stages: int = 0
    completed_stages: int = 0
    waiting_stages: int = 0
    total_stages: int = 0
    status_breakdown: Dict[str, int] = Field(default_factory=dict)


class TimelineView(BaseModel):
    connection_id: int
    stages: List[StageRead]
    settings: SettingsRead
    visible_stages: List[StageRead]
    total_stages: int
    current_stage: Optional[StageRead] = None
    progression_status: ProgressionStatus


class FollowUpCreated(BaseModel):
    connection_id: int
    user_id: Optional[int] = None
    expired_stage_id: int
    follow_up_stage_id: int
    deadline: Optional[datetime] = None


class DeadlineSweepError(BaseModel):
    connection_id: int
    stage_id: int
    error: str


class DeadlineCheckResult(BaseModel):
    success: bool = True
    expired_stages_found: int
    follow_ups_created: int
    follow_ups: List[FollowUpCreated] = Field(default_factory=list)
    errors: List[DeadlineSweepError] = Field(default_factory=list)
    checked_at: datetime
