"""Status template and messaging context schemas.

A StatusTemplate is the static, status-keyed base. StageOverride and
ResponseTypeOverride are overlays applied on top of it, field by field, to
build the MessagingContext handed to the content generator.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProgressStage(str, Enum):
    """Presentation-level sub-stage derived from the connection record."""

    NOT_STARTED = "Not Started"
    DRAFT_MADE = "Draft Made"
    EMAIL_SENT = "Email Sent"


class ResponseType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class _Overlay(BaseModel):
    """Messaging fields; unset fields leave the underlying value alone."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    approach: Optional[str] = None
    tone: Optional[str] = None
    context: Optional[str] = None
    call_to_action: Optional[str] = Field(default=None, alias="callToAction")


class StageOverride(_Overlay):
    pass


class ResponseTypeOverride(_Overlay):
    pass


class StatusTemplate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    approach: str
    tone: str
    context: str
    call_to_action: str = Field(alias="callToAction")
    description: str = ""
    progress_stages: List[ProgressStage] = Field(
        default_factory=lambda: list(ProgressStage), alias="progressStages"
    )
    stage_contexts: Dict[ProgressStage, StageOverride] = Field(
        default_factory=dict, alias="stageContexts"
    )
    response_types: Optional[Dict[ResponseType, ResponseTypeOverride]] = Field(
        default=None, alias="responseTypes"
    )


class MessagingContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    approach: str
    tone: str
    context: str
    call_to_action: str = Field(alias="callToAction")
    description: str = ""
    current_stage: ProgressStage = Field(alias="currentStage")
    response_type: Optional[ResponseType] = Field(default=None, alias="responseType")
