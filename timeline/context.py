"""Status/response context classifier.

Turns a connection record into the MessagingContext consumed by the content
generator: the sub-stage comes from the draft/sent fields, the response type
from a keyword heuristic over the free-text description, and the messaging
fields from the status template with its overlays applied in order.

The connection may be an ORM Connection, any object with the same
attributes, or a plain mapping.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from schemas.messaging import (
    MessagingContext,
    ProgressStage,
    ResponseType,
    StatusTemplate,
)
from timeline.status_templates import DEFAULT_STATUS, STATUS_TEMPLATES

logger = logging.getLogger(__name__)

MESSAGING_FIELDS = ("approach", "tone", "context", "call_to_action")


@dataclass(frozen=True)
class ClassificationRule:
    phrase: str
    category: ResponseType
    tier: str


def _rules(tier: str, category: ResponseType, phrases: Iterable[str]) -> list[ClassificationRule]:
    return [ClassificationRule(phrase, category, tier) for phrase in phrases]


# Evaluated top to bottom, first hit wins. Negative tiers come first so polite
# rejections ("not available", "thanks for reaching out, but ...") never read
# as positive.
RESPONSE_RULES: tuple[ClassificationRule, ...] = tuple(
    _rules("negative_phrase", ResponseType.NEGATIVE, [
        "thanks for reaching out, but",
        "appreciate your interest, but",
        "thank you for thinking of me, but",
        "i'm flattered, but",
    ])
    + _rules("negative_keyword", ResponseType.NEGATIVE, [
        "not available", "not interested", "not a good fit", "not the right time",
        "not at this time", "busy", "can't", "cannot", "unable", "decline", "pass",
        "thanks but", "appreciate but", "unfortunately", "no thank you",
        "not looking", "not currently", "not right now", "too busy",
        "can't make", "won't be able", "have to pass", "will have to decline",
    ])
    + _rules("positive_keyword", ResponseType.POSITIVE, [
        "yes", "absolutely", "definitely", "interested", "would love", "sounds great",
        "happy to", "excited", "looking forward", "let's schedule", "let's meet",
        "coffee", "lunch", "call me", "meeting", "available for", "free to",
        "works for me", "perfect", "great idea", "love to chat",
    ])
)


def _field(connection: Union[Mapping[str, Any], Any], name: str) -> Any:
    if isinstance(connection, Mapping):
        return connection.get(name)
    return getattr(connection, name, None)


def determine_current_stage(connection) -> ProgressStage:
    """Email Sent if a send date exists, Draft Made if a non-blank draft exists."""
    if _field(connection, "last_email_sent_date"):
        return ProgressStage.EMAIL_SENT
    draft = _field(connection, "last_email_draft")
    if draft and draft.strip():
        return ProgressStage.DRAFT_MADE
    return ProgressStage.NOT_STARTED


def detect_response_type(connection) -> ResponseType:
    text = (
        _field(connection, "custom_connection_description")
        or _field(connection, "notes")
        or ""
    ).lower()
    for rule in RESPONSE_RULES:
        if rule.phrase in text:
            return rule.category
    return ResponseType.NEUTRAL


def merge_overlays(base: Mapping[str, Any], *overlays) -> dict:
    """Apply overlays left to right; set fields replace, unset fields are kept."""
    merged = dict(base)
    for overlay in overlays:
        if overlay is None:
            continue
        merged.update(overlay.model_dump(include=set(MESSAGING_FIELDS), exclude_none=True))
    return merged


def get_intelligent_status_context(
    base_template: StatusTemplate,
    email_status: Optional[str],
    current_stage: Union[ProgressStage, str],
    connection,
) -> MessagingContext:
    current_stage = ProgressStage(current_stage)
    base = {name: getattr(base_template, name) for name in MESSAGING_FIELDS}

    overlays = [base_template.stage_contexts.get(current_stage)]
    response_type = None
    if email_status == "Response" and base_template.response_types:
        detected = detect_response_type(connection)
        override = base_template.response_types.get(detected)
        if override is not None:
            overlays.append(override)
            response_type = detected

    merged = merge_overlays(base, *overlays)
    return MessagingContext(
        **merged,
        description=base_template.description,
        current_stage=current_stage,
        response_type=response_type,
    )


def build_status_context(
    connection, templates: Mapping[str, StatusTemplate] = STATUS_TEMPLATES
) -> MessagingContext:
    """Messaging context for a connection; unknown statuses use Not Contacted."""
    email_status = _field(connection, "email_status")
    template = templates.get(email_status) if email_status else None
    if template is None:
        logger.debug("No status template for %r, using %r", email_status, DEFAULT_STATUS)
        template = templates[DEFAULT_STATUS]
    current_stage = determine_current_stage(connection)
    return get_intelligent_status_context(template, email_status, current_stage, connection)
