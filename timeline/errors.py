"""Error kinds raised by the timeline store and progression engine."""
from sqlalchemy.exc import SQLAlchemyError


class TimelineError(Exception):
    """Base class for timeline errors."""


class InvalidInput(TimelineError):
    """Missing or malformed identifiers, unknown vocabulary values, empty updates."""


class NotFound(TimelineError):
    """Connection or stage absent, or stage not owned by the connection."""


class UnsupportedOperation(TimelineError):
    """Operation deliberately not implemented (e.g. stage deletion)."""


# Persistence errors propagate unchanged from SQLAlchemy
StoreFailure = SQLAlchemyError

__all__ = [
    "TimelineError",
    "InvalidInput",
    "NotFound",
    "UnsupportedOperation",
    "StoreFailure",
]
