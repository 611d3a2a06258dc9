"""SQLAlchemy 2.0 ORM models for the connection timeline engine.

Covers 3 tables:
  - connections: the outreach relationship (owned by the surrounding app,
                 read-only for the timeline engine)
  - connection_timeline_stages: one row per outreach step
  - connection_settings: per-connection timeline settings
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Vocabularies used in CHECK constraints and by the progression engine
# ---------------------------------------------------------------------------

STAGE_TYPES = ("first_impression", "response", "follow_up")
STAGE_STATUSES = ("waiting", "draft", "sent", "received")

# Stage types whose 'sent' transition starts a response deadline
OUTBOUND_STAGE_TYPES = ("first_impression", "follow_up")

EMAIL_STATUSES = (
    "Not Contacted",
    "First Impression",
    "Follow-up",
    "Response",
    "Meeting Scheduled",
)

DEFAULT_FOLLOW_UP_WAIT_DAYS = 7
MIN_FOLLOW_UP_WAIT_DAYS = 1
MAX_FOLLOW_UP_WAIT_DAYS = 30


def _in_check(column: str, values: tuple) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


class Connection(Base):
    """connections: the person being reached out to."""

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email_status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="Not Contacted"
    )
    last_email_sent_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_email_draft: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_connection_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    stages: Mapped[list["TimelineStage"]] = relationship(
        "TimelineStage", back_populates="connection", order_by="TimelineStage.stage_order"
    )
    timeline_settings: Mapped[Optional["TimelineSettings"]] = relationship(
        "TimelineSettings", back_populates="connection", uselist=False
    )


class TimelineStage(Base):
    """connection_timeline_stages: one step of outreach for a connection."""

    __tablename__ = "connection_timeline_stages"
    __table_args__ = (
        CheckConstraint(_in_check("stage_type", STAGE_TYPES), name="ck_stage_type"),
        CheckConstraint(_in_check("stage_status", STAGE_STATUSES), name="ck_stage_status"),
        CheckConstraint("stage_order >= 1", name="ck_stage_order_positive"),
        UniqueConstraint("connection_id", "stage_order", name="uq_stage_connection_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    connection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("connections.id"), nullable=False
    )
    stage_type: Mapped[str] = mapped_column(Text, nullable=False)
    stage_order: Mapped[int] = mapped_column(Integer, nullable=False)
    stage_status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="waiting"
    )
    draft_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    response_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    response_received_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationship
    connection: Mapped["Connection"] = relationship("Connection", back_populates="stages")

    def __repr__(self) -> str:
        return (
            f"<TimelineStage id={self.id} connection_id={self.connection_id} "
            f"order={self.stage_order} type={self.stage_type} status={self.stage_status}>"
        )


class TimelineSettings(Base):
    """connection_settings: timeline behavior for one connection."""

    __tablename__ = "connection_settings"
    __table_args__ = (
        CheckConstraint(
            f"follow_up_wait_days BETWEEN {MIN_FOLLOW_UP_WAIT_DAYS} AND {MAX_FOLLOW_UP_WAIT_DAYS}",
            name="ck_settings_follow_up_wait_days",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    connection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("connections.id"), nullable=False, unique=True
    )
    follow_up_wait_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_FOLLOW_UP_WAIT_DAYS
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    connection: Mapped["Connection"] = relationship(
        "Connection", back_populates="timeline_settings"
    )
