# backend/app/models/session.py
"""
Mentoring session model.

A session is the durable record of a booked slot. Rows are only created by
the booking coordinator after slot capacity has been verified under a
booking reservation; nothing else inserts into this table.

The class is named ``MentoringSession`` so it never shadows SQLAlchemy's
``Session`` in modules that import both.
"""

from datetime import timedelta
from enum import Enum
import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    PENDING = "pending"  # Booked by a mentee, awaiting mentor confirmation
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"  # Frees slot capacity
    COMPLETED = "completed"


# Statuses that occupy slot capacity
ACTIVE_SESSION_STATUSES = [
    SessionStatus.PENDING.value,
    SessionStatus.CONFIRMED.value,
    SessionStatus.RESCHEDULED.value,
    SessionStatus.COMPLETED.value,
]


class MentoringSession(Base):
    """Booked mentoring session between a mentor and a mentee."""

    __tablename__ = "mentoring_sessions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    mentor_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    mentee_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    availability_id = Column(
        String(26), ForeignKey("availabilities.id", ondelete="SET NULL"), nullable=True
    )

    subject = Column(String(200), nullable=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(String(20), nullable=False, default=SessionStatus.PENDING.value, index=True)
    room = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    is_group = Column(Boolean, nullable=False, default=False)
    lock_key = Column(String(128), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    rescheduled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Outcome recorded after the session took place
    attended = Column(Boolean, nullable=True)
    tasks_completed = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # Cancellation tracking
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    mentor = relationship("User", foreign_keys=[mentor_id])
    mentee = relationship("User", foreign_keys=[mentee_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    availability = relationship("Availability")

    __table_args__ = (
        CheckConstraint("duration_minutes >= 0", name="ck_mentoring_sessions_duration"),
        CheckConstraint("capacity >= 1", name="ck_mentoring_sessions_capacity"),
        CheckConstraint(
            "tasks_completed IS NULL OR tasks_completed >= 0",
            name="ck_mentoring_sessions_tasks_completed",
        ),
        Index("idx_mentoring_sessions_mentor_scheduled", "mentor_id", "scheduled_at"),
        Index("idx_mentoring_sessions_mentee_scheduled", "mentee_id", "scheduled_at"),
        Index("idx_mentoring_sessions_mentor_status", "mentor_id", "status"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == SessionStatus.CANCELLED.value

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.mentor_id, self.mentee_id)

    def __repr__(self) -> str:
        return f"<MentoringSession {self.id} mentor={self.mentor_id} at={self.scheduled_at} {self.status}>"


@event.listens_for(MentoringSession, "before_insert")
@event.listens_for(MentoringSession, "before_update")
def _derive_end_at(mapper, connection, target: MentoringSession) -> None:
    if target.scheduled_at is not None and target.duration_minutes is not None:
        target.end_at = target.scheduled_at + timedelta(minutes=int(target.duration_minutes))
