"""Booking reservation table guarding session creation."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

# Constraints whose violation means another request holds the slot
RESERVATION_CONSTRAINTS = ("uq_booking_locks_key", "uq_booking_locks_slot_key")


def slot_key_for(key: str) -> str:
    """``{mentor}:{startZ}`` part of a ``{mentor}:{startZ}:{duration}`` key."""
    return key.rsplit(":", 1)[0]


def _default_slot_key(context) -> str:
    return slot_key_for(context.get_current_parameters()["key"])


class BookingLock(Base):
    """
    Short-lived reservation for one exact slot.

    ``key`` names the mentor, start and duration being booked. ``slot_key``
    drops the duration, so attempts with different durations at the same
    start still collide: capacity is counted per start, and only one
    attempt may be counting it at a time. Of two concurrent inserts that
    share either value only one commits.

    Rows past ``expires_at`` are dead and are removed on the next acquire
    for the same slot or by the background sweeper.
    """

    __tablename__ = "booking_locks"
    __table_args__ = (
        UniqueConstraint("key", name="uq_booking_locks_key"),
        UniqueConstraint("slot_key", name="uq_booking_locks_slot_key"),
        CheckConstraint(
            "duration_minutes >= 15 AND duration_minutes <= 240",
            name="ck_booking_locks_duration",
        ),
        Index("ix_booking_locks_expires_at", "expires_at"),
        Index("ix_booking_locks_mentor_scheduled", "mentor_id", "scheduled_at"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    key = Column(String(128), nullable=False)
    slot_key = Column(String(128), nullable=False, default=_default_slot_key)
    mentor_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_by_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    availability_id = Column(
        String(26), ForeignKey("availabilities.id", ondelete="SET NULL"), nullable=True
    )
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    session_candidate = Column(JSON, nullable=False, default=dict)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    mentor = relationship("User", foreign_keys=[mentor_id])
    created_by = relationship("User", foreign_keys=[created_by_id])

    def __repr__(self) -> str:
        return f"<BookingLock key={self.key} expires_at={self.expires_at}>"
