# backend/app/models/availability.py
"""
Availability models for the mentoring platform.

An availability rule describes which start times a mentor offers and how many
mentees may book each of them. Rules are either recurring (weekday + HH:MM in a
timezone) or one-off (explicit start/end instants).

Recurring entries are stored as JSON objects:
    {"day_of_week": 2, "start_time": "15:00", "end_time": "16:00", "timezone": "UTC"}

One-off entries are stored as JSON objects with ISO-8601 UTC instants:
    {"start": "2025-12-01T14:00:00Z", "end": "2025-12-01T15:00:00Z", "timezone": "UTC"}

Classes:
    Availability: A mentor's bookable rule with slot capacity
"""

import logging

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import AvailabilityType
from ..database import Base

logger = logging.getLogger(__name__)


class Availability(Base):
    """Mentor availability rule."""

    __tablename__ = "availabilities"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    mentor_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(20), nullable=False, default=AvailabilityType.RECURRING.value)
    timezone = Column(String(64), nullable=False, default="UTC")
    recurring = Column(JSON, nullable=True)
    one_off = Column(JSON, nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    note = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    mentor = relationship("User", foreign_keys=[mentor_id])

    __table_args__ = (Index("idx_availabilities_mentor_active", "mentor_id", "active"),)

    @property
    def is_recurring(self) -> bool:
        return self.type == AvailabilityType.RECURRING.value

    def __repr__(self) -> str:
        return f"<Availability {self.id} mentor={self.mentor_id} type={self.type} cap={self.capacity}>"
