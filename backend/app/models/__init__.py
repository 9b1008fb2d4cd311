"""
Database models for the mentoring platform.

This module exports all SQLAlchemy models used in the application:
- User accounts (provisioned externally)
- Mentor availability rules
- Mentoring sessions
- Booking reservations guarding session creation
"""

from .availability import Availability
from .booking_lock import BookingLock
from .session import ACTIVE_SESSION_STATUSES, MentoringSession, SessionStatus
from .user import User

__all__ = [
    # User models
    "User",
    # Availability
    "Availability",
    # Sessions
    "MentoringSession",
    "SessionStatus",
    "ACTIVE_SESSION_STATUSES",
    # Booking coordination
    "BookingLock",
]
