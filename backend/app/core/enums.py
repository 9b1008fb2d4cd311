# backend/app/core/enums.py
"""
Core enums for the mentoring platform.

Role values mirror what the identity service writes into user records.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles a platform user can hold."""

    ADMIN = "admin"
    MENTOR = "mentor"
    MENTEE = "mentee"


class AvailabilityType(str, Enum):
    """How an availability rule describes its bookable slots."""

    RECURRING = "recurring"
    ONE_OFF = "oneoff"
