# backend/app/schemas/__init__.py
"""
Pydantic schemas for the mentoring platform.
"""

from .availability import (
    AvailabilityCreate,
    AvailabilityEnvelope,
    AvailabilityResponse,
    AvailabilitySlotResponse,
    MentorAvailabilityResponse,
    OneOffSlot,
    RecurringRule,
)
from .base import PaginationMeta, ResponseModel, StandardizedModel
from .session import (
    ParticipantSummary,
    SessionBookRequest,
    SessionCancelRequest,
    SessionEnvelope,
    SessionListResponse,
    SessionResponse,
)

__all__ = [
    "StandardizedModel",
    "ResponseModel",
    "PaginationMeta",
    "AvailabilityCreate",
    "AvailabilityEnvelope",
    "AvailabilityResponse",
    "AvailabilitySlotResponse",
    "MentorAvailabilityResponse",
    "OneOffSlot",
    "RecurringRule",
    "ParticipantSummary",
    "SessionBookRequest",
    "SessionCancelRequest",
    "SessionEnvelope",
    "SessionListResponse",
    "SessionResponse",
]
