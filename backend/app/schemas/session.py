# backend/app/schemas/session.py
"""
Mentoring session schemas.

``SessionBookRequest`` is the body of POST /sessions. ``scheduled_at`` is kept
as a raw string so an unparseable date surfaces as ``INVALID_DATE`` from the
booking service rather than a generic validation error.
"""

from typing import List, Optional

from pydantic import Field, StrictBool

from ..core.constants import MAX_ROOM_LENGTH, MAX_SESSION_NOTES_LENGTH, MAX_SUBJECT_LENGTH
from .base import PaginationMeta, ResponseModel, StandardizedModel, UTCDateTime


class SessionBookRequest(StandardizedModel):
    mentor_id: str = Field(..., min_length=1)
    scheduled_at: str = Field(..., min_length=1, description="ISO-8601 start instant")
    duration_minutes: Optional[int] = None
    subject: Optional[str] = Field(default=None, max_length=MAX_SUBJECT_LENGTH)
    availability_ref: Optional[str] = None
    room: Optional[str] = Field(default=None, max_length=MAX_ROOM_LENGTH)


class SessionCancelRequest(StandardizedModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class SessionRescheduleRequest(StandardizedModel):
    """Body of POST /sessions/{id}/reschedule. The duration defaults to the current one."""

    scheduled_at: str = Field(..., min_length=1, description="ISO-8601 start instant")
    duration_minutes: Optional[int] = None
    availability_ref: Optional[str] = None


class SessionCompleteRequest(StandardizedModel):
    attended: Optional[StrictBool] = None
    tasks_completed: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=MAX_SESSION_NOTES_LENGTH)


class ParticipantSummary(ResponseModel):
    id: str
    first_name: str
    last_name: str
    role: str


class SessionResponse(ResponseModel):
    id: str
    mentor_id: str
    mentee_id: Optional[str] = None
    availability_id: Optional[str] = None
    subject: str
    scheduled_at: UTCDateTime
    end_at: UTCDateTime
    duration_minutes: int
    status: str
    room: Optional[str] = None
    capacity: int
    is_group: bool
    mentor: Optional[ParticipantSummary] = None
    mentee: Optional[ParticipantSummary] = None
    created_at: Optional[UTCDateTime] = None
    confirmed_at: Optional[UTCDateTime] = None
    rescheduled_at: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    cancelled_at: Optional[UTCDateTime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    attended: Optional[bool] = None
    tasks_completed: Optional[int] = None
    notes: Optional[str] = None


class SessionEnvelope(StandardizedModel):
    success: bool = True
    session: SessionResponse


class SessionListResponse(StandardizedModel):
    success: bool = True
    sessions: List[SessionResponse]
    meta: PaginationMeta
