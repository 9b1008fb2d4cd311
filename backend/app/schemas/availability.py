# backend/app/schemas/availability.py
"""
Availability schemas for the mentoring platform.

A rule is either recurring (weekday + HH:MM window in a timezone) or one-off
(explicit start/end instants). Only the entries matching the rule type are
stored.
"""

from datetime import datetime
import re
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.constants import MAX_AVAILABILITY_NOTE_LENGTH, MAX_SLOT_CAPACITY, MIN_SLOT_CAPACITY
from ..core.enums import AvailabilityType
from ..core.timezone_utils import ensure_utc, is_valid_timezone
from .base import ResponseModel, StandardizedModel, UTCDateTime

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _optional_timezone(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    v = v.strip()
    if not is_valid_timezone(v):
        raise ValueError(f"Unknown timezone: {v}")
    return v


class RecurringRule(StandardizedModel):
    """Weekly rule. ``day_of_week`` counts from Sunday = 0."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str
    end_time: str
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return _optional_timezone(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        v = v.strip()
        if not _HHMM.match(v):
            raise ValueError("Time must use HH:MM format")
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "RecurringRule":
        if self.end_time == self.start_time:
            raise ValueError("End time must differ from start time")
        return self


class OneOffSlot(StandardizedModel):
    start: datetime
    end: datetime
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return _optional_timezone(v)

    @model_validator(mode="after")
    def validate_window(self) -> "OneOffSlot":
        if ensure_utc(self.end) <= ensure_utc(self.start):
            raise ValueError("End must be after start")
        return self


class AvailabilityCreate(StandardizedModel):
    """Body of POST /availability."""

    type: AvailabilityType = AvailabilityType.RECURRING
    timezone: str = "UTC"
    capacity: int = Field(default=1, ge=MIN_SLOT_CAPACITY, le=MAX_SLOT_CAPACITY)
    note: Optional[str] = Field(default=None, max_length=MAX_AVAILABILITY_NOTE_LENGTH)
    recurring: List[RecurringRule] = Field(default_factory=list)
    one_off: List[OneOffSlot] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        v = (v or "UTC").strip() or "UTC"
        if not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("note")
    @classmethod
    def strip_note(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def validate_entries(self) -> "AvailabilityCreate":
        if self.type == AvailabilityType.RECURRING.value and not self.recurring:
            raise ValueError("Recurring availability requires at least one rule")
        if self.type == AvailabilityType.ONE_OFF.value and not self.one_off:
            raise ValueError("One-off availability requires at least one slot")
        return self


class AvailabilityUpdate(StandardizedModel):
    """
    Body of PATCH /availability/{id}.

    Only fields present in the body change. Replacing the entries of the
    other rule type requires sending ``type`` as well.
    """

    type: Optional[AvailabilityType] = None
    timezone: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=MIN_SLOT_CAPACITY, le=MAX_SLOT_CAPACITY)
    note: Optional[str] = Field(default=None, max_length=MAX_AVAILABILITY_NOTE_LENGTH)
    recurring: Optional[List[RecurringRule]] = None
    one_off: Optional[List[OneOffSlot]] = None
    active: Optional[bool] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        return _optional_timezone(v)

    @field_validator("note")
    @classmethod
    def strip_note(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class AvailabilityResponse(ResponseModel):
    id: str
    mentor_id: str
    type: str
    timezone: str
    capacity: int
    note: Optional[str] = None
    active: bool
    recurring: Optional[List[dict]] = None
    one_off: Optional[List[dict]] = None
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None


class AvailabilitySlotResponse(ResponseModel):
    """One bookable start expanded from a rule, with current usage."""

    slot_id: str
    availability_id: str
    type: str
    start: UTCDateTime
    end: UTCDateTime
    timezone: str
    capacity: int
    booked: int
    remaining: int
    note: Optional[str] = None


class AvailabilityEnvelope(StandardizedModel):
    success: bool = True
    availability: AvailabilityResponse


class MentorAvailabilityResponse(StandardizedModel):
    success: bool = True
    availability: List[AvailabilityResponse]
    slots: List[AvailabilitySlotResponse]
