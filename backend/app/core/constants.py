"""Application-wide constants for the mentoring platform."""

from __future__ import annotations

import os

BRAND_NAME = "MentorHub"
API_TITLE = f"{BRAND_NAME} Sessions API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Session booking, availability and lifecycle endpoints for the mentoring program."

# Session duration constraints
MIN_SESSION_DURATION = 15  # minutes
MAX_SESSION_DURATION = 240  # minutes (4 hours)
DEFAULT_SESSION_DURATION = 60

DEFAULT_BOOKING_SUBJECT = "Mentoring Session"
DEFAULT_ROOM_PLACEHOLDER = "Virtual meeting link to be shared upon confirmation."

# Text constraints
MAX_SUBJECT_LENGTH = 200
MAX_ROOM_LENGTH = 500
MAX_CANCELLATION_REASON_LENGTH = 500
MAX_AVAILABILITY_NOTE_LENGTH = 500
MAX_SESSION_NOTES_LENGTH = 5000

# Availability constraints
MIN_SLOT_CAPACITY = 1
MAX_SLOT_CAPACITY = 50

# Slot expansion window for availability listings
DEFAULT_AVAILABILITY_WINDOW_DAYS = int(os.getenv("AVAILABILITY_WINDOW_DAYS", "30"))
MAX_AVAILABILITY_WINDOW_DAYS = int(os.getenv("AVAILABILITY_MAX_WINDOW_DAYS", "90"))
MAX_EXPANDED_SLOTS = 500

# Query limits
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Day of week mapping (Sunday => 0)
DAYS_OF_WEEK = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Frontend URLs
DEFAULT_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _split_env(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [origin.strip() for origin in value.split(",") if origin.strip()]


ALLOWED_ORIGINS = (
    _split_env("ALLOWED_ORIGINS") or _split_env("CORS_ALLOW_ORIGINS") or DEFAULT_DEV_ORIGINS
)

# Error messages
ERROR_MENTEE_ONLY = "Only mentees can request sessions."
ERROR_MENTOR_ONLY = "Mentor access required."
ERROR_SESSION_ACCESS = "You do not have access to this session."
