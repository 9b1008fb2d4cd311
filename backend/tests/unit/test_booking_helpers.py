import math

import pytest

from app.services.session_booking_service import (
    clamp_duration_minutes,
    sanitize_room,
    sanitize_subject,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 60),
        ("", 60),
        ("ninety", 60),
        (math.inf, 60),
        (float("nan"), 60),
        (0, 15),
        (-30, 15),
        (14.6, 15),
        (15, 15),
        (90, 90),
        ("120", 120),
        (240, 240),
        (241, 240),
    ],
)
def test_clamp_duration_minutes(value, expected):
    assert clamp_duration_minutes(value) == expected


def test_sanitize_subject_defaults_blank_values():
    assert sanitize_subject("  System design  ") == "System design"
    assert sanitize_subject("   ") == "Mentoring Session"
    assert sanitize_subject(None) == "Mentoring Session"


def test_sanitize_room_prefers_request_then_rule_note():
    assert sanitize_room(" Room 4 ", "Zoom") == "Room 4"
    assert sanitize_room("", " Zoom ") == "Zoom"
    assert sanitize_room(None, None) == "Virtual meeting link to be shared upon confirmation."
