from datetime import datetime, timedelta, timezone

import pytest

from app.core.timezone_utils import (
    ensure_utc,
    is_valid_timezone,
    isoformat_z,
    parse_iso_datetime,
    to_zone,
)


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2030, 1, 2, 3, 4, 5)

    assert ensure_utc(naive) == datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    aware = datetime(2030, 1, 2, 5, 0, tzinfo=timezone(timedelta(hours=2)))

    assert ensure_utc(aware).hour == 3
    assert ensure_utc(aware).tzinfo == timezone.utc


def test_isoformat_z_drops_subseconds():
    value = datetime(2030, 6, 1, 12, 30, 45, 987654, tzinfo=timezone.utc)

    assert isoformat_z(value) == "2030-06-01T12:30:45Z"


@pytest.mark.parametrize(
    "raw",
    ["2030-06-01T12:30:00Z", "2030-06-01T12:30:00z", "2030-06-01T14:30:00+02:00", "2030-06-01T12:30:00"],
)
def test_parse_iso_datetime_variants(raw):
    assert parse_iso_datetime(raw) == datetime(2030, 6, 1, 12, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw", ["", "   ", "tomorrow", None, 42])
def test_parse_iso_datetime_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_iso_datetime(raw)


def test_to_zone_falls_back_to_utc():
    value = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    assert to_zone(value, "Not/AZone").utcoffset() == timedelta(0)
    assert to_zone(value, "Asia/Tokyo").hour == 21


def test_is_valid_timezone():
    assert is_valid_timezone("Europe/Berlin")
    assert not is_valid_timezone("Europe/Atlantis")
