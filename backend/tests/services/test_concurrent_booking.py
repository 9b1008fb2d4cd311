"""
Concurrent booking of one slot from separate database sessions.

Each worker thread gets its own connection to a file-backed SQLite database,
the same way separate API workers share one PostgreSQL instance. Whatever
the interleaving, exactly one booking may win the last seat.
"""

from __future__ import annotations

import threading
from typing import Dict, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from tests.utils.builders import future_slot, recurring_entry

from app.core.enums import AvailabilityType, RoleName
from app.core.exceptions import SlotFullException, SlotLockedException
from app.core.timezone_utils import isoformat_z
from app.database import Base
from app.models.availability import Availability
from app.models.booking_lock import BookingLock
from app.models.session import MentoringSession
from app.models.user import User
from app.services.session_booking_service import SessionBookingService


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'booking.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

    yield factory

    engine.dispose()


def _seed(factory, mentee_count: int, capacity: int):
    slot = future_slot(days_ahead=10, hour=14)
    db = factory()
    try:
        mentor = User(email="mentor@example.com", first_name="Maya", last_name="Mentor", role=RoleName.MENTOR.value)
        mentees = [
            User(
                email=f"mentee{i}@example.com",
                first_name="Mentee",
                last_name=str(i),
                role=RoleName.MENTEE.value,
            )
            for i in range(mentee_count)
        ]
        db.add(mentor)
        db.add_all(mentees)
        db.flush()
        availability = Availability(
            mentor_id=mentor.id,
            type=AvailabilityType.RECURRING.value,
            timezone="UTC",
            recurring=[recurring_entry(slot)],
            capacity=capacity,
        )
        db.add(availability)
        db.commit()
        return mentor, mentees, availability, slot
    finally:
        db.close()


def _race(factory, mentor, mentees, availability, slot, durations=None) -> List[Dict[str, str]]:
    barrier = threading.Barrier(len(mentees))
    outcomes: List[Dict[str, str]] = []
    outcomes_lock = threading.Lock()

    def worker(mentee, duration):
        db = factory()
        try:
            barrier.wait(timeout=10)
            session = SessionBookingService(db).book_session(
                mentee,
                mentor.id,
                isoformat_z(slot),
                duration_minutes=duration,
                availability_ref=availability.id,
            )
            result = {"outcome": "created", "session_id": session.id}
        except (SlotFullException, SlotLockedException) as exc:
            result = {"outcome": exc.code}
        except Exception as exc:  # surfaced through the assertion below
            result = {"outcome": f"unexpected:{type(exc).__name__}:{exc}"}
        finally:
            db.close()
        with outcomes_lock:
            outcomes.append(result)

    durations = durations or [60] * len(mentees)
    threads = [
        threading.Thread(target=worker, args=(mentee, duration))
        for mentee, duration in zip(mentees, durations)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    return outcomes


@pytest.mark.slow
def test_two_mentees_racing_for_last_seat(file_session_factory):
    mentor, mentees, availability, slot = _seed(file_session_factory, mentee_count=2, capacity=1)

    outcomes = _race(file_session_factory, mentor, mentees, availability, slot)

    assert len(outcomes) == 2
    created = [o for o in outcomes if o["outcome"] == "created"]
    rejected = [o for o in outcomes if o["outcome"] in {"SLOT_FULL", "SLOT_LOCKED"}]
    assert len(created) == 1, outcomes
    assert len(rejected) == 1, outcomes

    db = file_session_factory()
    try:
        assert db.query(MentoringSession).filter(MentoringSession.mentor_id == mentor.id).count() == 1
        assert db.query(BookingLock).count() == 0
    finally:
        db.close()


@pytest.mark.slow
def test_group_slot_never_exceeds_capacity_under_contention(file_session_factory):
    mentor, mentees, availability, slot = _seed(file_session_factory, mentee_count=6, capacity=2)

    outcomes = _race(file_session_factory, mentor, mentees, availability, slot)

    assert len(outcomes) == 6
    assert not [o for o in outcomes if o["outcome"].startswith("unexpected")], outcomes
    created = [o for o in outcomes if o["outcome"] == "created"]
    assert 1 <= len(created) <= 2

    db = file_session_factory()
    try:
        booked = db.query(MentoringSession).filter(MentoringSession.mentor_id == mentor.id).count()
        assert booked == len(created)
        assert booked <= 2
    finally:
        db.close()


@pytest.mark.slow
def test_different_durations_at_same_start_share_one_seat(file_session_factory):
    mentor, mentees, availability, slot = _seed(file_session_factory, mentee_count=2, capacity=1)

    outcomes = _race(file_session_factory, mentor, mentees, availability, slot, durations=[60, 30])

    assert len(outcomes) == 2
    assert not [o for o in outcomes if o["outcome"].startswith("unexpected")], outcomes
    assert len([o for o in outcomes if o["outcome"] == "created"]) == 1, outcomes

    db = file_session_factory()
    try:
        assert db.query(MentoringSession).filter(MentoringSession.mentor_id == mentor.id).count() == 1
        assert db.query(BookingLock).count() == 0
    finally:
        db.close()
