from __future__ import annotations

from datetime import timedelta
import logging

import pytest

from app.core.enums import RoleName
from app.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.core.timezone_utils import ensure_utc, isoformat_z, utc_now
from app.services.session_booking_service import SessionBookingService
from app.services.session_service import SessionService


@pytest.fixture
def booked_session(db, test_mentee, test_mentor, test_availability, slot_start):
    return SessionBookingService(db).book_session(
        test_mentee, test_mentor.id, isoformat_z(slot_start), availability_ref=test_availability.id
    )


def test_participants_and_admin_can_read(db, booked_session, test_mentee, test_mentor, test_admin):
    service = SessionService(db)

    for user in (test_mentee, test_mentor, test_admin):
        assert service.get_session(user, booked_session.id).id == booked_session.id


def test_strangers_cannot_read(db, booked_session, test_mentee_2):
    with pytest.raises(ForbiddenException):
        SessionService(db).get_session(test_mentee_2, booked_session.id)


def test_unknown_session(db, test_mentee):
    with pytest.raises(NotFoundException) as exc_info:
        SessionService(db).get_session(test_mentee, "01HZZZZZZZZZZZZZZZZZZZZZZZ")

    assert exc_info.value.code == "SESSION_NOT_FOUND"


def test_list_sessions_is_scoped_by_role(db, make_user, test_mentor, test_mentor_2, slot_start):
    booking = SessionBookingService(db)
    mentee_a = make_user(RoleName.MENTEE)
    mentee_b = make_user(RoleName.MENTEE)
    booking.book_session(mentee_a, test_mentor.id, isoformat_z(slot_start))
    booking.book_session(mentee_a, test_mentor_2.id, isoformat_z(slot_start + timedelta(days=1)))
    booking.book_session(mentee_b, test_mentor.id, isoformat_z(slot_start + timedelta(hours=2)))
    service = SessionService(db)

    mentee_sessions, mentee_meta = service.list_sessions(mentee_a)
    mentor_sessions, mentor_meta = service.list_sessions(test_mentor)

    assert mentee_meta["total"] == 2
    assert {s.mentee_id for s in mentee_sessions} == {mentee_a.id}
    assert mentor_meta["total"] == 2
    assert {s.mentor_id for s in mentor_sessions} == {test_mentor.id}
    # Newest start first
    assert ensure_utc(mentor_sessions[0].scheduled_at) > ensure_utc(mentor_sessions[1].scheduled_at)


def test_list_sessions_paginates(db, test_mentee, test_mentor, slot_start):
    booking = SessionBookingService(db)
    for offset in range(3):
        booking.book_session(test_mentee, test_mentor.id, isoformat_z(slot_start + timedelta(hours=2 * offset)))

    sessions, meta = SessionService(db).list_sessions(test_mentee, page=2, limit=2)

    assert meta == {"total": 3, "page": 2, "limit": 2, "total_pages": 2, "count": 1}
    assert len(sessions) == 1


def test_list_sessions_filters_by_status(db, booked_session, test_mentee):
    service = SessionService(db)

    pending, _ = service.list_sessions(test_mentee, status="pending")
    cancelled, _ = service.list_sessions(test_mentee, status="cancelled")

    assert [s.id for s in pending] == [booked_session.id]
    assert cancelled == []


def test_list_sessions_rejects_unknown_status(db, test_mentee):
    with pytest.raises(ValidationException) as exc_info:
        SessionService(db).list_sessions(test_mentee, status="archived")

    assert exc_info.value.code == "INVALID_STATUS"


def test_owning_mentor_confirms(db, booked_session, test_mentor):
    session = SessionService(db).confirm_session(test_mentor, booked_session.id)

    assert session.status == "confirmed"
    assert session.confirmed_at is not None


def test_other_mentor_cannot_confirm(db, booked_session, test_mentor_2, test_mentee):
    service = SessionService(db)

    with pytest.raises(ForbiddenException):
        service.confirm_session(test_mentor_2, booked_session.id)
    with pytest.raises(ForbiddenException):
        service.confirm_session(test_mentee, booked_session.id)


def test_cancelled_session_cannot_be_confirmed(db, booked_session, test_mentee, test_mentor):
    service = SessionService(db)
    service.cancel_session(test_mentee, booked_session.id)

    with pytest.raises(ValidationException) as exc_info:
        service.confirm_session(test_mentor, booked_session.id)

    assert exc_info.value.code == "SESSION_CANCELLED"


def test_cancel_records_who_and_why(db, booked_session, test_mentee):
    session = SessionService(db).cancel_session(test_mentee, booked_session.id, reason="  " + "x" * 600)

    assert session.status == "cancelled"
    assert session.cancelled_by_id == test_mentee.id
    assert session.cancelled_at is not None
    assert session.cancellation_reason == "x" * 500


def test_cancel_twice_is_rejected(db, booked_session, test_mentee):
    service = SessionService(db)
    service.cancel_session(test_mentee, booked_session.id)

    with pytest.raises(ValidationException) as exc_info:
        service.cancel_session(test_mentee, booked_session.id)

    assert exc_info.value.code == "ALREADY_CANCELLED"


def test_stranger_cannot_cancel(db, booked_session, test_mentee_2):
    with pytest.raises(ForbiddenException):
        SessionService(db).cancel_session(test_mentee_2, booked_session.id)


def test_late_mentor_cancellation_is_flagged(db, caplog, test_mentee, test_mentor):
    soon = (utc_now() + timedelta(hours=2)).replace(second=0, microsecond=0)
    session = SessionBookingService(db).book_session(test_mentee, test_mentor.id, isoformat_z(soon))

    with caplog.at_level(logging.WARNING, logger="app.services.session_service"):
        SessionService(db).cancel_session(test_mentor, session.id)

    assert "Mentor cancelled within penalty window" in caplog.text


def test_mentee_marks_session_completed(db, booked_session, test_mentee):
    session = SessionService(db).complete_session(test_mentee, booked_session.id)

    assert session.status == "completed"
    assert session.attended is True
    assert session.completed_at is not None


def test_mentor_records_outcome(db, booked_session, test_mentor):
    session = SessionService(db).complete_session(
        test_mentor, booked_session.id, attended=True, tasks_completed=2.6, notes="  Shipped the CV  "
    )

    assert session.tasks_completed == 3
    assert session.notes == "Shipped the CV"


def test_completing_twice_keeps_first_timestamp(db, booked_session, test_mentee, test_mentor):
    service = SessionService(db)
    first = service.complete_session(test_mentee, booked_session.id).completed_at

    again = service.complete_session(test_mentor, booked_session.id, tasks_completed=1)

    assert again.completed_at == first
    assert again.tasks_completed == 1


def test_not_attended_reverts_completion(db, booked_session, test_mentee):
    service = SessionService(db)
    service.complete_session(test_mentee, booked_session.id)

    session = service.complete_session(test_mentee, booked_session.id, attended=False)

    assert session.attended is False
    assert session.completed_at is None
    assert session.status == "confirmed"


def test_not_attended_leaves_pending_session_pending(db, booked_session, test_mentor):
    session = SessionService(db).complete_session(test_mentor, booked_session.id, attended=False)

    assert session.status == "pending"
    assert session.completed_at is None


def test_only_participants_complete(db, booked_session, test_mentee_2, test_admin):
    service = SessionService(db)

    with pytest.raises(ForbiddenException):
        service.complete_session(test_mentee_2, booked_session.id)
    with pytest.raises(ForbiddenException):
        service.complete_session(test_admin, booked_session.id)


@pytest.mark.parametrize("value", [-1, float("nan")])
def test_negative_task_count_is_rejected(db, booked_session, test_mentee, value):
    with pytest.raises(ValidationException) as exc_info:
        SessionService(db).complete_session(test_mentee, booked_session.id, tasks_completed=value)

    assert exc_info.value.code == "INVALID_TASKS_COMPLETED"


def test_cancelled_session_cannot_be_completed(db, booked_session, test_mentee):
    service = SessionService(db)
    service.cancel_session(test_mentee, booked_session.id)

    with pytest.raises(ValidationException) as exc_info:
        service.complete_session(test_mentee, booked_session.id)

    assert exc_info.value.code == "SESSION_CANCELLED"


def test_completed_session_still_occupies_its_slot(
    db, booked_session, test_mentee, test_mentee_2, test_mentor, test_availability, slot_start
):
    from app.core.exceptions import SlotFullException

    SessionService(db).complete_session(test_mentee, booked_session.id)

    with pytest.raises(SlotFullException):
        SessionBookingService(db).book_session(
            test_mentee_2, test_mentor.id, isoformat_z(slot_start), availability_ref=test_availability.id
        )
