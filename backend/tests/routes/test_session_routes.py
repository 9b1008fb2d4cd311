from __future__ import annotations

from datetime import timedelta

from app.core.timezone_utils import isoformat_z, utc_now
from app.models.booking_lock import BookingLock
from app.services.booking_lock_service import BookingLockService

SESSIONS_URL = "/api/v1/sessions"


def _book(client, headers, mentor, start, **extra):
    body = {"mentorId": mentor.id, "scheduledAt": isoformat_z(start), **extra}
    return client.post(SESSIONS_URL, json=body, headers=headers)


def test_book_session_returns_pending_session(
    client, auth_headers_mentee, test_mentee, test_mentor, test_availability, slot_start
):
    response = _book(
        client,
        auth_headers_mentee,
        test_mentor,
        slot_start,
        availabilityRef=test_availability.id,
        subject="Portfolio review",
        durationMinutes=45,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    session = data["session"]
    assert session["status"] == "pending"
    assert session["mentorId"] == test_mentor.id
    assert session["menteeId"] == test_mentee.id
    assert session["scheduledAt"] == isoformat_z(slot_start)
    assert session["endAt"] == isoformat_z(slot_start + timedelta(minutes=45))
    assert session["durationMinutes"] == 45
    assert session["subject"] == "Portfolio review"
    assert session["isGroup"] is False
    assert session["mentor"]["firstName"] == "Maya"


def test_full_slot_returns_409_slot_full(
    client, auth_headers_mentee, auth_headers_mentee_2, test_mentor, test_availability, slot_start
):
    first = _book(client, auth_headers_mentee, test_mentor, slot_start, availabilityRef=test_availability.id)
    assert first.status_code == 201

    second = _book(client, auth_headers_mentee_2, test_mentor, slot_start, availabilityRef=test_availability.id)

    assert second.status_code == 409
    body = second.json()
    assert body["code"] == "SLOT_FULL"
    assert body["error"] == "SLOT_FULL"
    assert body["status"] == 409
    assert body["instance"] == SESSIONS_URL
    assert body["errors"]["capacity"] == 1


def test_held_slot_returns_409_slot_locked_with_retry_after(
    client, db, auth_headers_mentee, test_mentee_2, test_mentor, slot_start
):
    db.add(
        BookingLock(
            key=BookingLockService.build_key(test_mentor.id, slot_start, 60),
            mentor_id=test_mentor.id,
            created_by_id=test_mentee_2.id,
            scheduled_at=slot_start,
            duration_minutes=60,
            session_candidate={},
            expires_at=utc_now() + timedelta(seconds=120),
        )
    )
    db.commit()

    response = _book(client, auth_headers_mentee, test_mentor, slot_start)

    assert response.status_code == 409
    assert response.json()["error"] == "SLOT_LOCKED"
    assert response.headers["retry-after"] == "1"


def test_booking_requires_authentication(client, test_mentor, slot_start):
    response = _book(client, {}, test_mentor, slot_start)

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_booking_rejects_garbage_token(client, test_mentor, slot_start):
    response = _book(client, {"Authorization": "Bearer not-a-jwt"}, test_mentor, slot_start)

    assert response.status_code == 401


def test_mentor_cannot_book(client, auth_headers_mentor_2, test_mentor, slot_start):
    response = _book(client, auth_headers_mentor_2, test_mentor, slot_start)

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_missing_fields_are_validation_errors(client, auth_headers_mentee):
    response = client.post(SESSIONS_URL, json={"subject": "Hi"}, headers=auth_headers_mentee)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"]


def test_unparseable_start_is_invalid_date(client, auth_headers_mentee, test_mentor):
    response = client.post(
        SESSIONS_URL,
        json={"mentorId": test_mentor.id, "scheduledAt": "next tuesday"},
        headers=auth_headers_mentee,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE"


def test_past_start_is_rejected(client, auth_headers_mentee, test_mentor):
    response = _book(client, auth_headers_mentee, test_mentor, utc_now() - timedelta(days=1))

    assert response.status_code == 400
    assert response.json()["code"] == "PAST_DATE_NOT_ALLOWED"


def test_unknown_mentor_is_404(client, auth_headers_mentee, test_mentee_2, slot_start):
    response = _book(client, auth_headers_mentee, test_mentee_2, slot_start)

    assert response.status_code == 404
    assert response.json()["code"] == "MENTOR_NOT_FOUND"


def test_mismatched_slot_is_rejected(client, auth_headers_mentee, test_mentor, test_availability, slot_start):
    response = _book(
        client,
        auth_headers_mentee,
        test_mentor,
        slot_start + timedelta(hours=1),
        availabilityRef=test_availability.id,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "SLOT_OUT_OF_RANGE"


def test_overlap_returns_mentor_conflict(
    client, auth_headers_mentee, auth_headers_mentee_2, test_mentor, slot_start
):
    assert _book(client, auth_headers_mentee, test_mentor, slot_start).status_code == 201

    response = _book(client, auth_headers_mentee_2, test_mentor, slot_start + timedelta(minutes=30))

    assert response.status_code == 409
    assert response.json()["code"] == "MENTOR_CONFLICT"


def test_list_get_confirm_cancel_flow(
    client, auth_headers_mentee, auth_headers_mentee_2, auth_headers_mentor, test_mentor, test_availability, slot_start
):
    created = _book(client, auth_headers_mentee, test_mentor, slot_start, availabilityRef=test_availability.id)
    session_id = created.json()["session"]["id"]

    listing = client.get(SESSIONS_URL, headers=auth_headers_mentee)
    assert listing.status_code == 200
    assert [s["id"] for s in listing.json()["sessions"]] == [session_id]
    assert listing.json()["meta"]["total"] == 1

    mentor_listing = client.get(SESSIONS_URL, params={"status": "pending"}, headers=auth_headers_mentor)
    assert [s["id"] for s in mentor_listing.json()["sessions"]] == [session_id]

    detail = client.get(f"{SESSIONS_URL}/{session_id}", headers=auth_headers_mentor)
    assert detail.status_code == 200
    assert detail.json()["session"]["id"] == session_id

    confirmed = client.post(f"{SESSIONS_URL}/{session_id}/confirm", headers=auth_headers_mentor)
    assert confirmed.status_code == 200
    assert confirmed.json()["session"]["status"] == "confirmed"
    assert confirmed.json()["session"]["confirmedAt"].endswith("Z")

    cancelled = client.post(
        f"{SESSIONS_URL}/{session_id}/cancel",
        json={"reason": "Travelling"},
        headers=auth_headers_mentee,
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["session"]["status"] == "cancelled"
    assert cancelled.json()["session"]["cancellationReason"] == "Travelling"

    # The freed seat can be booked again
    rebooked = _book(client, auth_headers_mentee_2, test_mentor, slot_start, availabilityRef=test_availability.id)
    assert rebooked.status_code == 201


def test_cancel_without_body(client, auth_headers_mentee, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]

    response = client.post(f"{SESSIONS_URL}/{session_id}/cancel", headers=auth_headers_mentee)

    assert response.status_code == 200
    assert response.json()["session"]["cancellationReason"] is None


def test_mentee_cannot_confirm(client, auth_headers_mentee, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]

    response = client.post(f"{SESSIONS_URL}/{session_id}/confirm", headers=auth_headers_mentee)

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_stranger_cannot_view_session(client, auth_headers_mentee, auth_headers_mentee_2, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]

    response = client.get(f"{SESSIONS_URL}/{session_id}", headers=auth_headers_mentee_2)

    assert response.status_code == 403


def test_unknown_session_is_404(client, auth_headers_mentee):
    response = client.get(f"{SESSIONS_URL}/01HZZZZZZZZZZZZZZZZZZZZZZZ", headers=auth_headers_mentee)

    assert response.status_code == 404
    assert response.json()["code"] == "SESSION_NOT_FOUND"


def test_unknown_status_filter_is_400(client, auth_headers_mentee):
    response = client.get(SESSIONS_URL, params={"status": "archived"}, headers=auth_headers_mentee)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATUS"


def test_far_future_start_is_invalid_date(client, auth_headers_mentee, test_mentor):
    response = client.post(
        SESSIONS_URL,
        json={"mentorId": test_mentor.id, "scheduledAt": "9999-12-31T23:30:00Z"},
        headers=auth_headers_mentee,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE"


def test_mentor_reschedules_session(
    client, auth_headers_mentee, auth_headers_mentor, test_mentor, test_availability, slot_start
):
    session_id = _book(
        client, auth_headers_mentee, test_mentor, slot_start, availabilityRef=test_availability.id
    ).json()["session"]["id"]
    next_week = slot_start + timedelta(days=7)

    response = client.post(
        f"{SESSIONS_URL}/{session_id}/reschedule",
        json={"scheduledAt": isoformat_z(next_week), "availabilityRef": test_availability.id},
        headers=auth_headers_mentor,
    )

    assert response.status_code == 200
    session = response.json()["session"]
    assert session["status"] == "rescheduled"
    assert session["scheduledAt"] == isoformat_z(next_week)
    assert session["rescheduledAt"].endswith("Z")


def test_reschedule_into_full_slot_returns_409(
    client, auth_headers_mentee, auth_headers_mentee_2, auth_headers_mentor, test_mentor, slot_start
):
    target = slot_start + timedelta(hours=2)
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]
    assert _book(client, auth_headers_mentee_2, test_mentor, target).status_code == 201

    response = client.post(
        f"{SESSIONS_URL}/{session_id}/reschedule",
        json={"scheduledAt": isoformat_z(target)},
        headers=auth_headers_mentor,
    )

    assert response.status_code == 409
    assert response.json()["code"] == "SLOT_FULL"


def test_mentee_cannot_reschedule(client, auth_headers_mentee, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]

    response = client.post(
        f"{SESSIONS_URL}/{session_id}/reschedule",
        json={"scheduledAt": isoformat_z(slot_start + timedelta(days=7))},
        headers=auth_headers_mentee,
    )

    assert response.status_code == 403


def test_complete_and_revert_session(client, auth_headers_mentee, auth_headers_mentor, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]
    client.post(f"{SESSIONS_URL}/{session_id}/confirm", headers=auth_headers_mentor)

    completed = client.post(
        f"{SESSIONS_URL}/{session_id}/complete",
        json={"tasksCompleted": 2, "notes": " Mock interview "},
        headers=auth_headers_mentor,
    )
    assert completed.status_code == 200
    body = completed.json()["session"]
    assert body["status"] == "completed"
    assert body["attended"] is True
    assert body["tasksCompleted"] == 2
    assert body["notes"] == "Mock interview"

    reverted = client.post(
        f"{SESSIONS_URL}/{session_id}/complete", json={"attended": False}, headers=auth_headers_mentee
    )
    assert reverted.json()["session"]["status"] == "confirmed"
    assert reverted.json()["session"]["completedAt"] is None


def test_complete_rejects_non_boolean_attended(client, auth_headers_mentee, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]

    response = client.post(
        f"{SESSIONS_URL}/{session_id}/complete",
        json={"attended": "yes", "tasksCompleted": -1},
        headers=auth_headers_mentee,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_stranger_cannot_complete(client, auth_headers_mentee, auth_headers_mentee_2, test_mentor, slot_start):
    session_id = _book(client, auth_headers_mentee, test_mentor, slot_start).json()["session"]["id"]

    response = client.post(f"{SESSIONS_URL}/{session_id}/complete", headers=auth_headers_mentee_2)

    assert response.status_code == 403
