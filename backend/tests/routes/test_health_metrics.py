from __future__ import annotations

from app.core.timezone_utils import isoformat_z


def test_health_reports_database(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert data["service"] == "mentorhub-sessions-api"
    assert data["timestamp"].endswith("Z")


def test_health_lite(client):
    response = client.get("/api/v1/health/lite")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_prometheus_exposes_booking_metrics(client, auth_headers_mentee, test_mentor, slot_start):
    booked = client.post(
        "/api/v1/sessions",
        json={"mentorId": test_mentor.id, "scheduledAt": isoformat_z(slot_start)},
        headers=auth_headers_mentee,
    )
    assert booked.status_code == 201

    response = client.get("/api/v1/metrics/prometheus", params={"refresh": "1"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert 'mentorhub_session_booking_outcomes_total{outcome="created"}' in body
    assert 'mentorhub_booking_lock_operations_total{action="acquire",outcome="success"}' in body
    assert "mentorhub_service_operation_duration_seconds" in body


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "NOT_FOUND"
    assert body["instance"] == "/api/v1/does-not-exist"
