from __future__ import annotations

from types import SimpleNamespace

import pytest

from src.attendance_notifier.attendance_notifier.core.enums import AttendanceStatus, BounceType, EmailStatus
from src.attendance_notifier.attendance_notifier.main import create_app
from tests.fakes import GUARDIAN, TODAY, days_ending


@pytest.fixture()
def client(monkeypatch, pipeline):
    monkeypatch.setenv("APP_ENV", "testing")
    container = SimpleNamespace(
        alert_service=pipeline.alert_service,
        email_queue_service=pipeline.email_queue,
        unsubscribe_registry=pipeline.unsubscribes,
        bounce_registry=pipeline.bounces,
    )
    app = create_app(container=container)
    return app.test_client()


def _login(client, user_id=1, role="admin"):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def _alert(pipeline):
    days = days_ending(TODAY, 4)
    pipeline.attendance.mark(1, days[0], AttendanceStatus.PRESENT)
    pipeline.attendance.mark_days(1, days[1:], AttendanceStatus.ABSENT)
    return pipeline.evaluator.evaluate(1).created


def test_alert_routes_require_login(client):
    assert client.get("/api/alerts").status_code == 401
    _login(client, 2, "professor")
    assert client.get("/api/alerts").status_code == 200
    assert client.post("/api/alerts/scan", json={}).status_code == 403


def test_list_alerts_with_names(client, pipeline):
    alert = _alert(pipeline)
    _login(client)

    body = client.get("/api/alerts?studentId=1&acknowledged=false").get_json()
    assert body["total"] == 1
    item = body["items"][0]
    assert item["id"] == str(alert.alert_id)
    assert item["studentName"] == "Ana Reyes"
    assert item["severity"] == "warning"

    assert client.get("/api/alerts?severity=loud").status_code == 400


def test_acknowledge_routes(client, pipeline):
    alert = _alert(pipeline)
    _login(client, 2, "professor")

    res = client.post(f"/api/alerts/{alert.alert_id}/acknowledge")
    assert res.status_code == 200
    assert res.get_json()["acknowledgedBy"] == 2

    assert client.post("/api/alerts/999/acknowledge").status_code == 404
    res = client.post("/api/alerts/acknowledge", json={"alertIds": [alert.alert_id]})
    assert res.get_json() == {"acknowledged": 0}
    assert client.post("/api/alerts/acknowledge", json={"alertIds": "1"}).status_code == 400


def test_summary(client, pipeline):
    _alert(pipeline)
    _login(client)
    body = client.get("/api/alerts/summary").get_json()
    assert body["total"] == 1
    assert body["byType"] == {"consecutive_absence": 1}


def test_scan_route(client, pipeline):
    days = days_ending(TODAY, 4)
    pipeline.attendance.mark(1, days[0], AttendanceStatus.PRESENT)
    pipeline.attendance.mark_days(1, days[1:], AttendanceStatus.ABSENT)
    _login(client)

    res = client.post("/api/alerts/scan", json={"startDate": "2024-03-01", "endDate": "2024-03-15"})
    assert res.status_code == 200
    assert res.get_json()["created"] == 1
    assert client.post("/api/alerts/scan", json={"startDate": "2024-03-01"}).status_code == 400


def test_config_routes(client):
    _login(client, 2, "professor")
    assert client.get("/api/alerts/config").get_json()["lowAttendanceThreshold"] == 80.0
    assert client.put("/api/alerts/config", json={"lowAttendanceThreshold": 70}).status_code == 403

    _login(client)
    res = client.put("/api/alerts/config", json={"lowAttendanceThreshold": 70, "emailRecipients": ["guardian", "admin"]})
    assert res.status_code == 200
    assert res.get_json()["emailRecipients"] == ["guardian", "admin"]
    assert res.get_json()["updatedBy"] == 1
    assert client.put("/api/alerts/config", json={"lowAttendanceThreshold": 101}).status_code == 400
    assert client.put("/api/alerts/config", json={"colour": "red"}).status_code == 400


def test_scheduled_email_routes(client, pipeline):
    _alert(pipeline)
    (email,) = pipeline.emails.all
    _login(client)

    body = client.get("/api/emails/scheduled?status=pending").get_json()
    assert [e["id"] for e in body["items"]] == [str(email.email_id)]
    assert "claimToken" not in body["items"][0]
    assert client.get("/api/emails/scheduled?status=lost").status_code == 400

    res = client.post(f"/api/emails/scheduled/{email.email_id}/cancel")
    assert res.status_code == 200
    assert res.get_json()["email"]["status"] == EmailStatus.CANCELLED.value

    res = client.post(f"/api/emails/scheduled/{email.email_id}/cancel")
    assert res.status_code == 409
    assert res.get_json()["reason"] == "not-pending"
    assert client.post("/api/emails/scheduled/999/cancel").status_code == 404


def test_unsubscribe_flow_is_public(client):
    res = client.post("/api/unsubscribes", json={"email": GUARDIAN.upper(), "reason": "moved"})
    assert res.status_code == 201
    token = res.get_json()["token"]
    assert len(token) == 64

    again = client.post("/api/unsubscribes", json={"email": GUARDIAN})
    assert again.get_json()["token"] == token
    assert client.get(f"/api/unsubscribes/check/{GUARDIAN}").get_json()["unsubscribed"] is True

    res = client.post("/api/unsubscribes/resubscribe", json={"token": token})
    assert res.get_json() == {"status": "resubscribed"}
    assert client.get(f"/api/unsubscribes/check/{GUARDIAN}").get_json()["unsubscribed"] is False

    assert client.post("/api/unsubscribes/resubscribe", json={"token": "bogus"}).status_code == 404
    assert client.post("/api/unsubscribes", json={"email": "nope"}).status_code == 400


def test_bounce_routes_are_admin_only(client, pipeline):
    pipeline.bounces.record([GUARDIAN], BounceType.HARD, reason="550 no such user")

    assert client.get(f"/api/bounces/check/{GUARDIAN}").status_code == 401
    _login(client, 2, "professor")
    assert client.delete(f"/api/bounces/{GUARDIAN}").status_code == 403

    _login(client)
    body = client.get(f"/api/bounces/check/{GUARDIAN}").get_json()
    assert body["hardBounced"] is True
    assert body["bounce"]["bounceCount"] == 1

    assert client.delete(f"/api/bounces/{GUARDIAN}").status_code == 204
    assert client.get(f"/api/bounces/check/{GUARDIAN}").get_json()["bounced"] is False
    assert client.delete(f"/api/bounces/{GUARDIAN}").status_code == 404


def test_unknown_route_keeps_404(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    assert "error" in res.get_json()
