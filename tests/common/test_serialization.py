from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_notifier.attendance_notifier.alerts.model import Alert, AlertDetails
from src.attendance_notifier.attendance_notifier.common.serialization import to_public
from src.attendance_notifier.attendance_notifier.core.enums import AlertSeverity, AlertType, EmailStatus, UnsubscribeStatus
from src.attendance_notifier.attendance_notifier.notifications.model import ScheduledEmail
from src.attendance_notifier.attendance_notifier.unsubscribes.model import Unsubscribe


def test_alert_is_camel_cased_with_string_ids():
    alert = Alert(
        alert_id=12,
        type=AlertType.CONSECUTIVE_ABSENCE,
        severity=AlertSeverity.WARNING,
        student_id=3,
        subject_id=None,
        message="absent",
        details=AlertDetails(consecutive_days=3, threshold=3.0, start_date=date(2024, 3, 13), end_date=date(2024, 3, 15)),
    )
    out = to_public(alert)

    assert out["id"] == "12"
    assert out["studentId"] == "3"
    assert out["subjectId"] is None
    assert out["type"] == "consecutive_absence"
    assert out["details"]["consecutiveDays"] == 3
    assert out["details"]["startDate"] == "2024-03-13"
    assert "alertId" not in out


def test_claim_fields_never_leak():
    email = ScheduledEmail(
        email_id=1,
        to=("a@example.com",),
        subject="s",
        html="<p>x</p>",
        scheduled_at=datetime(2024, 3, 15, 8, 1),
        status=EmailStatus.IN_FLIGHT,
        claim_token="secret",
        claimed_at=datetime(2024, 3, 15, 8, 1),
    )
    out = to_public(email)
    assert "claimToken" not in out
    assert "claimedAt" not in out
    assert out["scheduledAt"] == "2024-03-15T08:01:00"
    assert out["to"] == ["a@example.com"]


def test_unsubscribe_token_only_when_included():
    record = Unsubscribe(unsubscribe_id=4, email="a@example.com", status=UnsubscribeStatus.UNSUBSCRIBED, token="t")
    assert "token" not in to_public(record)
    assert to_public(record, include=("token",))["token"] == "t"


def test_rejects_non_dataclass():
    with pytest.raises(TypeError):
        to_public({"id": 1})
