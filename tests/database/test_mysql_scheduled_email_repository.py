from __future__ import annotations

from datetime import datetime

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from src.attendance_notifier.attendance_notifier.core.enums import EmailStatus
from src.attendance_notifier.attendance_notifier.notifications.model import NewScheduledEmail
from src.attendance_notifier.attendance_notifier.notifications.mysql_scheduled_email_repository import (
    MySQLScheduledEmailRepository,
)
from tests.database.fake_connection import ScriptedConnectionFactory

NOW = datetime(2024, 3, 15, 8, 1)


def _row(**overrides):
    row = {
        "email_id": 5,
        "to_addresses": '["maria.reyes@example.com"]',
        "subject": "Attendance Alert for Ana Reyes",
        "html": "<p>x</p>",
        "text_body": None,
        "attachments": None,
        "scheduled_at": NOW,
        "status": "pending",
        "sent_at": None,
        "error": None,
        "retry_count": 0,
        "max_retries": 3,
        "tags": b'["alert:9"]',
        "alert_id": 9,
        "created_by": None,
        "claim_token": None,
        "claimed_at": None,
        "created_at": NOW,
    }
    row.update(overrides)
    return row


def test_claim_is_a_conditional_update():
    factory = ScriptedConnectionFactory({"rowcount": 1}, {"rows": [_row(status="in_flight", claim_token="tok")]})
    email = MySQLScheduledEmailRepository(factory).claim(5, claim_token="tok", now=NOW)

    sql, params = factory.executed[0]
    assert sql.startswith("UPDATE scheduled_emails SET status=%s, claim_token=%s, claimed_at=%s")
    assert "WHERE email_id=%s AND status=%s AND scheduled_at <= %s" in sql
    assert params == ("in_flight", "tok", NOW, 5, "pending", NOW)
    assert email.status == EmailStatus.IN_FLIGHT
    assert email.alert_id == 9
    assert factory.conn.commits == 1


def test_lost_claim_returns_none():
    factory = ScriptedConnectionFactory({"rowcount": 0})
    assert MySQLScheduledEmailRepository(factory).claim(5, claim_token="tok", now=NOW) is None
    assert len(factory.executed) == 1


def test_confirm_claim_refreshes_lease_only_for_current_holder():
    factory = ScriptedConnectionFactory({"rowcount": 1}, {"rowcount": 0})
    repo = MySQLScheduledEmailRepository(factory)

    assert repo.confirm_claim(5, claim_token="tok", now=NOW) is True
    assert repo.confirm_claim(5, claim_token="stale", now=NOW) is False

    sql, params = factory.executed[0]
    assert sql == "UPDATE scheduled_emails SET claimed_at=%s WHERE email_id=%s AND status=%s AND claim_token=%s"
    assert params == (NOW, 5, "in_flight", "tok")
    assert factory.executed[1][1] == (NOW, 5, "in_flight", "stale")


def test_resolution_requires_matching_claim_token():
    factory = ScriptedConnectionFactory({"rowcount": 0})
    ok = MySQLScheduledEmailRepository(factory).mark_sent(5, claim_token="stale", sent_at=NOW)

    sql, params = factory.executed[0]
    assert ok is False
    assert "claim_token=NULL, claimed_at=NULL" in sql
    assert sql.endswith("WHERE email_id=%s AND status=%s AND claim_token=%s")
    assert params == ("sent", NOW, 5, "in_flight", "stale")


def test_duplicate_alert_email_returns_existing():
    dup = IntegrityError(msg="Duplicate entry '9' for key 'uq_scheduled_emails_alert'", errno=errorcode.ER_DUP_ENTRY)
    factory = ScriptedConnectionFactory({"raise": dup}, {"rows": [_row()]})
    new = NewScheduledEmail(
        to=("maria.reyes@example.com",),
        subject="Attendance Alert for Ana Reyes",
        html="<p>x</p>",
        scheduled_at=NOW,
        tags=("alert:9",),
    )

    email, created = MySQLScheduledEmailRepository(factory).create_unless_exists(new)

    assert created is False
    assert email.email_id == 5
    assert factory.conn.rollbacks == 1
    assert factory.executed[1][1] == (9,)


def test_other_integrity_errors_propagate():
    err = IntegrityError(msg="Cannot be null", errno=errorcode.ER_BAD_NULL_ERROR)
    factory = ScriptedConnectionFactory({"raise": err})
    new = NewScheduledEmail(to=("a@example.com",), subject="s", html="<p>x</p>", scheduled_at=NOW, tags=("alert:9",))
    with pytest.raises(IntegrityError):
        MySQLScheduledEmailRepository(factory).create_unless_exists(new)


def test_cancel_only_touches_pending():
    factory = ScriptedConnectionFactory({"rowcount": 1})
    assert MySQLScheduledEmailRepository(factory).cancel(5) is True
    sql, params = factory.executed[0]
    assert sql == "UPDATE scheduled_emails SET status=%s WHERE email_id=%s AND status=%s"
    assert params == ("cancelled", 5, "pending")
