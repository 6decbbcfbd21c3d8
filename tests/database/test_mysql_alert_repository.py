from __future__ import annotations

from datetime import date, datetime

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import DatabaseError

from src.attendance_notifier.attendance_notifier.alerts.model import AlertDetails, NewAlert
from src.attendance_notifier.attendance_notifier.alerts.mysql_alert_repository import MySQLAlertRepository
from src.attendance_notifier.attendance_notifier.core.enums import AlertSeverity, AlertType
from tests.database.fake_connection import ScriptedConnectionFactory

NOW = datetime(2024, 3, 15, 8, 0)


def _row(**overrides):
    row = {
        "alert_id": 9,
        "type": "consecutive_absence",
        "severity": "warning",
        "student_id": 1,
        "subject_id": None,
        "message": "Ana Reyes has been absent for 3 consecutive days",
        "consecutive_days": 3,
        "attendance_rate": None,
        "threshold": 3,
        "start_date": date(2024, 3, 13),
        "end_date": date(2024, 3, 15),
        "acknowledged": 0,
        "acknowledged_at": None,
        "acknowledged_by": None,
        "notification_sent": 0,
        "notification_sent_at": None,
        "notification_skip_reason": None,
        "created_at": NOW,
    }
    row.update(overrides)
    return row


NEW = NewAlert(
    type=AlertType.CONSECUTIVE_ABSENCE,
    severity=AlertSeverity.WARNING,
    student_id=1,
    message="Ana Reyes has been absent for 3 consecutive days",
    details=AlertDetails(consecutive_days=3, threshold=3.0, start_date=date(2024, 3, 13), end_date=date(2024, 3, 15)),
)


def test_create_locks_overlap_check_then_inserts():
    factory = ScriptedConnectionFactory({"rows": []}, {"lastrowid": 9}, {"rows": [_row()]})
    alert, created = MySQLAlertRepository(factory).create_unless_open_overlap(NEW)

    select_sql, params = factory.executed[0]
    assert select_sql.endswith("FOR UPDATE")
    assert "acknowledged=0" in select_sql
    assert params == (1, "consecutive_absence", date(2024, 3, 15), date(2024, 3, 15), date(2024, 3, 13), date(2024, 3, 13))
    assert factory.executed[1][0].startswith("INSERT INTO alerts")
    assert created is True
    assert alert.alert_id == 9
    assert factory.conn.commits == 1


def test_create_returns_open_overlap_without_insert():
    factory = ScriptedConnectionFactory({"rows": [_row(alert_id=4)]})
    alert, created = MySQLAlertRepository(factory).create_unless_open_overlap(NEW)
    assert (alert.alert_id, created) == (4, False)
    assert len(factory.executed) == 1


def test_create_retries_deadlock():
    deadlock = DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)
    factory = ScriptedConnectionFactory({"raise": deadlock}, {"rows": [_row(alert_id=4)]})
    alert, created = MySQLAlertRepository(factory).create_unless_open_overlap(NEW)
    assert alert.alert_id == 4
    assert factory.conn.rollbacks == 1


def test_create_gives_up_after_repeated_deadlocks():
    deadlock = DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)
    factory = ScriptedConnectionFactory({"raise": deadlock}, {"raise": deadlock}, {"raise": deadlock})
    with pytest.raises(DatabaseError):
        MySQLAlertRepository(factory).create_unless_open_overlap(NEW)
    assert factory.conn.rollbacks == 3


def test_acknowledge_is_conditional_and_reports_change():
    acked = _row(acknowledged=1, acknowledged_at=NOW, acknowledged_by=2)
    factory = ScriptedConnectionFactory({"rowcount": 0}, {"rows": [acked]})
    alert, changed = MySQLAlertRepository(factory).acknowledge(9, user_id=5, at=NOW)

    sql, params = factory.executed[0]
    assert sql.endswith("WHERE alert_id=%s AND acknowledged=0")
    assert params == (NOW, 5, 9)
    assert changed is False
    assert alert.acknowledged_by == 2
