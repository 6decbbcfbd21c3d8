from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import DatabaseError

from ..core.enums import AlertSeverity, AlertType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Alert, AlertDetails, AlertFilter, AlertSummary, NewAlert
from .repository import AlertRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    alert_id, type, severity, student_id, subject_id, message,
    consecutive_days, attendance_rate, threshold, start_date, end_date,
    acknowledged, acknowledged_at, acknowledged_by,
    notification_sent, notification_sent_at, notification_skip_reason, created_at
"""

# Open-range comparison: a NULL bound overlaps everything on that side.
_OVERLAP_SQL = """
    student_id=%s AND type=%s AND acknowledged=0
    AND (start_date IS NULL OR %s IS NULL OR start_date <= %s)
    AND (end_date IS NULL OR %s IS NULL OR end_date >= %s)
"""

_DEADLOCK_ATTEMPTS = 3


def _optional_float(v) -> Optional[float]:
    return float(v) if v is not None else None


def _to_alert(r: dict) -> Alert:
    return Alert(
        alert_id=int(r["alert_id"]),
        type=AlertType(r["type"]),
        severity=AlertSeverity(r["severity"]),
        student_id=int(r["student_id"]),
        subject_id=int(r["subject_id"]) if r.get("subject_id") is not None else None,
        message=r["message"],
        details=AlertDetails(
            consecutive_days=int(r["consecutive_days"]) if r.get("consecutive_days") is not None else None,
            attendance_rate=_optional_float(r.get("attendance_rate")),
            threshold=_optional_float(r.get("threshold")),
            start_date=r.get("start_date"),
            end_date=r.get("end_date"),
        ),
        acknowledged=bool(r["acknowledged"]),
        acknowledged_at=r.get("acknowledged_at"),
        acknowledged_by=int(r["acknowledged_by"]) if r.get("acknowledged_by") is not None else None,
        notification_sent=bool(r["notification_sent"]),
        notification_sent_at=r.get("notification_sent_at"),
        notification_skip_reason=r.get("notification_skip_reason"),
        created_at=r.get("created_at"),
    )


def _overlap_params(student_id: int, alert_type: AlertType, start: Optional[date], end: Optional[date]) -> tuple:
    return (int(student_id), alert_type.value, end, end, start, start)


def _where(filters: AlertFilter) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if filters.type is not None:
        clauses.append("type=%s")
        params.append(filters.type.value)
    if filters.severity is not None:
        clauses.append("severity=%s")
        params.append(filters.severity.value)
    if filters.acknowledged is not None:
        clauses.append("acknowledged=%s")
        params.append(1 if filters.acknowledged else 0)
    if filters.student_id is not None:
        clauses.append("student_id=%s")
        params.append(int(filters.student_id))
    if filters.subject_id is not None:
        clauses.append("subject_id=%s")
        params.append(int(filters.subject_id))
    where = ("WHERE " + " AND ".join(clauses)) if clauses else ""
    return where, params


class MySQLAlertRepository(AlertRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_unless_open_overlap(self, new: NewAlert) -> tuple[Alert, bool]:
        # SELECT ... FOR UPDATE takes next-key locks on idx_alerts_open, so a
        # concurrent evaluator for the same student/type blocks until commit.
        for attempt in range(1, _DEADLOCK_ATTEMPTS + 1):
            try:
                return self._create_unless_open_overlap(new)
            except DatabaseError as e:
                if e.errno != errorcode.ER_LOCK_DEADLOCK or attempt == _DEADLOCK_ATTEMPTS:
                    raise
                logger.warning("Deadlock creating %s alert for student %s, retrying", new.type.value, new.student_id)
        raise AssertionError("unreachable")

    def _create_unless_open_overlap(self, new: NewAlert) -> tuple[Alert, bool]:
        d = new.details
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM alerts WHERE {_OVERLAP_SQL} ORDER BY alert_id ASC LIMIT 1 FOR UPDATE",
                _overlap_params(new.student_id, new.type, d.start_date, d.end_date),
            )
            existing = fetchone(cur)
            if existing:
                return _to_alert(existing), False

            cur.execute(
                """
                INSERT INTO alerts (
                    type, severity, student_id, subject_id, message,
                    consecutive_days, attendance_rate, threshold, start_date, end_date
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    new.type.value,
                    new.severity.value,
                    int(new.student_id),
                    new.subject_id,
                    new.message,
                    d.consecutive_days,
                    d.attendance_rate,
                    d.threshold,
                    d.start_date,
                    d.end_date,
                ),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM alerts WHERE alert_id=%s", (int(cur.lastrowid),))
            return _to_alert(fetchone(cur)), True

    def find_open_overlapping(
        self, student_id: int, alert_type: AlertType, start: Optional[date], end: Optional[date]
    ) -> Optional[Alert]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM alerts WHERE {_OVERLAP_SQL} ORDER BY alert_id ASC LIMIT 1",
                _overlap_params(student_id, alert_type, start, end),
            )
            r = fetchone(cur)
            return _to_alert(r) if r else None

    def get_by_id(self, alert_id: int) -> Optional[Alert]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM alerts WHERE alert_id=%s", (int(alert_id),))
            r = fetchone(cur)
            return _to_alert(r) if r else None

    def acknowledge(self, alert_id: int, *, user_id: int, at: datetime) -> tuple[Optional[Alert], bool]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE alerts
                SET acknowledged=1, acknowledged_at=%s, acknowledged_by=%s
                WHERE alert_id=%s AND acknowledged=0
                """,
                (at, int(user_id), int(alert_id)),
            )
            changed = cur.rowcount == 1
            cur.execute(f"SELECT {_COLUMNS} FROM alerts WHERE alert_id=%s", (int(alert_id),))
            r = fetchone(cur)
            return (_to_alert(r) if r else None), changed

    def mark_notification_sent(self, alert_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE alerts
                SET notification_sent=1, notification_sent_at=%s, notification_skip_reason=NULL
                WHERE alert_id=%s AND notification_sent=0
                """,
                (at, int(alert_id)),
            )
            return cur.rowcount == 1

    def set_notification_skip_reason(self, alert_id: int, reason: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE alerts SET notification_skip_reason=%s WHERE alert_id=%s AND notification_sent=0",
                (reason, int(alert_id)),
            )
            return cur.rowcount == 1

    def list_alerts(self, filters: AlertFilter, *, offset: int, limit: int) -> Sequence[Alert]:
        where, params = _where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM alerts {where} ORDER BY created_at DESC, alert_id DESC LIMIT %s OFFSET %s",
                tuple(params) + (int(limit), int(offset)),
            )
            return [_to_alert(r) for r in fetchall(cur)]

    def count_alerts(self, filters: AlertFilter) -> int:
        where, params = _where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS c FROM alerts {where}", tuple(params))
            r = fetchone(cur)
            return int(r["c"]) if r else 0

    def summary(self) -> AlertSummary:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(severity='critical'), 0) AS critical,
                    COALESCE(SUM(severity='warning'), 0) AS warning,
                    COALESCE(SUM(severity='info'), 0) AS info
                FROM alerts
                WHERE acknowledged=0
                """
            )
            totals = fetchone(cur) or {}
            cur.execute("SELECT type, COUNT(*) AS c FROM alerts WHERE acknowledged=0 GROUP BY type")
            by_type = {r["type"]: int(r["c"]) for r in fetchall(cur)}
        return AlertSummary(
            total=int(totals.get("total") or 0),
            critical=int(totals.get("critical") or 0),
            warning=int(totals.get("warning") or 0),
            info=int(totals.get("info") or 0),
            unacknowledged=int(totals.get("total") or 0),
            by_type=by_type,
        )

    def list_unnotified(self, *, limit: int) -> Sequence[Alert]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM alerts
                WHERE acknowledged=0 AND notification_sent=0 AND notification_skip_reason IS NULL
                  AND NOT EXISTS (SELECT 1 FROM scheduled_emails se WHERE se.alert_id = alerts.alert_id)
                ORDER BY created_at ASC, alert_id ASC
                LIMIT %s
                """,
                (int(limit),),
            )
            return [_to_alert(r) for r in fetchall(cur)]
