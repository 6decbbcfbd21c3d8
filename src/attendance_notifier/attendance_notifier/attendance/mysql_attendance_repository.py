from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AttendanceRecord, AttendanceWindow
from .repository import AttendanceRepository


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_attendance(
        self,
        student_id: int,
        subject_id: Optional[int],
        window: AttendanceWindow,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["student_id=%s", "attendance_date BETWEEN %s AND %s"]
        params: list[object] = [int(student_id), window.start, window.end]

        if subject_id is not None:
            clauses.append("subject_id=%s")
            params.append(int(subject_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT student_id, subject_id, attendance_date, status
                FROM attendance_records
                WHERE {where}
                ORDER BY attendance_date ASC, attendance_id ASC
                """,
                tuple(params),
            )
            return [
                AttendanceRecord(
                    student_id=int(r["student_id"]),
                    subject_id=r.get("subject_id"),
                    attendance_date=r["attendance_date"],
                    status=AttendanceStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
