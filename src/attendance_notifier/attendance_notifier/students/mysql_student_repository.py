from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import Student, Subject
from .repository import StudentRepository, SubjectRepository

_STUDENT_COLUMNS = """
    student_id, student_number, first_name, last_name,
    email, guardian_name, guardian_email, status
"""


def _to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        student_number=r["student_number"],
        first_name=r["first_name"],
        last_name=r["last_name"],
        email=r.get("email"),
        guardian_name=r.get("guardian_name"),
        guardian_email=r.get("guardian_email"),
        status=StudentStatus(r["status"]),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def get_many(self, student_ids: Sequence[int]) -> dict[int, Student]:
        ids = sorted({int(i) for i in student_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STUDENT_COLUMNS} FROM students WHERE student_id IN ({placeholders(len(ids))})",
                tuple(ids),
            )
            return {s.student_id: s for s in map(_to_student, fetchall(cur))}

    def list_active(self) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STUDENT_COLUMNS} FROM students WHERE status=%s ORDER BY student_id ASC",
                (StudentStatus.ACTIVE.value,),
            )
            return [_to_student(r) for r in fetchall(cur)]


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT subject_id, subject_code, subject_name FROM subjects WHERE subject_id=%s",
                (int(subject_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Subject(subject_id=int(r["subject_id"]), subject_code=r["subject_code"], subject_name=r["subject_name"])

    def get_many(self, subject_ids: Sequence[int]) -> dict[int, Subject]:
        ids = sorted({int(i) for i in subject_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT subject_id, subject_code, subject_name FROM subjects WHERE subject_id IN ({placeholders(len(ids))})",
                tuple(ids),
            )
            return {
                int(r["subject_id"]): Subject(
                    subject_id=int(r["subject_id"]),
                    subject_code=r["subject_code"],
                    subject_name=r["subject_name"],
                )
                for r in fetchall(cur)
            }
