from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Student:
    """Domain entity: a student whose attendance is monitored.

    Plain data object: no DB access code lives here.
    """

    student_id: int
    student_number: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    guardian_name: Optional[str] = None
    guardian_email: Optional[str] = None
    status: StudentStatus = StudentStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE


@dataclass(frozen=True)
class Subject:
    subject_id: int
    subject_code: str
    subject_name: str
