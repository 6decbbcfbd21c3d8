from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one day's presence/absence for a student (optionally per subject)."""

    student_id: int
    attendance_date: date
    status: AttendanceStatus
    subject_id: Optional[int] = None


@dataclass(frozen=True)
class AttendanceWindow:
    """Closed date range [start, end] an evaluation looks at."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError("Window end must be on or after its start")

    @classmethod
    def ending(cls, end: date, *, days: int) -> "AttendanceWindow":
        if int(days) < 1:
            raise ValidationError("Window must span at least one day")
        return cls(start=end - timedelta(days=int(days) - 1), end=end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end
