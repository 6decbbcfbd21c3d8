from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord, AttendanceWindow


@dataclass(frozen=True)
class DailyAttendance:
    day: date
    attended: bool


@dataclass(frozen=True)
class AttendanceMetrics:
    window: AttendanceWindow
    total_days: int
    attended_days: int
    streak_days: int
    streak_start: Optional[date]
    streak_end: Optional[date]

    @property
    def attendance_rate(self) -> Optional[float]:
        """Percentage of recorded days attended, or None with no data."""
        if self.total_days == 0:
            return None
        return round(self.attended_days * 100.0 / self.total_days, 2)


def collapse_daily(records: Iterable[AttendanceRecord], window: AttendanceWindow) -> list[DailyAttendance]:
    """One entry per recorded day inside the window, ascending.

    A day counts as attended when any record that day is present/late/excused
    (a student marked absent in one subject but present in another attended).
    """
    by_day: dict[date, bool] = {}
    for r in records:
        if not window.contains(r.attendance_date):
            continue
        by_day[r.attendance_date] = by_day.get(r.attendance_date, False) or r.status.attended
    return [DailyAttendance(day=d, attended=by_day[d]) for d in sorted(by_day)]


def absence_streak(days: Sequence[DailyAttendance]) -> tuple[int, Optional[date], Optional[date]]:
    """Consecutive absent recorded days ending at the latest recorded day.

    Days without any record (weekends, holidays) do not break a streak.
    """
    count = 0
    start: Optional[date] = None
    end: Optional[date] = None
    for d in reversed(days):
        if d.attended:
            break
        count += 1
        if end is None:
            end = d.day
        start = d.day
    return count, start, end


def compute_metrics(records: Iterable[AttendanceRecord], window: AttendanceWindow) -> AttendanceMetrics:
    days = collapse_daily(records, window)
    streak, start, end = absence_streak(days)
    return AttendanceMetrics(
        window=window,
        total_days=len(days),
        attended_days=sum(1 for d in days if d.attended),
        streak_days=streak,
        streak_start=start,
        streak_end=end,
    )
