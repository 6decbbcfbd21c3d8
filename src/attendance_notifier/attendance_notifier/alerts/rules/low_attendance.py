from __future__ import annotations

from typing import Optional

from ...core.enums import AlertSeverity, AlertType
from ...students.model import Student
from ..metrics import AttendanceMetrics
from ..model import AlertCandidate, AlertConfig, AlertDetails
from .base import AlertRule


class LowAttendanceRule(AlertRule):
    """Attendance rate over the window below T2 percent."""

    alert_type = AlertType.LOW_ATTENDANCE

    def evaluate(self, metrics: AttendanceMetrics, config: AlertConfig, student: Student) -> Optional[AlertCandidate]:
        rate = metrics.attendance_rate
        if rate is None or metrics.total_days < int(config.min_records_for_rate):
            return None

        threshold = float(config.low_attendance_threshold)
        if rate >= threshold:
            return None

        return AlertCandidate(
            type=self.alert_type,
            severity=AlertSeverity.WARNING,
            message=f"{student.full_name}'s attendance rate is {rate:g}% (threshold {threshold:g}%)",
            details=AlertDetails(
                attendance_rate=rate,
                threshold=threshold,
                start_date=metrics.window.start,
                end_date=metrics.window.end,
            ),
        )
