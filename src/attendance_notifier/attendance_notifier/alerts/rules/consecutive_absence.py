from __future__ import annotations

from typing import Optional

from ...core.enums import AlertSeverity, AlertType
from ...students.model import Student
from ..metrics import AttendanceMetrics
from ..model import AlertCandidate, AlertConfig, AlertDetails
from .base import AlertRule


class ConsecutiveAbsenceRule(AlertRule):
    """Absence streak of at least T1 days; critical from 2 x T1."""

    alert_type = AlertType.CONSECUTIVE_ABSENCE

    def evaluate(self, metrics: AttendanceMetrics, config: AlertConfig, student: Student) -> Optional[AlertCandidate]:
        threshold = int(config.consecutive_absence_threshold)
        streak = metrics.streak_days
        if streak < threshold:
            return None

        severity = AlertSeverity.CRITICAL if streak >= 2 * threshold else AlertSeverity.WARNING
        return AlertCandidate(
            type=self.alert_type,
            severity=severity,
            message=f"{student.full_name} has been absent for {streak} consecutive days",
            details=AlertDetails(
                consecutive_days=streak,
                threshold=float(threshold),
                start_date=metrics.streak_start,
                end_date=metrics.streak_end,
            ),
        )
