from __future__ import annotations

import logging
from typing import Callable, Optional

from ..attendance.model import AttendanceWindow
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_utc
from ..common.validators import require_positive_id
from ..core.constants import (
    DEFAULT_EVALUATION_WINDOW_DAYS,
    SKIP_DISABLED,
    SKIP_DUPLICATE,
    SKIP_NO_ATTENDANCE,
    SKIP_NOT_TRIGGERED,
)
from ..core.enums import AlertType
from ..core.exceptions import ValidationError
from ..students.repository import StudentRepository, SubjectRepository
from .config import AlertConfigProvider
from .factory import AlertRuleFactory
from .metrics import compute_metrics
from .model import Alert, EvaluationResult, NewAlert
from .repository import AlertRepository

logger = logging.getLogger(__name__)


class AlertEvaluator:
    """Turns attendance history into at most one new Alert per call.

    Rules run in priority order (consecutive absence, then low attendance).
    The first candidate that does not overlap an open alert of its type is
    created and handed to the notification scheduler. A call reports a
    duplicate only when every rule that fired overlaps an open alert; the
    first such alert is returned. Pass ``alert_type`` to evaluate a single rule.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        subjects: SubjectRepository,
        alerts: AlertRepository,
        config_provider: AlertConfigProvider,
        *,
        on_created: Optional[Callable[[Alert], object]] = None,
        rule_factory: Optional[AlertRuleFactory] = None,
        window_days: int = DEFAULT_EVALUATION_WINDOW_DAYS,
        clock: Callable = now_utc,
    ):
        self._attendance = attendance
        self._students = students
        self._subjects = subjects
        self._alerts = alerts
        self._config = config_provider
        self._on_created = on_created
        self._rules = rule_factory or AlertRuleFactory()
        self._window_days = int(window_days)
        self._clock = clock

    def default_window(self) -> AttendanceWindow:
        return AttendanceWindow.ending(self._clock().date(), days=self._window_days)

    def evaluate(
        self,
        student_id: int,
        subject_id: Optional[int] = None,
        window: Optional[AttendanceWindow] = None,
        *,
        alert_type: Optional[AlertType] = None,
    ) -> EvaluationResult:
        student_id = require_positive_id(student_id, "student_id")
        student = self._students.get_by_id(student_id)
        if not student:
            raise ValidationError(f"Student {student_id} does not exist")
        if subject_id is not None:
            subject_id = require_positive_id(subject_id, "subject_id")
            if not self._subjects.get_by_id(subject_id):
                raise ValidationError(f"Subject {subject_id} does not exist")

        window = window or self.default_window()
        config = self._config.current()
        rules = self._rules.for_config(config, only=alert_type)
        if not rules:
            return EvaluationResult(skipped=SKIP_DISABLED)

        records = self._attendance.get_attendance(student_id, subject_id, window)
        if not records:
            logger.debug("No attendance for student %s in %s..%s", student_id, window.start, window.end)
            return EvaluationResult(skipped=SKIP_NO_ATTENDANCE)

        metrics = compute_metrics(records, window)
        existing = None
        for rule in rules:
            candidate = rule.evaluate(metrics, config, student)
            if candidate is None:
                continue
            alert, created = self._alerts.create_unless_open_overlap(
                NewAlert(
                    type=candidate.type,
                    severity=candidate.severity,
                    student_id=student_id,
                    subject_id=subject_id,
                    message=candidate.message,
                    details=candidate.details,
                )
            )
            if not created:
                logger.info(
                    "Skipping %s alert for student %s: open alert %s overlaps",
                    candidate.type.value,
                    student_id,
                    alert.alert_id,
                )
                existing = existing or alert
                continue

            logger.info(
                "Created %s %s alert %s for student %s",
                alert.severity.value,
                alert.type.value,
                alert.alert_id,
                student_id,
            )
            return EvaluationResult(created=alert, schedule=self._notify(alert))

        if existing is None:
            return EvaluationResult(skipped=SKIP_NOT_TRIGGERED)
        return EvaluationResult(skipped=SKIP_DUPLICATE, existing=existing)

    def _notify(self, alert: Alert):
        if self._on_created is None:
            return None
        try:
            return self._on_created(alert)
        except Exception:
            # The alert stays notification_sent=0 and is picked up by
            # AlertService.reschedule_unnotified.
            logger.exception("Scheduling notification for alert %s failed", alert.alert_id)
            return None
