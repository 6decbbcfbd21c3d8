from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceWindow
from ..common.datetime_utils import now_utc
from ..common.validators import require_positive_id
from ..core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, SKIP_DUPLICATE, SKIP_NOT_TRIGGERED
from ..core.enums import AlertType, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..students.repository import StudentRepository, SubjectRepository
from ..users.repository import UserRepository
from .config import AlertConfigProvider
from .evaluator import AlertEvaluator
from .model import Alert, AlertConfig, AlertFilter, AlertSummary, AlertView, ScanReport
from .repository import AlertRepository

logger = logging.getLogger(__name__)


class AlertService:
    def __init__(
        self,
        alerts: AlertRepository,
        evaluator: AlertEvaluator,
        config_provider: AlertConfigProvider,
        students: StudentRepository,
        subjects: SubjectRepository,
        users: UserRepository,
        *,
        reschedule: Optional[Callable[[Alert], object]] = None,
        clock: Callable = now_utc,
    ):
        self._alerts = alerts
        self._evaluator = evaluator
        self._config = config_provider
        self._students = students
        self._subjects = subjects
        self._users = users
        self._reschedule = reschedule
        self._clock = clock

    # ---- acknowledgement ----
    def acknowledge(self, alert_id: int, *, user_id: int) -> Alert:
        """Close an alert. Idempotent: the first acknowledger is kept."""
        alert_id = require_positive_id(alert_id, "alert_id")
        user_id = require_positive_id(user_id, "user_id")
        if not self._users.get_by_id(user_id):
            raise ValidationError(f"User {user_id} does not exist")

        alert, changed = self._alerts.acknowledge(alert_id, user_id=user_id, at=self._clock())
        if not alert:
            raise NotFoundError(f"Alert {alert_id} not found")
        if not changed:
            logger.info("Alert %s was already acknowledged by user %s", alert_id, alert.acknowledged_by)
        return alert

    def acknowledge_many(self, alert_ids: Iterable[int], *, user_id: int) -> int:
        """Acknowledge each alert; returns how many this call closed."""
        user_id = require_positive_id(user_id, "user_id")
        ids = [require_positive_id(a, "alert_id") for a in alert_ids or []]
        if not ids:
            raise ValidationError("alert_ids must not be empty")
        if not self._users.get_by_id(user_id):
            raise ValidationError(f"User {user_id} does not exist")

        at = self._clock()
        closed = 0
        for alert_id in dict.fromkeys(ids):
            _, changed = self._alerts.acknowledge(alert_id, user_id=user_id, at=at)
            if changed:
                closed += 1
        return closed

    # ---- reads ----
    def get(self, alert_id: int) -> Alert:
        alert = self._alerts.get_by_id(require_positive_id(alert_id, "alert_id"))
        if not alert:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    def list_alerts(
        self,
        filters: Optional[AlertFilter] = None,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        populate: bool = False,
    ) -> tuple[list, int]:
        """Newest first. With ``populate`` the items are AlertViews."""
        filters = filters or AlertFilter()
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_LIMIT)
        items = list(self._alerts.list_alerts(filters, offset=(page - 1) * limit, limit=limit))
        total = self._alerts.count_alerts(filters)
        if populate:
            return self.populate(items), total
        return items, total

    def populate(self, alerts: Sequence[Alert]) -> list[AlertView]:
        """Resolve student/subject/acknowledger names with one lookup per type."""
        students = self._students.get_many([a.student_id for a in alerts])
        subjects = self._subjects.get_many([a.subject_id for a in alerts if a.subject_id is not None])
        users = self._users.get_many([a.acknowledged_by for a in alerts if a.acknowledged_by is not None])

        views: list[AlertView] = []
        for a in alerts:
            student = students.get(a.student_id)
            subject = subjects.get(a.subject_id) if a.subject_id is not None else None
            acked_by = users.get(a.acknowledged_by) if a.acknowledged_by is not None else None
            views.append(
                AlertView(
                    alert=a,
                    student_name=student.full_name if student else None,
                    student_number=student.student_number if student else None,
                    subject_name=subject.subject_name if subject else None,
                    acknowledged_by_name=acked_by.name if acked_by else None,
                )
            )
        return views

    def summary(self) -> AlertSummary:
        return self._alerts.summary()

    # ---- configuration ----
    def get_config(self) -> AlertConfig:
        return self._config.current()

    def update_config(self, *, current_role: Role, user_id: int, changes: Mapping[str, Any]) -> AlertConfig:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can change alert settings")
        config = self._config.update(changes, updated_by=require_positive_id(user_id, "user_id"), at=self._clock())
        logger.info("Alert config updated by user %s", user_id)
        return config

    # ---- batch passes ----
    def scan(self, window: Optional[AttendanceWindow] = None) -> ScanReport:
        """Evaluate every active student once per enabled alert type."""
        window = window or self._evaluator.default_window()
        config = self._config.current()
        types = [
            t
            for t, enabled in (
                (AlertType.CONSECUTIVE_ABSENCE, config.enable_consecutive_alerts),
                (AlertType.LOW_ATTENDANCE, config.enable_low_attendance_alerts),
            )
            if enabled
        ]

        report = ScanReport()
        for student in self._students.list_active():
            report.students += 1
            for alert_type in types:
                report.evaluations += 1
                try:
                    result = self._evaluator.evaluate(student.student_id, None, window, alert_type=alert_type)
                except Exception:
                    report.errors += 1
                    logger.exception("Evaluating %s for student %s failed", alert_type.value, student.student_id)
                    continue
                if result.created is not None:
                    report.created += 1
                elif result.skipped == SKIP_DUPLICATE:
                    report.duplicates += 1
                elif result.skipped == SKIP_NOT_TRIGGERED:
                    report.not_triggered += 1

        logger.info(
            "Scan %s..%s: %s students, %s created, %s duplicates, %s errors",
            window.start,
            window.end,
            report.students,
            report.created,
            report.duplicates,
            report.errors,
        )
        return report

    def reschedule_unnotified(self, limit: int = 100) -> int:
        """Hand alerts whose scheduling never happened back to the scheduler."""
        if self._reschedule is None:
            return 0
        handed = 0
        for alert in self._alerts.list_unnotified(limit=int(limit)):
            try:
                self._reschedule(alert)
                handed += 1
            except Exception:
                logger.exception("Rescheduling notification for alert %s failed", alert.alert_id)
        return handed
