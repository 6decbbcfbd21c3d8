from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional

from ..alerts.config import AlertConfigProvider
from ..alerts.model import Alert
from ..alerts.repository import AlertRepository
from ..common.datetime_utils import now_utc
from ..common.validators import require_positive_id
from ..core.constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_MAX_RETRIES,
    REASON_ALREADY_SCHEDULED,
    REASON_NO_ELIGIBLE_RECIPIENTS,
)
from ..core.exceptions import NotFoundError, ValidationError
from ..students.repository import StudentRepository, SubjectRepository
from .model import NewScheduledEmail, ScheduleResult, alert_tag
from .recipients import RecipientFilter, RecipientResolver
from .repository import ScheduledEmailRepository
from .templates import render_alert_email

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Queues at most one email per alert, to recipients who can receive it."""

    def __init__(
        self,
        alerts: AlertRepository,
        emails: ScheduledEmailRepository,
        students: StudentRepository,
        subjects: SubjectRepository,
        resolver: RecipientResolver,
        recipient_filter: RecipientFilter,
        config_provider: AlertConfigProvider,
        *,
        debounce_seconds: int = DEFAULT_DEBOUNCE_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        clock: Callable = now_utc,
    ):
        if int(debounce_seconds) < 0:
            raise ValueError("debounce_seconds cannot be negative")
        self._alerts = alerts
        self._emails = emails
        self._students = students
        self._subjects = subjects
        self._resolver = resolver
        self._filter = recipient_filter
        self._config = config_provider
        self._debounce = timedelta(seconds=int(debounce_seconds))
        self._max_retries = int(max_retries)
        self._clock = clock

    def schedule(self, alert_id: int, *, created_by: Optional[int] = None) -> ScheduleResult:
        alert_id = require_positive_id(alert_id, "alert_id")
        alert = self._alerts.get_by_id(alert_id)
        if not alert:
            raise NotFoundError(f"Alert {alert_id} not found")
        return self.schedule_alert(alert, created_by=created_by)

    def schedule_alert(self, alert: Alert, *, created_by: Optional[int] = None) -> ScheduleResult:
        existing = self._emails.find_by_alert(alert.alert_id)
        if existing is not None:
            logger.debug("Alert %s already has email %s (%s)", alert.alert_id, existing.email_id, existing.status.value)
            return ScheduleResult(queued=existing, reason=REASON_ALREADY_SCHEDULED)

        student = self._students.get_by_id(alert.student_id)
        if not student:
            raise ValidationError(f"Student {alert.student_id} does not exist")
        subject = self._subjects.get_by_id(alert.subject_id) if alert.subject_id is not None else None

        intended = self._resolver.resolve(alert, student, self._config.current())
        outcome = self._filter.filter(intended)
        if not outcome.allowed:
            self._alerts.set_notification_skip_reason(alert.alert_id, REASON_NO_ELIGIBLE_RECIPIENTS)
            logger.info(
                "No email for alert %s: %s intended, %s unsubscribed, %s bounced",
                alert.alert_id,
                len(intended),
                len(outcome.unsubscribed),
                len(outcome.bounced),
            )
            return ScheduleResult(reason=REASON_NO_ELIGIBLE_RECIPIENTS)

        content = render_alert_email(alert, student, subject)
        email, created = self._emails.create_unless_exists(
            NewScheduledEmail(
                to=outcome.allowed,
                subject=content.subject,
                html=content.html,
                text=content.text,
                scheduled_at=self._clock() + self._debounce,
                max_retries=self._max_retries,
                tags=(alert_tag(alert.alert_id),),
                created_by=created_by,
            )
        )
        if not created:
            return ScheduleResult(queued=email, reason=REASON_ALREADY_SCHEDULED)

        logger.info(
            "Queued email %s for alert %s to %s recipient(s) at %s",
            email.email_id,
            alert.alert_id,
            len(email.to),
            email.scheduled_at.isoformat(),
        )
        return ScheduleResult(queued=email)
