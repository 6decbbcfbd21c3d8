from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.constants import MAX_ALERT_MESSAGE_LENGTH
from ..core.enums import AlertSeverity, AlertType, RecipientRole
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class AlertDetails:
    """Metrics behind an alert; which fields are set depends on the alert type."""

    consecutive_days: Optional[int] = None
    attendance_rate: Optional[float] = None
    threshold: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class AlertCandidate:
    """What a rule decided should be raised, before persistence."""

    type: AlertType
    severity: AlertSeverity
    message: str
    details: AlertDetails


@dataclass(frozen=True)
class NewAlert:
    type: AlertType
    severity: AlertSeverity
    student_id: int
    message: str
    details: AlertDetails
    subject_id: Optional[int] = None

    def __post_init__(self):
        if not self.message or not self.message.strip():
            raise ValidationError("Alert message is required")
        if len(self.message) > MAX_ALERT_MESSAGE_LENGTH:
            raise ValidationError(f"Alert message cannot exceed {MAX_ALERT_MESSAGE_LENGTH} characters")


@dataclass(frozen=True)
class Alert:
    """Domain entity: a detected attendance anomaly.

    Alerts are never deleted; acknowledgement closes them (audit trail).
    """

    alert_id: int
    type: AlertType
    severity: AlertSeverity
    student_id: int
    message: str
    details: AlertDetails = field(default_factory=AlertDetails)
    subject_id: Optional[int] = None
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[int] = None
    notification_sent: bool = False
    notification_sent_at: Optional[datetime] = None
    notification_skip_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        ack_fields = (self.acknowledged_at is not None, self.acknowledged_by is not None)
        if self.acknowledged and not all(ack_fields):
            raise ValueError(f"Alert {self.alert_id}: acknowledged without timestamp/actor")
        if not self.acknowledged and any(ack_fields):
            raise ValueError(f"Alert {self.alert_id}: acknowledgement fields set on an open alert")


@dataclass(frozen=True)
class AlertConfig:
    """Effective thresholds and routing for alert evaluation."""

    consecutive_absence_threshold: int
    low_attendance_threshold: float
    min_records_for_rate: int
    enable_consecutive_alerts: bool = True
    enable_low_attendance_alerts: bool = True
    email_recipients: tuple[RecipientRole, ...] = (RecipientRole.GUARDIAN,)
    escalate_critical_to_staff: bool = True
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AlertFilter:
    type: Optional[AlertType] = None
    severity: Optional[AlertSeverity] = None
    acknowledged: Optional[bool] = None
    student_id: Optional[int] = None
    subject_id: Optional[int] = None


@dataclass(frozen=True)
class AlertSummary:
    total: int
    critical: int
    warning: int
    info: int
    unacknowledged: int
    by_type: dict[str, int]


@dataclass(frozen=True)
class AlertView:
    """An alert with its references explicitly resolved for display."""

    alert: Alert
    student_name: Optional[str] = None
    student_number: Optional[str] = None
    subject_name: Optional[str] = None
    acknowledged_by_name: Optional[str] = None


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one evaluation call.

    Exactly one of ``created``/``skipped`` is set. ``existing`` carries the open
    alert that made this call a duplicate.
    """

    created: Optional[Alert] = None
    skipped: Optional[str] = None
    existing: Optional[Alert] = None
    schedule: Optional[object] = None


@dataclass
class ScanReport:
    students: int = 0
    evaluations: int = 0
    created: int = 0
    duplicates: int = 0
    not_triggered: int = 0
    errors: int = 0
