from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    STAFF = "staff"
    PROFESSOR = "professor"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"

    @property
    def attended(self) -> bool:
        return self is not AttendanceStatus.ABSENT


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AlertType(str, Enum):
    CONSECUTIVE_ABSENCE = "consecutive_absence"
    LOW_ATTENDANCE = "low_attendance"
    PATTERN_WARNING = "pattern_warning"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class RecipientRole(str, Enum):
    """Who receives an alert email."""

    GUARDIAN = "guardian"
    STUDENT = "student"
    ADMIN = "admin"


class EmailStatus(str, Enum):
    """ScheduledEmail state machine.

    IN_FLIGHT is the claim marker held while one worker is sending.
    """

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class DeliveryOutcome(str, Enum):
    OK = "ok"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class UnsubscribeStatus(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    RESUBSCRIBED = "resubscribed"


class BounceType(str, Enum):
    HARD = "hard"
    SOFT = "soft"
