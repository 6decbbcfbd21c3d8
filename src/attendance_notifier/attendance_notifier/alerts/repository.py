from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AlertType
from .model import Alert, AlertConfig, AlertFilter, AlertSummary, NewAlert


class AlertRepository(Protocol):
    """Repository interface for Alert.

    Note (DIP): the evaluator and services depend on this interface only.
    """

    def create_unless_open_overlap(self, new: NewAlert) -> tuple[Alert, bool]:
        """Insert ``new`` unless an open alert of the same student/type overlaps it.

        Must be atomic with respect to concurrent callers. Returns the created
        alert and True, or the existing open alert and False.
        """
        raise NotImplementedError

    def find_open_overlapping(
        self, student_id: int, alert_type: AlertType, start: Optional[date], end: Optional[date]
    ) -> Optional[Alert]:
        raise NotImplementedError

    def get_by_id(self, alert_id: int) -> Optional[Alert]:
        raise NotImplementedError

    def acknowledge(self, alert_id: int, *, user_id: int, at: datetime) -> tuple[Optional[Alert], bool]:
        """Close an open alert.

        Returns the alert (None if missing) and whether this call closed it; an
        already acknowledged alert comes back unchanged.
        """
        raise NotImplementedError

    def mark_notification_sent(self, alert_id: int, *, at: datetime) -> bool:
        raise NotImplementedError

    def set_notification_skip_reason(self, alert_id: int, reason: str) -> bool:
        raise NotImplementedError

    def list_alerts(self, filters: AlertFilter, *, offset: int, limit: int) -> Sequence[Alert]:
        raise NotImplementedError

    def count_alerts(self, filters: AlertFilter) -> int:
        raise NotImplementedError

    def summary(self) -> AlertSummary:
        raise NotImplementedError

    def list_unnotified(self, *, limit: int) -> Sequence[Alert]:
        """Open alerts with no notification sent, no queued email and no recorded skip reason."""
        raise NotImplementedError


class AlertConfigRepository(Protocol):
    def get(self) -> Optional[AlertConfig]:
        raise NotImplementedError

    def save(self, config: AlertConfig) -> AlertConfig:
        raise NotImplementedError
