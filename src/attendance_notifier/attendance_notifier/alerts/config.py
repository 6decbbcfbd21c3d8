from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.validators import require_in_range
from ..core.constants import (
    CONSECUTIVE_THRESHOLD_MAX,
    CONSECUTIVE_THRESHOLD_MIN,
    DEFAULT_CONSECUTIVE_ABSENCE_THRESHOLD,
    DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    DEFAULT_MIN_RECORDS_FOR_RATE,
)
from ..core.enums import RecipientRole
from ..core.exceptions import ValidationError
from .model import AlertConfig
from .repository import AlertConfigRepository

_EDITABLE = {
    "consecutive_absence_threshold",
    "low_attendance_threshold",
    "min_records_for_rate",
    "enable_consecutive_alerts",
    "enable_low_attendance_alerts",
    "email_recipients",
    "escalate_critical_to_staff",
}


def _parse_recipients(values: Any) -> tuple[RecipientRole, ...]:
    if isinstance(values, str):
        values = [v for v in values.split(",") if v.strip()]
    out: list[RecipientRole] = []
    for v in values or []:
        try:
            role = RecipientRole(str(getattr(v, "value", v)).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown email recipient: {v!r}")
        if role not in out:
            out.append(role)
    return tuple(out)


def validate_alert_config(config: AlertConfig) -> AlertConfig:
    """Return a normalized copy, raising ValidationError on out-of-range values."""
    consecutive = require_in_range(
        config.consecutive_absence_threshold,
        "consecutive_absence_threshold",
        CONSECUTIVE_THRESHOLD_MIN,
        CONSECUTIVE_THRESHOLD_MAX,
    )
    if consecutive != int(consecutive):
        raise ValidationError("consecutive_absence_threshold must be a whole number of days")
    rate = require_in_range(config.low_attendance_threshold, "low_attendance_threshold", 0, 100)
    min_records = require_in_range(config.min_records_for_rate, "min_records_for_rate", 1, 366)
    return replace(
        config,
        consecutive_absence_threshold=int(consecutive),
        low_attendance_threshold=float(rate),
        min_records_for_rate=int(min_records),
        enable_consecutive_alerts=bool(config.enable_consecutive_alerts),
        enable_low_attendance_alerts=bool(config.enable_low_attendance_alerts),
        email_recipients=_parse_recipients(config.email_recipients),
        escalate_critical_to_staff=bool(config.escalate_critical_to_staff),
    )


def alert_config_from_settings(settings: Optional[Mapping[str, Any]]) -> AlertConfig:
    """Build the default config from a settings module's ALERT_SETTINGS dict."""
    s = dict(settings or {})
    return validate_alert_config(
        AlertConfig(
            consecutive_absence_threshold=s.get("consecutive_absence_threshold", DEFAULT_CONSECUTIVE_ABSENCE_THRESHOLD),
            low_attendance_threshold=s.get("low_attendance_threshold", DEFAULT_LOW_ATTENDANCE_THRESHOLD),
            min_records_for_rate=s.get("min_records_for_rate", DEFAULT_MIN_RECORDS_FOR_RATE),
            enable_consecutive_alerts=s.get("enable_consecutive_alerts", True),
            enable_low_attendance_alerts=s.get("enable_low_attendance_alerts", True),
            email_recipients=s.get("email_recipients", (RecipientRole.GUARDIAN,)),
            escalate_critical_to_staff=s.get("escalate_critical_to_staff", True),
        )
    )


class AlertConfigProvider:
    """Effective alert config: the persisted row if any, else settings defaults."""

    def __init__(self, repo: AlertConfigRepository, defaults: AlertConfig):
        self._repo = repo
        self._defaults = defaults

    @property
    def defaults(self) -> AlertConfig:
        return self._defaults

    def current(self) -> AlertConfig:
        return self._repo.get() or self._defaults

    def update(self, changes: Mapping[str, Any], *, updated_by: int, at: datetime) -> AlertConfig:
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise ValidationError(f"Unknown config field(s): {', '.join(sorted(unknown))}")
        merged = replace(self.current(), **dict(changes), updated_by=int(updated_by), updated_at=at)
        return self._repo.save(validate_alert_config(merged))
