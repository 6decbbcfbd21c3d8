from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AlertType
from .model import AlertConfig
from .rules.base import AlertRule
from .rules.consecutive_absence import ConsecutiveAbsenceRule
from .rules.low_attendance import LowAttendanceRule


@dataclass
class AlertRuleFactory:
    """Factory Pattern: choose the enabled rules, in priority order."""

    def for_config(self, config: AlertConfig, *, only: Optional[AlertType] = None) -> list[AlertRule]:
        rules: list[AlertRule] = []
        if config.enable_consecutive_alerts:
            rules.append(ConsecutiveAbsenceRule())
        if config.enable_low_attendance_alerts:
            rules.append(LowAttendanceRule())

        if only is not None:
            rules = [r for r in rules if r.alert_type == only]
        return rules
