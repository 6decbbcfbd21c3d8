from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ...core.enums import AlertType
from ...students.model import Student
from ..metrics import AttendanceMetrics
from ..model import AlertCandidate, AlertConfig


class AlertRule(ABC):
    """Strategy Pattern: encapsulate when one alert type fires."""

    alert_type: AlertType

    @abstractmethod
    def evaluate(self, metrics: AttendanceMetrics, config: AlertConfig, student: Student) -> Optional[AlertCandidate]:
        raise NotImplementedError
