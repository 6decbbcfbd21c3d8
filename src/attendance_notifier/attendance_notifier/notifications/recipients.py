from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..alerts.model import Alert, AlertConfig
from ..bounces.registry import BounceRegistry
from ..common.validators import normalize_email
from ..core.enums import AlertSeverity, RecipientRole, Role
from ..core.exceptions import ValidationError
from ..students.model import Student
from ..unsubscribes.registry import UnsubscribeRegistry
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)


class RecipientResolver:
    """Intended recipients of an alert email, before opt-out filtering."""

    def __init__(self, users: UserRepository):
        self._users = users

    def resolve(self, alert: Alert, student: Student, config: AlertConfig) -> list[str]:
        candidates: list[Optional[str]] = []
        roles = set(config.email_recipients)
        if RecipientRole.GUARDIAN in roles:
            candidates.append(student.guardian_email)
        if RecipientRole.STUDENT in roles:
            candidates.append(student.email)
        if RecipientRole.ADMIN in roles or (
            alert.severity == AlertSeverity.CRITICAL and config.escalate_critical_to_staff
        ):
            candidates.extend(u.email for u in self._users.list_active_by_role(Role.ADMIN))

        out: list[str] = []
        for raw in candidates:
            if not raw:
                continue
            try:
                email = normalize_email(raw)
            except ValidationError:
                logger.warning("Ignoring malformed recipient %r for alert %s", raw, alert.alert_id)
                continue
            if email not in out:
                out.append(email)
        return out


@dataclass(frozen=True)
class FilterOutcome:
    allowed: tuple[str, ...]
    unsubscribed: tuple[str, ...] = ()
    bounced: tuple[str, ...] = ()


class RecipientFilter:
    """Drops unsubscribed and hard-bounced addresses, keeping input order."""

    def __init__(self, unsubscribes: UnsubscribeRegistry, bounces: BounceRegistry):
        self._unsubscribes = unsubscribes
        self._bounces = bounces

    def filter(self, addresses: Iterable[str]) -> FilterOutcome:
        emails: list[str] = []
        for raw in addresses:
            try:
                email = normalize_email(raw)
            except ValidationError:
                logger.warning("Dropping malformed recipient %r", raw)
                continue
            if email not in emails:
                emails.append(email)
        if not emails:
            return FilterOutcome(allowed=())

        unsubscribed = self._unsubscribes.unsubscribed_among(emails)
        bounced = self._bounces.hard_bounced_among(e for e in emails if e not in unsubscribed)
        return FilterOutcome(
            allowed=tuple(e for e in emails if e not in unsubscribed and e not in bounced),
            unsubscribed=tuple(e for e in emails if e in unsubscribed),
            bounced=tuple(e for e in emails if e in bounced),
        )
