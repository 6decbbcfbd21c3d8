from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import now_utc
from ..common.validators import normalize_email
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import BounceType
from ..core.exceptions import NotFoundError
from .model import EmailBounce
from .repository import BounceRepository

logger = logging.getLogger(__name__)


class BounceRegistry:
    def __init__(self, repo: BounceRepository, *, clock: Callable = now_utc):
        self._repo = repo
        self._clock = clock

    def record(
        self,
        emails: Iterable[str],
        bounce_type: BounceType,
        *,
        reason: Optional[str] = None,
        original_email_id: Optional[int] = None,
    ) -> int:
        """Record a bounce for each address; returns how many were recorded."""
        at = self._clock()
        count = 0
        for raw in emails:
            email = normalize_email(raw)
            self._repo.record(
                email, bounce_type=bounce_type, reason=reason, original_email_id=original_email_id, at=at
            )
            count += 1
            logger.warning("Recorded %s bounce for %s (email %s): %s", bounce_type.value, email, original_email_id, reason)
        return count

    def is_hard_bounced(self, email: str) -> bool:
        email = normalize_email(email)
        return email in self._repo.find_hard_bounced([email])

    def hard_bounced_among(self, emails: Iterable[str]) -> set[str]:
        return self._repo.find_hard_bounced(list(emails))

    def check(self, email: str) -> Optional[EmailBounce]:
        return self._repo.get_by_email(normalize_email(email))

    def remove(self, email: str) -> None:
        """Clear an address's bounce history so it can be mailed again."""
        email = normalize_email(email)
        if not self._repo.delete(email):
            raise NotFoundError(f"No bounce recorded for {email}")
        logger.info("Cleared bounce history for %s", email)

    def list_bounces(self, bounce_type: Optional[BounceType] = None, limit: int = DEFAULT_PAGE_LIMIT) -> Sequence[EmailBounce]:
        return self._repo.list_bounces(bounce_type=bounce_type, limit=int(limit))
