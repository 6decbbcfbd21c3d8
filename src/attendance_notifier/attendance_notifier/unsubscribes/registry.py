from __future__ import annotations

import logging
import secrets
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import now_utc
from ..common.validators import normalize_email, require_max_length, require_non_empty
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import UnsubscribeStatus
from ..core.exceptions import NotFoundError
from .model import Unsubscribe
from .repository import UnsubscribeRepository

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500


def generate_unsubscribe_token() -> str:
    """64 hex chars (32 random bytes)."""
    return secrets.token_hex(32)


class UnsubscribeRegistry:
    """Per-address opt-out list consulted before any email is queued or sent."""

    def __init__(
        self,
        repo: UnsubscribeRepository,
        *,
        token_factory: Callable[[], str] = generate_unsubscribe_token,
        clock: Callable = now_utc,
    ):
        self._repo = repo
        self._token_factory = token_factory
        self._clock = clock

    def unsubscribe(self, email: str, reason: Optional[str] = None) -> str:
        """Opt an address out and return its (stable) token."""
        email = normalize_email(email)
        reason = require_max_length((reason or "").strip() or None, "reason", MAX_REASON_LENGTH)

        existing = self._repo.get_by_email(email)
        if existing is None:
            record = self._repo.create(email, token=self._token_factory(), reason=reason)
            logger.info("Unsubscribed %s", email)
        elif existing.is_active:
            return existing.token
        else:
            record = self._repo.mark_unsubscribed(email, reason=reason) or existing
            logger.info("Unsubscribed %s again", email)
        return record.token

    def resubscribe(self, token: str) -> UnsubscribeStatus:
        token = require_non_empty(token, "token")
        record = self._repo.mark_resubscribed(token, at=self._clock())
        if not record:
            raise NotFoundError("Unknown unsubscribe token")
        logger.info("Resubscribed %s", record.email)
        return record.status

    def is_unsubscribed(self, email: str) -> bool:
        email = normalize_email(email)
        return email in self._repo.find_unsubscribed([email])

    def unsubscribed_among(self, emails: Iterable[str]) -> set[str]:
        return self._repo.find_unsubscribed(list(emails))

    def list_unsubscribed(self, limit: int = DEFAULT_PAGE_LIMIT) -> Sequence[Unsubscribe]:
        return self._repo.list_unsubscribed(limit=int(limit))
