from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import require_positive_id
from ..core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, REASON_NOT_PENDING
from ..core.enums import EmailStatus
from ..core.exceptions import NotFoundError
from .model import CancelResult, ScheduledEmail
from .repository import ScheduledEmailRepository

logger = logging.getLogger(__name__)


class EmailQueueService:
    """Operator-facing reads and cancellation for the email queue."""

    def __init__(self, emails: ScheduledEmailRepository):
        self._emails = emails

    def get(self, email_id: int) -> ScheduledEmail:
        email = self._emails.get_by_id(require_positive_id(email_id, "email_id"))
        if not email:
            raise NotFoundError(f"Scheduled email {email_id} not found")
        return email

    def list_emails(
        self, status: Optional[EmailStatus] = None, *, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT
    ) -> Sequence[ScheduledEmail]:
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_LIMIT)
        return self._emails.list_emails(status=status, offset=(page - 1) * limit, limit=limit)

    def cancel(self, email_id: int) -> CancelResult:
        """pending -> cancelled. Anything already claimed or finished is left alone."""
        email = self.get(email_id)
        if self._emails.cancel(email.email_id):
            logger.info("Cancelled scheduled email %s", email.email_id)
            return CancelResult(ok=True, email=self._emails.get_by_id(email.email_id))

        current = self._emails.get_by_id(email.email_id) or email
        logger.warning("Cannot cancel email %s in status %s", email.email_id, current.status.value)
        return CancelResult(ok=False, reason=REASON_NOT_PENDING, email=current)
