from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EmailStatus
from .model import NewScheduledEmail, ScheduledEmail


class ScheduledEmailRepository(Protocol):
    """Durable email queue.

    Every state change after creation is conditional: claim only succeeds on a
    due pending row, and resolutions only apply while the caller's claim token
    is still the one on the row.
    """

    def create_unless_exists(self, new: NewScheduledEmail) -> tuple[ScheduledEmail, bool]:
        """Insert, or return the existing email for the same originating alert."""
        raise NotImplementedError

    def get_by_id(self, email_id: int) -> Optional[ScheduledEmail]:
        raise NotImplementedError

    def find_by_alert(self, alert_id: int) -> Optional[ScheduledEmail]:
        raise NotImplementedError

    def list_due(self, now: datetime, *, limit: int) -> Sequence[ScheduledEmail]:
        raise NotImplementedError

    def claim(self, email_id: int, *, claim_token: str, now: datetime) -> Optional[ScheduledEmail]:
        """pending -> in_flight if still pending and due; None when another worker won."""
        raise NotImplementedError

    def confirm_claim(self, email_id: int, *, claim_token: str, now: datetime) -> bool:
        """Refresh the lease right before sending; False when the claim was taken over."""
        raise NotImplementedError

    def mark_sent(self, email_id: int, *, claim_token: str, sent_at: datetime) -> bool:
        raise NotImplementedError

    def mark_retry(
        self, email_id: int, *, claim_token: str, retry_count: int, next_attempt_at: datetime, error: str
    ) -> bool:
        raise NotImplementedError

    def mark_failed(self, email_id: int, *, claim_token: str, retry_count: int, error: str) -> bool:
        raise NotImplementedError

    def cancel(self, email_id: int) -> bool:
        raise NotImplementedError

    def list_stale_in_flight(self, claimed_before: datetime, *, limit: int) -> Sequence[ScheduledEmail]:
        raise NotImplementedError

    def list_emails(self, *, status: Optional[EmailStatus], offset: int, limit: int) -> Sequence[ScheduledEmail]:
        raise NotImplementedError
