from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import BounceType
from .model import EmailBounce


class BounceRepository(Protocol):
    def record(
        self,
        email: str,
        *,
        bounce_type: BounceType,
        reason: Optional[str],
        original_email_id: Optional[int],
        at: datetime,
    ) -> None:
        """Upsert a bounce; a hard bounce is never downgraded to soft."""
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[EmailBounce]:
        raise NotImplementedError

    def find_hard_bounced(self, emails: Iterable[str]) -> set[str]:
        raise NotImplementedError

    def delete(self, email: str) -> bool:
        raise NotImplementedError

    def list_bounces(self, *, bounce_type: Optional[BounceType], limit: int) -> Sequence[EmailBounce]:
        raise NotImplementedError
