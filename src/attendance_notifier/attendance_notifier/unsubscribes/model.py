from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import UnsubscribeStatus


@dataclass(frozen=True)
class Unsubscribe:
    """Opt-out record for one address. The token never changes once issued."""

    unsubscribe_id: int
    email: str
    status: UnsubscribeStatus
    token: str
    reason: Optional[str] = None
    resubscribed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == UnsubscribeStatus.UNSUBSCRIBED
