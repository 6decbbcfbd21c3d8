from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from .model import Unsubscribe


class UnsubscribeRepository(Protocol):
    def get_by_email(self, email: str) -> Optional[Unsubscribe]:
        raise NotImplementedError

    def create(self, email: str, *, token: str, reason: Optional[str]) -> Unsubscribe:
        """Insert an opt-out. If the address already has a row, it is marked
        unsubscribed again and keeps its original token."""
        raise NotImplementedError

    def mark_unsubscribed(self, email: str, *, reason: Optional[str]) -> Optional[Unsubscribe]:
        raise NotImplementedError

    def mark_resubscribed(self, token: str, *, at: datetime) -> Optional[Unsubscribe]:
        raise NotImplementedError

    def find_unsubscribed(self, emails: Iterable[str]) -> set[str]:
        raise NotImplementedError

    def list_unsubscribed(self, *, limit: int) -> Sequence[Unsubscribe]:
        raise NotImplementedError
