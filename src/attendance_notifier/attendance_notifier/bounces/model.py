from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import BounceType


@dataclass(frozen=True)
class EmailBounce:
    """Delivery failure history for one address; hard bounces block sending."""

    bounce_id: int
    email: str
    type: BounceType
    bounce_count: int
    last_bounce_at: datetime
    reason: Optional[str] = None
    original_email_id: Optional[int] = None
