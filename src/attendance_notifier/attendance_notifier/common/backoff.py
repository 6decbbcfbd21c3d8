from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from ..core.constants import (
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_BACKOFF_CAP_SECONDS,
    DEFAULT_BACKOFF_JITTER,
)


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff with symmetric jitter, capped.

    delay(n) = min(cap, base * 2**n) +/- jitter * that value, never above cap.
    """

    base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    cap_seconds: float = DEFAULT_BACKOFF_CAP_SECONDS
    jitter: float = DEFAULT_BACKOFF_JITTER

    def __post_init__(self):
        if self.base_seconds <= 0 or self.cap_seconds < self.base_seconds:
            raise ValueError("backoff requires 0 < base <= cap")
        if not 0 <= self.jitter < 1:
            raise ValueError("backoff jitter must be in [0, 1)")

    def delay(self, retry_count: int, *, rng: Optional[random.Random] = None) -> timedelta:
        rng = rng or random
        exponent = max(0, int(retry_count))
        # 2**exponent grows unbounded; clamp before multiplying.
        raw = self.cap_seconds if exponent >= 32 else min(self.cap_seconds, self.base_seconds * (2**exponent))
        spread = raw * self.jitter
        seconds = raw + rng.uniform(-spread, spread)
        return timedelta(seconds=max(0.0, min(self.cap_seconds, seconds)))
