from __future__ import annotations

from datetime import date, datetime, timezone


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_utc() -> datetime:
    """Current UTC time as a naive datetime (MySQL DATETIME friendly).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Closed-interval overlap test."""
    return start_a <= end_b and start_b <= end_a
