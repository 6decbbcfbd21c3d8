from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import BounceType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import EmailBounce
from .repository import BounceRepository

_COLUMNS = "bounce_id, email, type, reason, original_email_id, bounce_count, last_bounce_at"


def _to_bounce(r: dict) -> EmailBounce:
    return EmailBounce(
        bounce_id=int(r["bounce_id"]),
        email=r["email"],
        type=BounceType(r["type"]),
        bounce_count=int(r["bounce_count"]),
        last_bounce_at=r["last_bounce_at"],
        reason=r.get("reason"),
        original_email_id=int(r["original_email_id"]) if r.get("original_email_id") is not None else None,
    )


class MySQLBounceRepository(BounceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(
        self,
        email: str,
        *,
        bounce_type: BounceType,
        reason: Optional[str],
        original_email_id: Optional[int],
        at: datetime,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO email_bounces (email, type, reason, original_email_id, bounce_count, last_bounce_at)
                VALUES (%s, %s, %s, %s, 1, %s)
                ON DUPLICATE KEY UPDATE
                    type=IF(type='hard', 'hard', VALUES(type)),
                    reason=VALUES(reason),
                    original_email_id=COALESCE(VALUES(original_email_id), original_email_id),
                    bounce_count=bounce_count + 1,
                    last_bounce_at=VALUES(last_bounce_at)
                """,
                (email, bounce_type.value, reason, original_email_id, at),
            )

    def get_by_email(self, email: str) -> Optional[EmailBounce]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM email_bounces WHERE email=%s", (email,))
            r = fetchone(cur)
            return _to_bounce(r) if r else None

    def find_hard_bounced(self, emails: Iterable[str]) -> set[str]:
        addresses = sorted(set(emails))
        if not addresses:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT email FROM email_bounces WHERE type=%s AND email IN ({placeholders(len(addresses))})",
                (BounceType.HARD.value, *addresses),
            )
            return {r["email"] for r in fetchall(cur)}

    def delete(self, email: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM email_bounces WHERE email=%s", (email,))
            return cur.rowcount == 1

    def list_bounces(self, *, bounce_type: Optional[BounceType], limit: int) -> Sequence[EmailBounce]:
        with db_cursor(self._conn_factory) as (_, cur):
            if bounce_type is None:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM email_bounces ORDER BY last_bounce_at DESC LIMIT %s", (int(limit),)
                )
            else:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM email_bounces WHERE type=%s ORDER BY last_bounce_at DESC LIMIT %s",
                    (bounce_type.value, int(limit)),
                )
            return [_to_bounce(r) for r in fetchall(cur)]
