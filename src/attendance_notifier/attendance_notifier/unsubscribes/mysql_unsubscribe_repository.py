from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import UnsubscribeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import Unsubscribe
from .repository import UnsubscribeRepository

_COLUMNS = "unsubscribe_id, email, reason, status, resubscribed_at, token, created_at"


def _to_unsubscribe(r: dict) -> Unsubscribe:
    return Unsubscribe(
        unsubscribe_id=int(r["unsubscribe_id"]),
        email=r["email"],
        status=UnsubscribeStatus(r["status"]),
        token=r["token"],
        reason=r.get("reason"),
        resubscribed_at=r.get("resubscribed_at"),
        created_at=r.get("created_at"),
    )


class MySQLUnsubscribeRepository(UnsubscribeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select_one(self, cur, where: str, params: tuple) -> Optional[Unsubscribe]:
        cur.execute(f"SELECT {_COLUMNS} FROM unsubscribes WHERE {where}", params)
        r = fetchone(cur)
        return _to_unsubscribe(r) if r else None

    def get_by_email(self, email: str) -> Optional[Unsubscribe]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select_one(cur, "email=%s", (email,))

    def create(self, email: str, *, token: str, reason: Optional[str]) -> Unsubscribe:
        with db_cursor(self._conn_factory) as (_, cur):
            # token is deliberately absent from the UPDATE list.
            cur.execute(
                """
                INSERT INTO unsubscribes (email, reason, status, token)
                VALUES (%s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status),
                    reason=COALESCE(VALUES(reason), reason)
                """,
                (email, reason, UnsubscribeStatus.UNSUBSCRIBED.value, token),
            )
            return self._select_one(cur, "email=%s", (email,))

    def mark_unsubscribed(self, email: str, *, reason: Optional[str]) -> Optional[Unsubscribe]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE unsubscribes SET status=%s, reason=COALESCE(%s, reason) WHERE email=%s",
                (UnsubscribeStatus.UNSUBSCRIBED.value, reason, email),
            )
            return self._select_one(cur, "email=%s", (email,))

    def mark_resubscribed(self, token: str, *, at: datetime) -> Optional[Unsubscribe]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE unsubscribes SET status=%s, resubscribed_at=%s WHERE token=%s AND status=%s",
                (UnsubscribeStatus.RESUBSCRIBED.value, at, token, UnsubscribeStatus.UNSUBSCRIBED.value),
            )
            return self._select_one(cur, "token=%s", (token,))

    def find_unsubscribed(self, emails: Iterable[str]) -> set[str]:
        addresses = sorted(set(emails))
        if not addresses:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT email FROM unsubscribes WHERE status=%s AND email IN ({placeholders(len(addresses))})",
                (UnsubscribeStatus.UNSUBSCRIBED.value, *addresses),
            )
            return {r["email"] for r in fetchall(cur)}

    def list_unsubscribed(self, *, limit: int) -> Sequence[Unsubscribe]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM unsubscribes WHERE status=%s ORDER BY created_at DESC LIMIT %s",
                (UnsubscribeStatus.UNSUBSCRIBED.value, int(limit)),
            )
            return [_to_unsubscribe(r) for r in fetchall(cur)]
