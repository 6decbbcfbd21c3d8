from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import EmailStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json_list, fetchall, fetchone, load_json_list
from .model import Attachment, NewScheduledEmail, ScheduledEmail
from .repository import ScheduledEmailRepository

_COLUMNS = """
    email_id, to_addresses, subject, html, text_body, attachments, scheduled_at,
    status, sent_at, error, retry_count, max_retries, tags, alert_id, created_by,
    claim_token, claimed_at, created_at
"""


def _to_email(r: dict) -> ScheduledEmail:
    return ScheduledEmail(
        email_id=int(r["email_id"]),
        to=tuple(load_json_list(r.get("to_addresses"))),
        subject=r["subject"],
        html=r["html"],
        text=r.get("text_body"),
        attachments=tuple(Attachment(**a) for a in load_json_list(r.get("attachments"))),
        scheduled_at=r["scheduled_at"],
        status=EmailStatus(r["status"]),
        sent_at=r.get("sent_at"),
        error=r.get("error"),
        retry_count=int(r["retry_count"]),
        max_retries=int(r["max_retries"]),
        tags=tuple(load_json_list(r.get("tags"))),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
        claim_token=r.get("claim_token"),
        claimed_at=r.get("claimed_at"),
        created_at=r.get("created_at"),
    )


def _dump_attachments(attachments) -> Optional[str]:
    if not attachments:
        return None
    return json.dumps(
        [
            {"filename": a.filename, "content": a.content, "content_type": a.content_type, "encoding": a.encoding}
            for a in attachments
        ]
    )


class MySQLScheduledEmailRepository(ScheduledEmailRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, cur, where: str, params: tuple) -> Optional[ScheduledEmail]:
        cur.execute(f"SELECT {_COLUMNS} FROM scheduled_emails WHERE {where}", params)
        r = fetchone(cur)
        return _to_email(r) if r else None

    def create_unless_exists(self, new: NewScheduledEmail) -> tuple[ScheduledEmail, bool]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO scheduled_emails (
                        to_addresses, subject, html, text_body, attachments, scheduled_at,
                        status, retry_count, max_retries, tags, alert_id, created_by
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, 0, %s, %s, %s, %s)
                    """,
                    (
                        dump_json_list(new.to),
                        new.subject,
                        new.html,
                        new.text,
                        _dump_attachments(new.attachments),
                        new.scheduled_at,
                        EmailStatus.PENDING.value,
                        int(new.max_retries),
                        dump_json_list(new.tags),
                        new.alert_id,
                        new.created_by,
                    ),
                )
                return self._select(cur, "email_id=%s", (int(cur.lastrowid),)), True
        except IntegrityError as e:
            # UNIQUE(alert_id): another scheduler got there first.
            if e.errno != errorcode.ER_DUP_ENTRY or new.alert_id is None:
                raise
        existing = self.find_by_alert(new.alert_id)
        if existing is None:
            raise RuntimeError(f"Duplicate email for alert {new.alert_id} vanished")
        return existing, False

    def get_by_id(self, email_id: int) -> Optional[ScheduledEmail]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, "email_id=%s", (int(email_id),))

    def find_by_alert(self, alert_id: int) -> Optional[ScheduledEmail]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, "alert_id=%s", (int(alert_id),))

    def list_due(self, now: datetime, *, limit: int) -> Sequence[ScheduledEmail]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM scheduled_emails
                WHERE status=%s AND scheduled_at <= %s
                ORDER BY scheduled_at ASC, email_id ASC
                LIMIT %s
                """,
                (EmailStatus.PENDING.value, now, int(limit)),
            )
            return [_to_email(r) for r in fetchall(cur)]

    def claim(self, email_id: int, *, claim_token: str, now: datetime) -> Optional[ScheduledEmail]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE scheduled_emails
                SET status=%s, claim_token=%s, claimed_at=%s
                WHERE email_id=%s AND status=%s AND scheduled_at <= %s
                """,
                (EmailStatus.IN_FLIGHT.value, claim_token, now, int(email_id), EmailStatus.PENDING.value, now),
            )
            if cur.rowcount != 1:
                return None
            return self._select(cur, "email_id=%s", (int(email_id),))

    def confirm_claim(self, email_id: int, *, claim_token: str, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE scheduled_emails SET claimed_at=%s WHERE email_id=%s AND status=%s AND claim_token=%s",
                (now, int(email_id), EmailStatus.IN_FLIGHT.value, claim_token),
            )
            return cur.rowcount == 1

    def _resolve(self, cur, assignments: str, params: tuple, email_id: int, claim_token: str) -> bool:
        cur.execute(
            f"""
            UPDATE scheduled_emails
            SET {assignments}, claim_token=NULL, claimed_at=NULL
            WHERE email_id=%s AND status=%s AND claim_token=%s
            """,
            params + (int(email_id), EmailStatus.IN_FLIGHT.value, claim_token),
        )
        return cur.rowcount == 1

    def mark_sent(self, email_id: int, *, claim_token: str, sent_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._resolve(
                cur, "status=%s, sent_at=%s, error=NULL", (EmailStatus.SENT.value, sent_at), email_id, claim_token
            )

    def mark_retry(
        self, email_id: int, *, claim_token: str, retry_count: int, next_attempt_at: datetime, error: str
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._resolve(
                cur,
                "status=%s, retry_count=%s, scheduled_at=%s, error=%s",
                (EmailStatus.PENDING.value, int(retry_count), next_attempt_at, error),
                email_id,
                claim_token,
            )

    def mark_failed(self, email_id: int, *, claim_token: str, retry_count: int, error: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._resolve(
                cur,
                "status=%s, retry_count=%s, error=%s",
                (EmailStatus.FAILED.value, int(retry_count), error),
                email_id,
                claim_token,
            )

    def cancel(self, email_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE scheduled_emails SET status=%s WHERE email_id=%s AND status=%s",
                (EmailStatus.CANCELLED.value, int(email_id), EmailStatus.PENDING.value),
            )
            return cur.rowcount == 1

    def list_stale_in_flight(self, claimed_before: datetime, *, limit: int) -> Sequence[ScheduledEmail]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM scheduled_emails
                WHERE status=%s AND claimed_at < %s
                ORDER BY claimed_at ASC
                LIMIT %s
                """,
                (EmailStatus.IN_FLIGHT.value, claimed_before, int(limit)),
            )
            return [_to_email(r) for r in fetchall(cur)]

    def list_emails(self, *, status: Optional[EmailStatus], offset: int, limit: int) -> Sequence[ScheduledEmail]:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM scheduled_emails ORDER BY scheduled_at DESC LIMIT %s OFFSET %s",
                    (int(limit), int(offset)),
                )
            else:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM scheduled_emails WHERE status=%s
                    ORDER BY scheduled_at DESC LIMIT %s OFFSET %s
                    """,
                    (status.value, int(limit), int(offset)),
                )
            return [_to_email(r) for r in fetchall(cur)]
