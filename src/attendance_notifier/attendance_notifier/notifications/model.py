from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..core.constants import ALERT_TAG_PREFIX, MAX_EMAIL_SUBJECT_LENGTH
from ..core.enums import DeliveryOutcome, EmailStatus
from ..core.exceptions import ValidationError


def alert_tag(alert_id: int) -> str:
    return f"{ALERT_TAG_PREFIX}{int(alert_id)}"


def alert_id_from_tags(tags: Iterable[str]) -> Optional[int]:
    """The originating alert id encoded in an ``alert:<id>`` tag, if any."""
    for tag in tags or ():
        if tag.startswith(ALERT_TAG_PREFIX):
            suffix = tag[len(ALERT_TAG_PREFIX):]
            if suffix.isdigit():
                return int(suffix)
    return None


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: str
    content_type: Optional[str] = None
    encoding: Optional[str] = None


@dataclass(frozen=True)
class NewScheduledEmail:
    to: tuple[str, ...]
    subject: str
    html: str
    scheduled_at: datetime
    text: Optional[str] = None
    attachments: tuple[Attachment, ...] = ()
    max_retries: int = 3
    tags: tuple[str, ...] = ()
    created_by: Optional[int] = None

    def __post_init__(self):
        if not self.to:
            raise ValidationError("A scheduled email needs at least one recipient")
        if not self.subject or not self.subject.strip():
            raise ValidationError("Email subject is required")
        if len(self.subject) > MAX_EMAIL_SUBJECT_LENGTH:
            raise ValidationError(f"Email subject cannot exceed {MAX_EMAIL_SUBJECT_LENGTH} characters")
        if not self.html:
            raise ValidationError("Email body is required")
        if int(self.max_retries) < 0:
            raise ValidationError("max_retries cannot be negative")

    @property
    def alert_id(self) -> Optional[int]:
        return alert_id_from_tags(self.tags)


@dataclass(frozen=True)
class ScheduledEmail:
    """A queued outbound message and its delivery state.

    Status moves pending -> in_flight -> (sent | pending | failed), or
    pending -> cancelled. ``claim_token`` is set only while in flight.
    """

    email_id: int
    to: tuple[str, ...]
    subject: str
    html: str
    scheduled_at: datetime
    status: EmailStatus
    text: Optional[str] = None
    attachments: tuple[Attachment, ...] = ()
    sent_at: Optional[datetime] = None
    error: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 3
    tags: tuple[str, ...] = ()
    created_by: Optional[int] = None
    claim_token: Optional[str] = None
    claimed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def alert_id(self) -> Optional[int]:
        return alert_id_from_tags(self.tags)


@dataclass(frozen=True)
class EmailMessage:
    """What a transport is asked to deliver."""

    to: tuple[str, ...]
    subject: str
    html: str
    text: Optional[str] = None
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class SendResult:
    outcome: DeliveryOutcome
    error: Optional[str] = None
    message_id: Optional[str] = None
    rejected: tuple[str, ...] = ()

    @classmethod
    def ok(cls, message_id: Optional[str] = None, *, rejected: Iterable[str] = ()) -> "SendResult":
        return cls(DeliveryOutcome.OK, message_id=message_id, rejected=tuple(rejected))

    @classmethod
    def transient(cls, error: str) -> "SendResult":
        return cls(DeliveryOutcome.TRANSIENT, error=error)

    @classmethod
    def permanent(cls, error: str, *, rejected: Iterable[str] = ()) -> "SendResult":
        return cls(DeliveryOutcome.PERMANENT, error=error, rejected=tuple(rejected))


@dataclass(frozen=True)
class ScheduleResult:
    queued: Optional[ScheduledEmail] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class CancelResult:
    ok: bool
    reason: Optional[str] = None
    email: Optional[ScheduledEmail] = None


@dataclass
class WorkerRunSummary:
    recovered: int = 0
    claimed: int = 0
    lost_claims: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    errors: int = 0

    @property
    def idle(self) -> bool:
        return self.recovered == 0 and self.claimed == 0
