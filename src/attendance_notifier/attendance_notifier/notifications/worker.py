from __future__ import annotations

import logging
import random
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..alerts.repository import AlertRepository
from ..bounces.registry import BounceRegistry
from ..common.backoff import BackoffPolicy
from ..common.datetime_utils import now_utc
from ..core.constants import (
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_BACKOFF_CAP_SECONDS,
    DEFAULT_BACKOFF_JITTER,
    DEFAULT_BATCH_SIZE,
    DEFAULT_LEASE_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_WORKER_POOL_SIZE,
)
from ..core.enums import BounceType, DeliveryOutcome
from .model import EmailMessage, ScheduledEmail, SendResult, WorkerRunSummary
from .recipients import RecipientFilter
from .repository import ScheduledEmailRepository
from .transport import EmailTransport

logger = logging.getLogger(__name__)

SENT = "sent"
RETRIED = "retried"
FAILED = "failed"
LOST = "lost"
NOT_CLAIMED = "not-claimed"

NO_ELIGIBLE_RECIPIENTS_ERROR = "No eligible recipients (unsubscribed or hard-bounced)"
LEASE_EXPIRED_ERROR = "Delivery lease expired before the send was resolved"


@dataclass(frozen=True)
class WorkerSettings:
    batch_size: int = DEFAULT_BATCH_SIZE
    pool_size: int = DEFAULT_WORKER_POOL_SIZE
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    lease_timeout_seconds: float = DEFAULT_LEASE_TIMEOUT_SECONDS
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    @classmethod
    def from_dict(cls, settings: Optional[dict]) -> "WorkerSettings":
        s = dict(settings or {})
        return cls(
            batch_size=int(s.get("batch_size", DEFAULT_BATCH_SIZE)),
            pool_size=int(s.get("worker_pool_size", DEFAULT_WORKER_POOL_SIZE)),
            poll_interval_seconds=float(s.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS)),
            lease_timeout_seconds=float(s.get("lease_timeout_seconds", DEFAULT_LEASE_TIMEOUT_SECONDS)),
            backoff=BackoffPolicy(
                base_seconds=float(s.get("backoff_base_seconds", DEFAULT_BACKOFF_BASE_SECONDS)),
                cap_seconds=float(s.get("backoff_cap_seconds", DEFAULT_BACKOFF_CAP_SECONDS)),
                jitter=float(s.get("backoff_jitter", DEFAULT_BACKOFF_JITTER)),
            ),
        )


class DeliveryWorker:
    """Polls the email queue and sends due messages.

    Each message is claimed with a conditional pending -> in_flight update
    before any send, so any number of workers (threads or processes) can poll
    the same queue and each email is attempted by exactly one of them per
    attempt. The claim is confirmed again immediately before the send; a
    worker whose lease was recovered while it was stalled drops the email.
    """

    def __init__(
        self,
        emails: ScheduledEmailRepository,
        alerts: AlertRepository,
        recipient_filter: RecipientFilter,
        transport: EmailTransport,
        bounces: BounceRegistry,
        *,
        settings: Optional[WorkerSettings] = None,
        clock: Callable[[], datetime] = now_utc,
        rng: Optional[random.Random] = None,
        token_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._emails = emails
        self._alerts = alerts
        self._filter = recipient_filter
        self._transport = transport
        self._bounces = bounces
        self._settings = settings or WorkerSettings()
        self._clock = clock
        self._rng = rng or random.Random()
        self._token_factory = token_factory

    @property
    def settings(self) -> WorkerSettings:
        return self._settings

    # ---- polling ----
    def run_once(self, now: Optional[datetime] = None) -> WorkerRunSummary:
        """One poll cycle: recover stale leases, then claim and send due emails.

        Each email is claimed inside its pool task, right before it is sent,
        so a batch larger than the pool never holds leases it is not using.
        """
        now = now or self._clock()
        summary = WorkerRunSummary(recovered=self.recover_stale(now))

        due = self._emails.list_due(now, limit=self._settings.batch_size)
        if not due:
            return summary

        with ThreadPoolExecutor(max_workers=max(1, self._settings.pool_size)) as pool:
            futures = {pool.submit(self._claim_and_process, candidate, now): candidate for candidate in due}
            for future in as_completed(futures):
                candidate = futures[future]
                try:
                    outcome = future.result()
                except Exception:
                    summary.errors += 1
                    logger.exception("Resolving email %s failed; its lease will expire", candidate.email_id)
                    continue
                if outcome == NOT_CLAIMED:
                    summary.lost_claims += 1
                    continue
                summary.claimed += 1
                if outcome == SENT:
                    summary.sent += 1
                elif outcome == RETRIED:
                    summary.retried += 1
                elif outcome == FAILED:
                    summary.failed += 1
                else:
                    summary.lost_claims += 1

        logger.info(
            "Delivery cycle: %s claimed, %s sent, %s retried, %s failed",
            summary.claimed,
            summary.sent,
            summary.retried,
            summary.failed,
        )
        return summary

    def _claim_and_process(self, candidate: ScheduledEmail, due_at: datetime) -> str:
        claimed_at = max(due_at, self._clock())
        email = self._emails.claim(candidate.email_id, claim_token=self._token_factory(), now=claimed_at)
        if email is None:
            logger.debug("Email %s was claimed by another worker", candidate.email_id)
            return NOT_CLAIMED
        return self.process(email)

    def run_forever(self, stop_event: threading.Event) -> None:
        logger.info(
            "Delivery worker started (batch=%s, pool=%s, poll=%ss)",
            self._settings.batch_size,
            self._settings.pool_size,
            self._settings.poll_interval_seconds,
        )
        while not stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Delivery cycle failed")
            stop_event.wait(self._settings.poll_interval_seconds)
        logger.info("Delivery worker stopped")

    # ---- one message ----
    def process(self, email: ScheduledEmail) -> str:
        """Send one claimed email and resolve its claim. Returns the outcome."""
        outcome = self._filter.filter(email.to)
        if not outcome.allowed:
            logger.info("Email %s has no eligible recipients left", email.email_id)
            return self._fail(email, email.retry_count, NO_ELIGIBLE_RECIPIENTS_ERROR)

        message = EmailMessage(
            to=outcome.allowed,
            subject=email.subject,
            html=email.html,
            text=email.text,
            attachments=email.attachments,
        )
        if not self._emails.confirm_claim(email.email_id, claim_token=email.claim_token, now=self._clock()):
            logger.warning("Email %s lost its claim before sending; skipping", email.email_id)
            return LOST
        try:
            result = self._transport.send(message)
        except Exception as e:
            logger.exception("Transport raised while sending email %s", email.email_id)
            result = SendResult.transient(f"{type(e).__name__}: {e}")

        return self._resolve(email, result)

    def _resolve(self, email: ScheduledEmail, result: SendResult) -> str:
        if result.rejected:
            self._bounces.record(
                result.rejected, BounceType.HARD, reason=result.error or "Recipient refused", original_email_id=email.email_id
            )

        if result.outcome == DeliveryOutcome.OK:
            now = self._clock()
            if not self._emails.mark_sent(email.email_id, claim_token=email.claim_token, sent_at=now):
                logger.warning("Email %s was sent but its claim had been taken over", email.email_id)
                return LOST
            if email.alert_id is not None:
                self._alerts.mark_notification_sent(email.alert_id, at=now)
            return SENT

        error = result.error or result.outcome.value
        if result.outcome == DeliveryOutcome.PERMANENT:
            logger.warning("Email %s failed permanently: %s", email.email_id, error)
            return self._fail(email, email.retry_count, error)

        return self._retry_or_fail(email, error)

    def _retry_or_fail(self, email: ScheduledEmail, error: str, *, soft_bounce: bool = True) -> str:
        attempts = email.retry_count + 1
        if attempts < email.max_retries:
            delay = self._settings.backoff.delay(attempts, rng=self._rng)
            next_attempt = self._clock() + delay
            if not self._emails.mark_retry(
                email.email_id,
                claim_token=email.claim_token,
                retry_count=attempts,
                next_attempt_at=next_attempt,
                error=error,
            ):
                return LOST
            logger.info(
                "Email %s attempt %s/%s failed (%s); retrying at %s",
                email.email_id,
                attempts,
                email.max_retries,
                error,
                next_attempt.isoformat(),
            )
            return RETRIED

        logger.warning("Email %s exhausted %s retries: %s", email.email_id, email.max_retries, error)
        outcome = self._fail(email, min(attempts, email.max_retries), error)
        if outcome == FAILED and soft_bounce:
            self._bounces.record(email.to, BounceType.SOFT, reason=error, original_email_id=email.email_id)
        return outcome

    def _fail(self, email: ScheduledEmail, retry_count: int, error: str) -> str:
        if not self._emails.mark_failed(
            email.email_id, claim_token=email.claim_token, retry_count=retry_count, error=error
        ):
            return LOST
        return FAILED

    # ---- crash recovery ----
    def recover_stale(self, now: Optional[datetime] = None) -> int:
        """Treat leases older than the timeout as a transient failure.

        The crashed sender's outcome is unknown; counting it as one failed
        attempt keeps the retry budget honest.
        """
        now = now or self._clock()
        cutoff = now - timedelta(seconds=self._settings.lease_timeout_seconds)
        recovered = 0
        for email in self._emails.list_stale_in_flight(cutoff, limit=self._settings.batch_size):
            outcome = self._retry_or_fail(email, LEASE_EXPIRED_ERROR, soft_bounce=False)
            if outcome != LOST:
                recovered += 1
                logger.warning("Recovered stale email %s (%s)", email.email_id, outcome)
        return recovered
