from __future__ import annotations

import base64
import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Mapping, Protocol

from ..core.exceptions import PermanentDeliveryError, TransientDeliveryError
from .model import EmailMessage, SendResult

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    def send(self, message: EmailMessage) -> SendResult:
        raise NotImplementedError


def _is_permanent(code: int) -> bool:
    return 500 <= int(code) < 600


class SMTPEmailTransport(EmailTransport):
    """Delivers over SMTP and classifies failures as transient or permanent.

    Only 5xx replies to the message itself (sender, recipients or data) are
    permanent. Connection, STARTTLS and login failures are transient whatever
    their code, as are timeouts and 4xx replies.
    """

    def __init__(self, smtp_config: Mapping[str, Any]):
        self._host = str(smtp_config.get("host") or "")
        self._port = int(smtp_config.get("port", 587))
        self._username = smtp_config.get("username") or None
        self._password = smtp_config.get("password") or None
        self._use_tls = bool(smtp_config.get("use_tls", True))
        self._timeout = float(smtp_config.get("timeout_seconds", 30))
        self._sender = str(smtp_config.get("from_address") or self._username or "")

    def send(self, message: EmailMessage) -> SendResult:
        try:
            message_id, refused = self._deliver(message)
        except PermanentDeliveryError as e:
            return SendResult.permanent(str(e), rejected=e.rejected)
        except TransientDeliveryError as e:
            return SendResult.transient(str(e))

        rejected = [addr for addr, (code, _) in refused.items() if _is_permanent(code)]
        if refused:
            logger.warning("SMTP accepted message %s but refused %s", message_id, ", ".join(sorted(refused)))
        return SendResult.ok(message_id, rejected=rejected)

    def build_mime(self, message: EmailMessage, message_id: str) -> MIMEMultipart:
        body = MIMEMultipart("alternative")
        if message.text:
            body.attach(MIMEText(message.text, "plain", "utf-8"))
        body.attach(MIMEText(message.html, "html", "utf-8"))

        if message.attachments:
            msg = MIMEMultipart("mixed")
            msg.attach(body)
            for a in message.attachments:
                data = base64.b64decode(a.content) if a.encoding == "base64" else a.content.encode("utf-8")
                subtype = (a.content_type or "application/octet-stream").split("/", 1)[-1]
                part = MIMEApplication(data, _subtype=subtype)
                part.add_header("Content-Disposition", "attachment", filename=a.filename)
                msg.attach(part)
        else:
            msg = body

        msg["Subject"] = message.subject
        msg["From"] = self._sender
        msg["To"] = ", ".join(message.to)
        msg["Message-ID"] = message_id
        return msg

    def _deliver(self, message: EmailMessage) -> tuple[str, dict]:
        if not self._host:
            raise TransientDeliveryError("SMTP host is not configured")

        message_id = make_msgid()
        msg = self.build_mime(message, message_id)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_tls:
                    server.starttls()
                if self._username and self._password:
                    server.login(self._username, self._password)
                refused = self._send_message(server, msg, message.to)
        except smtplib.SMTPAuthenticationError as e:
            # Bad credentials are an operator problem; keep the email retrying.
            raise TransientDeliveryError(f"SMTP authentication failed ({e.smtp_code})")
        except (smtplib.SMTPException, OSError) as e:
            # Connect, HELO and STARTTLS replies describe the relay, not this message.
            raise TransientDeliveryError(f"SMTP delivery failed: {e}")

        logger.info("Sent %s to %s", message_id, ", ".join(message.to))
        return message_id, dict(refused or {})

    def _send_message(self, server: smtplib.SMTP, msg: MIMEMultipart, to: tuple[str, ...]) -> dict:
        try:
            return server.send_message(msg, from_addr=self._sender, to_addrs=list(to))
        except smtplib.SMTPHeloError:
            raise
        except smtplib.SMTPRecipientsRefused as e:
            codes = {addr: code for addr, (code, _) in e.recipients.items()}
            if codes and all(_is_permanent(c) for c in codes.values()):
                raise PermanentDeliveryError(f"All recipients refused: {codes}", rejected=tuple(codes))
            raise TransientDeliveryError(f"Recipients temporarily refused: {codes}")
        except smtplib.SMTPResponseException as e:
            error = f"SMTP {e.smtp_code}: {e.smtp_error!r}"
            if _is_permanent(e.smtp_code):
                raise PermanentDeliveryError(error)
            raise TransientDeliveryError(error)
