"""Outbound email transports used by the notification dispatcher."""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Protocol

from intake_board.core.config import settings
from intake_board.core.logging import get_logger

logger = get_logger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when a message could not be handed to the mail server."""


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


class EmailTransport(Protocol):
    async def send(self, message: EmailMessage) -> bool:
        """Return True once the message was handed to a mail server."""
        ...


class SmtpEmailTransport:
    """Blocking smtplib delivery run on a worker thread."""

    def _send_sync(self, message: EmailMessage) -> None:
        mime = MIMEText(message.body, "plain", "utf-8")
        mime["Subject"] = message.subject
        mime["From"] = settings.smtp_from_email
        mime["To"] = message.to
        with smtplib.SMTP(
            settings.smtp_host,
            settings.smtp_port,
            timeout=settings.smtp_timeout_seconds,
        ) as server:
            if settings.smtp_use_tls:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from_email, [message.to], mime.as_string())

    async def send(self, message: EmailMessage) -> bool:
        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"{type(exc).__name__}: {exc}") from exc
        logger.info("email.sent", extra={"to": message.to, "subject": message.subject})
        return True


class LoggingEmailTransport:
    """Stand-in used when SMTP is not configured; logs the message and delivers nothing."""

    async def send(self, message: EmailMessage) -> bool:
        logger.info(
            "email.smtp_unconfigured",
            extra={"to": message.to, "subject": message.subject},
        )
        return False


def get_email_transport() -> EmailTransport:
    if settings.smtp_configured:
        return SmtpEmailTransport()
    return LoggingEmailTransport()
