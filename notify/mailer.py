"""
notify/mailer.py -- Email notifier implementations.

Every notifier exposes notify(identifier, subject, body_html) -> NotifyOutcome.
The outcome is one of:

  ACCEPTED      the message was handed to the transport
  REJECTED      the transport refused it (or delivery is disabled)
  UNRESPONSIVE  the transport could not be reached or timed out

Callers (registration, verification) treat all three as non-fatal: the
primary operation has already been committed by the time a notification is
sent. Notifiers map transport errors to an outcome instead of raising.

SmtpNotifier: stdlib smtplib + email.mime, one connection per message.
RecordingNotifier: in-memory outbox for tests and local development.
"""

from __future__ import annotations

import logging
import smtplib
import socket
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Protocol

logger = logging.getLogger("accessgate.notify")


class NotifyOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNRESPONSIVE = "unresponsive"


class Notifier(Protocol):
    def notify(self, identifier: str, subject: str, body_html: str) -> NotifyOutcome: ...


class SmtpNotifier:
    """Send HTML mail through an SMTP relay.

    An empty host disables delivery: every call returns REJECTED and logs
    once per message, which keeps local development usable without a relay.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        sender: str = "no-reply@accessgate.local",
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> SmtpNotifier:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout,
        )

    def _build_message(self, identifier: str, subject: str, body_html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = identifier
        msg.attach(MIMEText(body_html, "html"))
        return msg

    def notify(self, identifier: str, subject: str, body_html: str) -> NotifyOutcome:
        if not self.host:
            logger.warning("SMTP_HOST not configured; mail to %s not sent (%s)", identifier, subject)
            return NotifyOutcome.REJECTED

        msg = self._build_message(identifier, subject, body_html)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (socket.timeout, ConnectionError, smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError) as exc:
            logger.warning("SMTP relay %s:%d unresponsive: %s", self.host, self.port, exc)
            return NotifyOutcome.UNRESPONSIVE
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP relay rejected mail to %s: %s", identifier, exc)
            return NotifyOutcome.REJECTED

        logger.info("Mail accepted for %s (%s)", identifier, subject)
        return NotifyOutcome.ACCEPTED


@dataclass
class SentMessage:
    identifier: str
    subject: str
    body_html: str


@dataclass
class RecordingNotifier:
    """Notifier that keeps every message in memory.

    `outcome` is returned for every call; set it to REJECTED or UNRESPONSIVE
    to simulate a failing transport. Messages are recorded regardless.
    """

    outcome: NotifyOutcome = NotifyOutcome.ACCEPTED
    outbox: list[SentMessage] = field(default_factory=list)

    def notify(self, identifier: str, subject: str, body_html: str) -> NotifyOutcome:
        self.outbox.append(SentMessage(identifier, subject, body_html))
        return self.outcome

    def sent_to(self, identifier: str) -> list[SentMessage]:
        return [m for m in self.outbox if m.identifier == identifier]
