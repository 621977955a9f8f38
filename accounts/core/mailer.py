"""
Email adapter for the account lifecycle backend.

Services only decide whether and what to send; delivery goes through a
NotificationDispatcher. The default implementation uses SMTP with the
credentials from Settings.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Iterator, Protocol
import logging
import smtplib
import ssl

from .config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundMessage:
    to_email: str
    subject: str
    html_body: str
    text_body: str | None = None


class NotificationDispatcher(Protocol):
    def dispatch(self, message: OutboundMessage) -> bool:
        """Deliver the message; return False when it was not sent."""


class SMTPMailer:
    """Send messages over SMTP (implicit TLS on 465, STARTTLS otherwise)."""

    def __init__(self, settings: Settings, timeout: float = 10.0):
        self.settings = settings
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_password and s.smtp_from and s.smtp_port)

    def build(self, message: OutboundMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = formataddr((self.settings.email_from_name, self.settings.smtp_from))
        msg["To"] = message.to_email
        plain = message.text_body or message.html_body
        msg.attach(MIMEText(plain, "plain", "utf-8"))
        msg.attach(MIMEText(message.html_body, "html", "utf-8"))
        return msg

    @contextmanager
    def _connect(self) -> Iterator[smtplib.SMTP]:
        """Open an authenticated SMTP session (implicit TLS on 465, STARTTLS otherwise)."""
        s = self.settings
        if s.smtp_port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, context=context, timeout=self.timeout) as server:
                server.login(s.smtp_user, s.smtp_password)
                yield server
        else:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=self.timeout) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(s.smtp_user, s.smtp_password)
                yield server

    def check_connection(self) -> bool:
        """Connect and authenticate without sending anything; used to validate SMTP settings."""
        if not self.configured:
            logger.warning("SMTP not configured")
            return False
        try:
            with self._connect():
                pass
        except (smtplib.SMTPException, OSError):
            logger.exception("SMTP connection check failed for %s:%s", self.settings.smtp_host, self.settings.smtp_port)
            return False
        logger.info("SMTP connection to %s:%s verified", self.settings.smtp_host, self.settings.smtp_port)
        return True

    def dispatch(self, message: OutboundMessage) -> bool:
        if not self.configured:
            logger.warning("SMTP not configured; skipping email to %s", message.to_email)
            return False
        payload = self.build(message).as_string()
        try:
            with self._connect() as server:
                server.sendmail(self.settings.smtp_from, [message.to_email], payload)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", message.to_email)
            return False
        logger.info("Email sent to %s: %s", message.to_email, message.subject)
        return True
