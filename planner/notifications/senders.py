"""Email sender adapters: SMTP for deployments, logging for local development."""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .ports import EmailDeliveryError

LOG = logging.getLogger(__name__)


class SmtpEmailSender:
    """Send plain-text mail through an authenticated STARTTLS SMTP server."""

    def __init__(self, *, host: str, port: int, username: str, password: str, sender: str, timeout: float = 10.0) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender
        self._timeout = timeout

    def send(self, *, to: str, subject: str, body: str) -> None:
        if not all([self._host, self._port, self._username, self._password, self._sender]):
            raise EmailDeliveryError("smtp_not_configured")
        msg = MIMEMultipart("alternative")
        msg["From"] = self._sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                server.starttls()
                server.login(self._username, self._password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError("smtp_send_failed") from exc


class LoggingEmailSender:
    """Development sender: records the subject only, never the body."""

    def send(self, *, to: str, subject: str, body: str) -> None:
        LOG.info("Email (dev, not delivered): subject=%s", subject)


__all__ = ["SmtpEmailSender", "LoggingEmailSender"]
