"""Outbound mail transports for verification codes and account notices.

Both transports satisfy :class:`EmailProvider`, the only surface the
account and step-up services depend on.
"""
from __future__ import annotations

import logging
import smtplib
from collections import deque
from email.message import EmailMessage
from typing import Deque, Optional, Protocol, Tuple

from .config import EmailConfig

logger = logging.getLogger("mail")

SMTP_TIMEOUT_SECONDS = 30
_OUTBOX_SIZE = 50


class EmailProvider(Protocol):
    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        ...


def compose_message(sender: str, recipient: str, subject: str, html_body: str, text_body: str) -> EmailMessage:
    """Build a ``multipart/alternative`` message with the plain part first."""

    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(text_body or "")
    message.add_alternative(html_body, subtype="html")
    return message


class LogOnlyProvider:
    """Keeps recipients and subjects in a small outbox instead of delivering.

    Bodies are dropped since they carry one-time codes and reset links.
    """

    def __init__(self, sender: str) -> None:
        self.sender = sender
        self.outbox: Deque[Tuple[str, str]] = deque(maxlen=_OUTBOX_SIZE)

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        self.outbox.append((to, subject))
        logger.info("Mail not delivered (log-only transport): to=%s subject=%r", to, subject)


class SmtpProvider:
    def __init__(
        self,
        sender: str,
        host: str,
        port: int,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        timeout: float = SMTP_TIMEOUT_SECONDS,
    ) -> None:
        self.sender = sender
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: EmailConfig) -> "SmtpProvider":
        return cls(
            config.from_email,
            config.smtp_host,
            config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            starttls=config.smtp_use_tls,
        )

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        message = compose_message(self.sender, to, subject, html_body, text_body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as session:
            if self.starttls:
                session.starttls()
            # Relays on a private network often accept mail without auth.
            if self.username and self.password:
                session.login(self.username, self.password)
            session.send_message(message)
        logger.info("Mail relayed through %s:%s to=%s", self.host, self.port, to)


def create_email_provider(config: EmailConfig) -> EmailProvider:
    if config.provider_name == "smtp":
        return SmtpProvider.from_config(config)
    if config.provider_name not in ("dev", "log"):
        logger.warning("EMAIL_PROVIDER=%r is not supported; mail will only be logged", config.provider_name)
    return LogOnlyProvider(config.from_email)
