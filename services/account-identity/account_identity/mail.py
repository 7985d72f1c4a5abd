"""Delivery of verification emails."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from .config import Settings
from .domain.errors import TransportError

logger = logging.getLogger(__name__)

SUBJECT = "Confirm your email address"


class Mailer(Protocol):
    def send_verification_email(self, to_address: str, token: str) -> None:
        """Deliver ``token`` to ``to_address`` or raise :class:`TransportError`."""


def render_verification_body(token: str, verification_url: str) -> str:
    link = verification_url.format(token=token)
    return (
        "Thanks for signing up.\n\n"
        "Confirm your email address by opening the link below:\n\n"
        f"{link}\n\n"
        "If you did not create an account you can ignore this message.\n"
    )


class LoggingMailer:
    """Development mailer that records the send without contacting a server."""

    def send_verification_email(self, to_address: str, token: str) -> None:
        logger.info("verification email for %s queued on logging backend", to_address)


class SmtpMailer:
    """Email provider that uses SMTP."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        verification_url: str,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        timeout: float = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.verification_url = verification_url
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_message(self, to_address: str, token: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_address
        message["Subject"] = SUBJECT
        message.set_content(render_verification_body(token, self.verification_url))
        return message

    def send_verification_email(self, to_address: str, token: str) -> None:
        message = self._build_message(to_address, token)
        try:
            with smtplib.SMTP(host=self.host, port=self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", to_address, exc)
            raise TransportError() from exc
        logger.info("verification email sent to %s", to_address)


def build_mailer(settings: Settings) -> Mailer:
    """Instantiate the configured mail backend."""
    if settings.mail_backend == "smtp":
        logger.info("mailer using smtp backend at %s:%s", settings.smtp_host, settings.smtp_port)
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            verification_url=settings.verification_url,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
    logger.info("mailer using logging backend")
    return LoggingMailer()
