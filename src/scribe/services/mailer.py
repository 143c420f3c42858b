"""Outbound mail.

Learn: The password reset flow only needs send(to, subject, body).
SmtpMailer does real delivery with smtplib in a worker thread so the
event loop never blocks on the SMTP conversation. LogMailer writes the
message to the log instead, which is what development uses when no
SMTP host is configured.

Delivery problems surface as MailDeliveryError; callers decide whether
that is fatal.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from functools import lru_cache

import structlog

from scribe.config import settings

logger = structlog.get_logger()


class MailDeliveryError(Exception):
    """Raised when a message could not be handed to the mail server."""


class Mailer:
    """Base mail collaborator."""

    async def send(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class SmtpMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_address: str = "",
        use_tls: bool = True,
        timeout: float = 20.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address or username
        self.use_tls = use_tls
        self.timeout = timeout

    def _build(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = self._build(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"SMTP delivery to {to} failed: {e}") from e
        logger.info("mail.sent", to=to, subject=subject)


class LogMailer(Mailer):
    """Development mailer, logs messages instead of sending them."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info("mail.logged", to=to, subject=subject, body=body)


@lru_cache
def get_mailer() -> Mailer:
    """FastAPI dependency: SMTP when configured, log-only otherwise."""
    if not settings.smtp_host:
        return LogMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        from_address=settings.smtp_from,
        use_tls=settings.smtp_use_tls,
    )
