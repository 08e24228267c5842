"""
SMTP email provider for self-hosted or development relays.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.email.base import EmailResult, OutboundEmail, unsubscribe_headers

logger = get_logger(__name__)

SMTP_TIMEOUT = 30  # seconds


class SmtpEmailProvider:
    name = "smtp"

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_ssl: bool | None = None,
        default_from: str | None = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_ssl = settings.SMTP_USE_SSL if use_ssl is None else use_ssl
        self.default_from = default_from or settings.default_from_address()

    def build_message(self, message: OutboundEmail) -> EmailMessage:
        sender = message.from_address or self.default_from

        msg = EmailMessage()
        msg["From"] = sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid(domain=sender.rsplit("@", 1)[-1].rstrip(">"))
        if message.reply_to:
            msg["Reply-To"] = message.reply_to
        for name, value in {**message.headers, **unsubscribe_headers(message.unsubscribe_url)}.items():
            msg[name] = value
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(message.html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        if self.use_ssl:
            client = smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT)
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT)

        with client:
            if not self.use_ssl:
                client.starttls()
            if self.username:
                client.login(self.username, self.password or "")
            client.send_message(msg)

    async def send(self, message: OutboundEmail) -> EmailResult:
        if not self.host:
            return EmailResult(success=False, error="SMTP host not configured")

        msg = self.build_message(message)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery failed", error=str(e), error_type=type(e).__name__)
            return EmailResult(success=False, error=f"SMTP delivery failed: {e}")

        return EmailResult(success=True, message_id=msg["Message-ID"])
