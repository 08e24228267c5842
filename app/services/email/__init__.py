"""
Outbound email transports.
"""

from app.config import settings
from app.services.email.base import EmailProvider, EmailResult, OutboundEmail
from app.services.email.resend_provider import ResendEmailProvider
from app.services.email.smtp_provider import SmtpEmailProvider


def get_email_provider() -> EmailProvider:
    """Return the provider selected by EMAIL_PROVIDER."""
    provider = settings.EMAIL_PROVIDER.lower()
    if provider == "resend":
        return ResendEmailProvider()
    if provider == "smtp":
        return SmtpEmailProvider()
    raise ValueError(f"Unknown EMAIL_PROVIDER: {settings.EMAIL_PROVIDER}")


__all__ = [
    "EmailProvider",
    "EmailResult",
    "OutboundEmail",
    "ResendEmailProvider",
    "SmtpEmailProvider",
    "get_email_provider",
]
