"""
Email transport contract.

Providers report delivery failures through EmailResult(success=False) and
never raise for them. The send path decides what a failure means for quota.
"""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(slots=True)
class OutboundEmail:
    to: str
    subject: str
    html: str
    from_address: str | None = None
    reply_to: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    unsubscribe_url: str | None = None


@dataclass(slots=True)
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailProvider(Protocol):
    name: str

    async def send(self, message: OutboundEmail) -> EmailResult: ...


def unsubscribe_headers(unsubscribe_url: str | None) -> dict[str, str]:
    """RFC 8058 one-click unsubscribe headers."""
    if not unsubscribe_url:
        return {}
    return {
        "List-Unsubscribe": f"<{unsubscribe_url}>",
        "List-Unsubscribe-Post": "List-Unsubscribe=One-Click",
    }
