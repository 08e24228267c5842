from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Provider webhook type -> stored event type
EVENT_TYPES = {
    "email.sent": "sent",
    "email.delivered": "delivered",
    "email.delivery_delayed": "delayed",
    "email.bounced": "bounced",
    "email.opened": "opened",
    "email.clicked": "clicked",
}


@dataclass(slots=True)
class EmailLog:
    """Per-recipient send record, keyed by the provider's message id."""

    id: int
    user_id: int
    recipient_email: str
    status: str
    contact_id: int | None = None
    campaign_id: str | None = None
    track_id: str | None = None
    resend_email_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    opened_at: datetime | None = None
    clicked_at: datetime | None = None
    open_count: int = 0
    click_count: int = 0
    clicked_urls: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict) -> "EmailLog":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            recipient_email=row["recipient_email"],
            status=row["status"],
            contact_id=row.get("contact_id"),
            campaign_id=str(row["campaign_id"]) if row.get("campaign_id") else None,
            track_id=row.get("track_id"),
            resend_email_id=row.get("resend_email_id"),
            error=row.get("error"),
            sent_at=row.get("sent_at"),
            delivered_at=row.get("delivered_at"),
            opened_at=row.get("opened_at"),
            clicked_at=row.get("clicked_at"),
            open_count=row.get("open_count") or 0,
            click_count=row.get("click_count") or 0,
            clicked_urls=list(row.get("clicked_urls") or []),
        )


@dataclass(slots=True)
class EmailEvent:
    """Engagement event reported by the provider for one email log."""

    email_log_id: int
    event_type: str
    event_data: dict[str, Any]
    contact_id: int | None = None
    resend_email_id: str | None = None
    created_at: datetime | None = None
