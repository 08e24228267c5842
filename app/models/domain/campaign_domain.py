"""
Email campaign (draft) domain model.

A campaign starts as a draft and becomes `sent` exactly once. Sent campaigns
are immutable.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from app.errors import ValidationError

CampaignStatus = Literal["draft", "sent"]

MAX_SUBJECT_LENGTH = 500


@dataclass(slots=True)
class EmailCampaign:
    id: str
    user_id: int
    subject: str
    html_content: str
    status: CampaignStatus = "draft"
    track_id: str | None = None
    template_id: str | None = None
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    recipients_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        if self.status not in ("draft", "sent"):
            raise ValidationError(f"Invalid campaign status: {self.status}")
        if self.subject and len(self.subject) > MAX_SUBJECT_LENGTH:
            raise ValidationError(f"Subject must be at most {MAX_SUBJECT_LENGTH} characters")
        if self.status == "sent":
            if not self.subject or not self.html_content:
                raise ValidationError("Sent campaigns must have subject and content")
            if self.sent_at is None:
                raise ValidationError("Sent campaigns must have sent_at")
        elif self.sent_at is not None:
            raise ValidationError("Drafts cannot have sent_at")

    @classmethod
    def from_row(cls, row: dict) -> "EmailCampaign":
        return cls(
            id=str(row["id"]),
            user_id=row["user_id"],
            subject=row.get("subject") or "",
            html_content=row.get("html_content") or "",
            status=row["status"],
            track_id=row.get("track_id"),
            template_id=row.get("template_id"),
            scheduled_at=row.get("scheduled_at"),
            sent_at=row.get("sent_at"),
            recipients_count=row.get("recipients_count") or 0,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"

    @property
    def is_sent(self) -> bool:
        return self.status == "sent"

    def ensure_sendable(self) -> None:
        if not self.subject or not self.subject.strip():
            raise ValidationError("Campaign subject is required before sending")
        if not self.html_content or not self.html_content.strip():
            raise ValidationError("Campaign content is required before sending")
