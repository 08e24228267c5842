from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

from app.errors import ValidationError
from app.models.domain.validation import is_valid_email

MAX_NAME_LENGTH = 100


@dataclass(slots=True)
class Contact:
    """A subscriber on an artist's list."""

    id: int
    user_id: int
    email: str
    name: str | None
    subscribed: bool
    unsubscribe_token: str
    source: str = "manual"
    created_at: datetime | None = None
    unsubscribed_at: datetime | None = None

    def __post_init__(self):
        if not is_valid_email(self.email):
            raise ValidationError(f"Invalid email address: {self.email}")
        if not self.unsubscribe_token:
            raise ValidationError("Contact must have an unsubscribe token")
        if self.name and len(self.name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")

    @classmethod
    def from_row(cls, row: dict) -> "Contact":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            email=row["email"],
            name=row.get("name"),
            subscribed=row["subscribed"],
            unsubscribe_token=row["unsubscribe_token"],
            source=row.get("source") or "manual",
            created_at=row.get("created_at"),
            unsubscribed_at=row.get("unsubscribed_at"),
        )

    def unsubscribe_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/unsubscribe?token={quote(self.unsubscribe_token)}"
