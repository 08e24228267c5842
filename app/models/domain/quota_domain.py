"""
Daily email quota for one user.

A user may send at most `monthly_limit` emails per UTC calendar day. The
column name is historical: the limit has always been applied per day.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta

from app.errors import ValidationError

MAX_DAILY_LIMIT = 10000


@dataclass(slots=True)
class QuotaTracking:
    """Represents a quota_tracking row."""

    id: int
    user_id: int
    emails_sent_today: int
    monthly_limit: int
    last_reset_date: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        if self.user_id <= 0:
            raise ValidationError("user_id must be positive")
        if self.emails_sent_today < 0:
            raise ValidationError("emails_sent_today cannot be negative")
        if not 0 < self.monthly_limit <= MAX_DAILY_LIMIT:
            raise ValidationError(f"Daily limit must be between 1 and {MAX_DAILY_LIMIT}")

    @classmethod
    def from_row(cls, row: dict) -> "QuotaTracking":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            emails_sent_today=row["emails_sent_today"],
            monthly_limit=row["monthly_limit"],
            last_reset_date=row["last_reset_date"],
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def needs_reset(self, now: datetime | None = None) -> bool:
        """True when `now` falls on a different UTC day than the last reset."""
        now = now or datetime.now(UTC)
        return _utc_date(now) != _utc_date(self.last_reset_date)

    def can_send_email(self) -> bool:
        return self.emails_sent_today < self.monthly_limit

    def remaining(self) -> int:
        return max(0, self.monthly_limit - self.emails_sent_today)

    def next_reset_at(self, now: datetime | None = None) -> datetime:
        """Next UTC midnight after `now`."""
        now = now or datetime.now(UTC)
        tomorrow = _utc_date(now) + timedelta(days=1)
        return datetime.combine(tomorrow, time.min, tzinfo=UTC)


def _utc_date(value: datetime):
    # Naive timestamps come from the pool's UTC session timezone
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(UTC).date()
