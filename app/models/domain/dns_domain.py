"""
Artist-owned sending domain.

Status flow:
    pending -> dns_configured -> verifying -> verified
                                           -> failed
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from app.errors import ValidationError

DomainStatus = Literal["pending", "dns_configured", "verifying", "verified", "failed"]

DOMAIN_STATUSES = ("pending", "dns_configured", "verifying", "verified", "failed")

_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)(?!-)([a-z0-9-]{1,63}(?<!-)\.)+[a-z]{2,63}$")


def normalize_domain(domain: str) -> str:
    """Lowercase and validate a bare domain name such as "geebeat.com"."""
    value = (domain or "").strip().lower().rstrip(".")
    if not _DOMAIN_RE.match(value):
        raise ValidationError(f"Invalid domain name: {domain}")
    return value


@dataclass(slots=True)
class SendingDomain:
    id: int
    user_id: int
    domain: str
    status: DomainStatus
    dns_records: dict[str, Any] | None = None
    mailgun_domain_name: str | None = None
    verification_attempts: int = 0
    last_verification_at: datetime | None = None
    verified_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        if self.status not in DOMAIN_STATUSES:
            raise ValidationError(f"Invalid domain status: {self.status}")

    @classmethod
    def from_row(cls, row: dict) -> "SendingDomain":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            domain=row["domain"],
            status=row["status"],
            dns_records=row.get("dns_records"),
            mailgun_domain_name=row.get("mailgun_domain_name"),
            verification_attempts=row.get("verification_attempts") or 0,
            last_verification_at=row.get("last_verification_at"),
            verified_at=row.get("verified_at"),
            error_message=row.get("error_message"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def is_verified(self) -> bool:
        return self.status == "verified"

    def can_verify(self) -> bool:
        return self.status in ("pending", "dns_configured", "failed")
