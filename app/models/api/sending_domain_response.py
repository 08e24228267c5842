# app/models/api/sending_domain_response.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class SendingDomainResponse(BaseModel):
    id: int
    domain: str
    status: str
    dns_records: dict[str, Any] | None = None
    verification_attempts: int = 0
    last_verification_at: datetime | None = None
    verified_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None


class SendingDomainListResponse(BaseModel):
    domains: list[SendingDomainResponse]
