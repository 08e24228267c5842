# app/models/api/email_response.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class SendEmailResponse(BaseModel):
    success: bool
    message_id: str | None = None
    quota_remaining: int


class QuotaResponse(BaseModel):
    allowed: bool
    remaining: int
    emails_sent_today: int
    monthly_limit: int
    reset_date: datetime


class EmailStatsResponse(BaseModel):
    total_sent: int
    delivered: int
    opened: int
    clicked: int
    bounced: int
    failed: int
    open_rate: float
    click_rate: float


class ExecutionHistoryResponse(BaseModel):
    executions: list[dict[str, Any]]
