# app/models/api/campaign_response.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class CampaignResponse(BaseModel):
    id: str
    subject: str
    html_content: str
    status: Literal["draft", "sent"]
    track_id: str | None = None
    template_id: str | None = None
    scheduled_at: datetime | None = None
    sent_at: datetime | None = None
    recipients_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CampaignListResponse(BaseModel):
    campaigns: list[CampaignResponse]


class SendFailure(BaseModel):
    email: str
    error: str


class SendCampaignResponse(BaseModel):
    success: bool
    campaign_id: str
    emails_sent: int
    emails_failed: int
    emails_skipped: int
    total_contacts: int
    duration_ms: int
    quota_exhausted: bool = False
    failures: list[SendFailure] = Field(default_factory=list)
