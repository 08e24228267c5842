# app/models/api/campaign_request.py
from datetime import datetime

from pydantic import BaseModel, Field


class CreateCampaignRequest(BaseModel):
    subject: str = Field("", max_length=500)
    html_content: str = ""
    track_id: str | None = None
    template_id: str | None = None
    scheduled_at: datetime | None = None


class UpdateCampaignRequest(BaseModel):
    subject: str | None = Field(None, max_length=500)
    html_content: str | None = None
    scheduled_at: datetime | None = None
