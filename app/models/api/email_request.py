# app/models/api/email_request.py
from pydantic import BaseModel, Field


class SendEmailRequest(BaseModel):
    """Request body for a single quota-enforced send."""

    to: str = Field(..., max_length=254)
    subject: str = Field(..., min_length=1, max_length=500)
    html: str = Field(..., min_length=1)
    reply_to: str | None = None
    track_id: str | None = None
