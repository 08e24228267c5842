# app/models/api/contact_response.py
from datetime import datetime

from pydantic import BaseModel


class ContactResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    source: str
    subscribed: bool
    created_at: datetime | None = None
    unsubscribed_at: datetime | None = None


class ContactStats(BaseModel):
    total: int
    subscribed: int
    unsubscribed: int


class ContactListResponse(BaseModel):
    contacts: list[ContactResponse]
    stats: ContactStats


class UnsubscribeResponse(BaseModel):
    success: bool = True
    email: str
    already_unsubscribed: bool
    message: str


class ContactQuotaResponse(BaseModel):
    allowed: bool
    current_count: int
    limit: int
    remaining: int
    upgrade_required: bool
    message: str | None = None
