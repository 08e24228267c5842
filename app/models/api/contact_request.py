# app/models/api/contact_request.py
from pydantic import BaseModel, Field


class AddContactRequest(BaseModel):
    email: str = Field(..., max_length=254)
    name: str | None = Field(None, max_length=100)
    source: str = Field("manual", max_length=100)


class DeleteContactsRequest(BaseModel):
    contact_ids: list[int] = Field(..., min_length=1)
