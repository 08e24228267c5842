# app/models/api/sending_domain_request.py
from pydantic import BaseModel, Field


class AddSendingDomainRequest(BaseModel):
    domain: str = Field(..., min_length=3, max_length=253, description='e.g. "geebeat.com"')
