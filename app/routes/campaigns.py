"""
campaigns.py
------------
Campaign drafts: CRUD and send-to-subscribers.
"""

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status

from app.auth.verify import current_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.campaign_request import CreateCampaignRequest, UpdateCampaignRequest
from app.models.api.campaign_response import (
    CampaignListResponse,
    CampaignResponse,
    SendCampaignResponse,
)
from app.models.domain.campaign_domain import EmailCampaign
from app.services import campaign_service
from app.services.campaign_service import SendDraftService

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])
logger = get_logger(__name__)


def get_send_draft_service() -> SendDraftService:
    return SendDraftService()


def _to_response(campaign: EmailCampaign) -> CampaignResponse:
    data = asdict(campaign)
    data.pop("user_id")
    return CampaignResponse(**data)


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(
    status_filter: str | None = Query(None, alias="status"),
    user_id: int = Depends(current_user_id),
):
    campaigns = await campaign_service.list_campaigns(user_id, status_filter)
    return CampaignListResponse(campaigns=[_to_response(c) for c in campaigns])


@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(body: CreateCampaignRequest, user_id: int = Depends(current_user_id)):
    campaign = await campaign_service.create_campaign(
        user_id,
        subject=body.subject,
        html_content=body.html_content,
        track_id=body.track_id,
        template_id=body.template_id,
        scheduled_at=body.scheduled_at,
    )
    return _to_response(campaign)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: uuid.UUID, user_id: int = Depends(current_user_id)):
    return _to_response(await campaign_service.get_campaign(user_id, str(campaign_id)))


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: uuid.UUID, body: UpdateCampaignRequest, user_id: int = Depends(current_user_id)
):
    campaign = await campaign_service.update_draft(
        user_id,
        str(campaign_id),
        subject=body.subject,
        html_content=body.html_content,
        scheduled_at=body.scheduled_at,
    )
    return _to_response(campaign)


@router.delete("/{campaign_id}")
async def delete_campaign(campaign_id: uuid.UUID, user_id: int = Depends(current_user_id)):
    await campaign_service.delete_draft(user_id, str(campaign_id))
    return {"success": True}


@router.post("/{campaign_id}/send", response_model=SendCampaignResponse)
async def send_campaign(
    campaign_id: uuid.UUID,
    user_id: int = Depends(current_user_id),
    service: SendDraftService = Depends(get_send_draft_service),
):
    result = await service.execute(user_id, str(campaign_id))
    return SendCampaignResponse(
        success=result.promoted,
        campaign_id=result.campaign_id,
        emails_sent=result.emails_sent,
        emails_failed=result.emails_failed,
        emails_skipped=result.emails_skipped,
        total_contacts=result.total_contacts,
        duration_ms=result.duration_ms,
        quota_exhausted=result.quota_exhausted,
        failures=result.failures,
    )
