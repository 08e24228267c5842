from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from app.auth.verify import current_user_id
from app.models.api.sending_domain_request import AddSendingDomainRequest
from app.models.api.sending_domain_response import (
    SendingDomainListResponse,
    SendingDomainResponse,
)
from app.models.domain.dns_domain import SendingDomain
from app.services.sending_domain_service import SendingDomainService

router = APIRouter(prefix="/api/sending-domains", tags=["sending-domains"])


def get_sending_domain_service() -> SendingDomainService:
    return SendingDomainService()


def _to_response(domain: SendingDomain) -> SendingDomainResponse:
    return SendingDomainResponse(**asdict(domain))


@router.get("", response_model=SendingDomainListResponse)
async def list_domains(
    user_id: int = Depends(current_user_id),
    service: SendingDomainService = Depends(get_sending_domain_service),
):
    return SendingDomainListResponse(domains=[_to_response(d) for d in await service.list(user_id)])


@router.post("", response_model=SendingDomainResponse, status_code=status.HTTP_201_CREATED)
async def add_domain(
    body: AddSendingDomainRequest,
    user_id: int = Depends(current_user_id),
    service: SendingDomainService = Depends(get_sending_domain_service),
):
    return _to_response(await service.add(user_id, body.domain))


@router.post("/{domain_id}/verify", response_model=SendingDomainResponse)
async def verify_domain(
    domain_id: int,
    user_id: int = Depends(current_user_id),
    service: SendingDomainService = Depends(get_sending_domain_service),
):
    return _to_response(await service.verify(user_id, domain_id))


@router.delete("/{domain_id}")
async def delete_domain(
    domain_id: int,
    user_id: int = Depends(current_user_id),
    service: SendingDomainService = Depends(get_sending_domain_service),
):
    await service.delete(user_id, domain_id)
    return {"success": True}
