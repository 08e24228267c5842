from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status

from app.auth.verify import current_user_id
from app.models.api.contact_request import AddContactRequest, DeleteContactsRequest
from app.models.api.contact_response import (
    ContactListResponse,
    ContactQuotaResponse,
    ContactResponse,
)
from app.models.domain.contact_domain import Contact
from app.services import contact_service

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def _to_response(contact: Contact) -> ContactResponse:
    data = asdict(contact)
    # Tokens are only ever delivered inside the recipient's own email
    data.pop("unsubscribe_token")
    data.pop("user_id")
    return ContactResponse(**data)


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    subscribed: bool | None = Query(None), user_id: int = Depends(current_user_id)
):
    data = await contact_service.list_contacts(user_id, subscribed)
    return ContactListResponse(
        contacts=[_to_response(c) for c in data["contacts"]],
        stats=data["stats"],
    )


@router.get("/quota", response_model=ContactQuotaResponse)
async def contact_quota(
    additional: int = Query(1, ge=0, le=100000), user_id: int = Depends(current_user_id)
):
    quota = await contact_service.check_contact_quota(user_id, additional)
    return ContactQuotaResponse(**asdict(quota))


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def add_contact(body: AddContactRequest, user_id: int = Depends(current_user_id)):
    contact = await contact_service.add_contact(user_id, body.email, body.name, body.source)
    return _to_response(contact)


@router.post("/delete")
async def delete_contacts(body: DeleteContactsRequest, user_id: int = Depends(current_user_id)):
    deleted = await contact_service.delete_contacts(user_id, body.contact_ids)
    return {"success": True, "deleted": deleted}
