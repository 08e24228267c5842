"""
unsubscribe.py
--------------
Public one-click unsubscribe. GET serves link clicks, POST serves mail
clients honouring List-Unsubscribe-Post (RFC 8058). Both are idempotent.
"""

from fastapi import APIRouter, Query

from app.models.api.contact_response import UnsubscribeResponse
from app.services import contact_service

router = APIRouter(prefix="/api", tags=["unsubscribe"])


async def _unsubscribe(token: str) -> UnsubscribeResponse:
    result = await contact_service.unsubscribe(token)
    message = (
        "Already unsubscribed" if result["already_unsubscribed"] else "Successfully unsubscribed"
    )
    return UnsubscribeResponse(
        email=result["email"],
        already_unsubscribed=result["already_unsubscribed"],
        message=message,
    )


@router.get("/unsubscribe", response_model=UnsubscribeResponse)
async def unsubscribe_get(token: str = Query("")):
    return await _unsubscribe(token)


@router.post("/unsubscribe", response_model=UnsubscribeResponse)
async def unsubscribe_post(token: str = Query("")):
    return await _unsubscribe(token)
