"""
webhooks.py
-----------
Resend engagement webhooks (delivered / opened / clicked / bounced ...).

Resend delivers through Svix; the raw body is verified against
RESEND_WEBHOOK_SECRET before parsing.
"""

import json

from fastapi import APIRouter, Depends, HTTPException, Request

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.security.hashing import SignatureVerificationError, verify_webhook_signature
from app.services.email_event_service import EmailEventService

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = get_logger(__name__)

ID_HEADER = "svix-id"
TIMESTAMP_HEADER = "svix-timestamp"
SIGNATURE_HEADER = "svix-signature"


def get_email_event_service() -> EmailEventService:
    return EmailEventService()


@router.get("/resend")
async def webhook_status():
    return {
        "status": "ok",
        "endpoint": "/api/webhooks/resend",
        "signature_verification": bool(settings.RESEND_WEBHOOK_SECRET),
    }


@router.post("/resend")
async def resend_webhook(
    request: Request, service: EmailEventService = Depends(get_email_event_service)
):
    raw = await request.body()
    msg_id = request.headers.get(ID_HEADER)

    try:
        verify_webhook_signature(
            settings.RESEND_WEBHOOK_SECRET,
            raw,
            msg_id,
            request.headers.get(TIMESTAMP_HEADER),
            request.headers.get(SIGNATURE_HEADER),
        )
    except SignatureVerificationError as e:
        logger.warning("Rejected webhook", reason=str(e), msg_id=msg_id)
        raise HTTPException(status_code=401, detail="Invalid signature") from e

    try:
        event = json.loads(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Webhook payload must be a JSON object")

    data = event.get("data") or {}
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Webhook data must be a JSON object")

    processed = await service.process(str(event.get("type") or ""), data)
    return {"received": True, "processed": processed}
