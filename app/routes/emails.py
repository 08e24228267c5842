"""
emails.py
---------
Single quota-enforced send.

Error responses:
    400 invalid input, 404 no quota row, 429 daily limit reached,
    502 provider rejected the email (quota not consumed).
"""

from fastapi import APIRouter, Depends

from app.auth.verify import current_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.email_request import SendEmailRequest
from app.models.api.email_response import SendEmailResponse
from app.services.send_email_service import SendEmailCommand, SendTrackEmailService

router = APIRouter(prefix="/api/emails", tags=["emails"])
logger = get_logger(__name__)


def get_send_email_service() -> SendTrackEmailService:
    return SendTrackEmailService()


@router.post("/send", response_model=SendEmailResponse)
async def send_email(
    body: SendEmailRequest,
    user_id: int = Depends(current_user_id),
    service: SendTrackEmailService = Depends(get_send_email_service),
):
    result = await service.execute(
        SendEmailCommand(
            user_id=user_id,
            to=body.to.strip(),
            subject=body.subject,
            html=body.html,
            reply_to=body.reply_to,
            track_id=body.track_id,
            tags={"user_id": str(user_id)},
        )
    )
    return SendEmailResponse(
        success=result.success,
        message_id=result.message_id,
        quota_remaining=result.quota_remaining,
    )
