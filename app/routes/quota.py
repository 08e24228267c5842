from fastapi import APIRouter, Depends

from app.auth.verify import current_user_id
from app.models.api.email_response import QuotaResponse
from app.services import quota_service

router = APIRouter(prefix="/api", tags=["quota"])


@router.get("/quota", response_model=QuotaResponse)
async def get_quota(user_id: int = Depends(current_user_id)):
    """Today's usage. Advisory only; sends re-check under the row lock."""
    status = await quota_service.check_quota(user_id)
    return QuotaResponse(
        allowed=status.allowed,
        remaining=status.remaining,
        emails_sent_today=status.emails_sent_today,
        monthly_limit=status.monthly_limit,
        reset_date=status.reset_date,
    )
