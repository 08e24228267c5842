"""
admin.py
--------
Admin-only account management. The admin role is re-checked against the
database, not trusted from the token.
"""

from fastapi import APIRouter, Depends

from app.auth.verify import current_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.auth_request import UpdateQuotaRequest
from app.services import quota_service

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = get_logger(__name__)


@router.patch("/users/{user_id}/quota")
async def update_user_quota(
    user_id: int, body: UpdateQuotaRequest, admin_user_id: int = Depends(current_user_id)
):
    await quota_service.update_user_quota(admin_user_id, user_id, body.monthly_limit)
    return {"success": True, "user_id": user_id, "monthly_limit": body.monthly_limit}
