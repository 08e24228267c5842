"""
Quota status and administration.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.quota_domain import MAX_DAILY_LIMIT
from app.repositories.quota_repository import QuotaTrackingRepository
from app.repositories.user_repository import UserRepository

logger = get_logger(__name__)


@dataclass(slots=True)
class QuotaStatus:
    allowed: bool
    remaining: int
    emails_sent_today: int
    monthly_limit: int
    reset_date: datetime


async def check_quota(user_id: int, now: datetime | None = None) -> QuotaStatus:
    """
    Report today's quota for a user, applying the daily reset when due.

    Read-only callers may race a concurrent send; the numbers are advisory.
    The send path re-checks under the row lock.
    """
    now = now or datetime.now(UTC)

    quota = await QuotaTrackingRepository.get_by_user_id(user_id)
    if quota is None:
        raise NotFoundError(f"Quota not found for user {user_id}")

    if quota.needs_reset(now):
        await QuotaTrackingRepository.reset_daily_count(user_id)
        quota.emails_sent_today = 0
        quota.last_reset_date = now

    return QuotaStatus(
        allowed=quota.can_send_email(),
        remaining=quota.remaining(),
        emails_sent_today=quota.emails_sent_today,
        monthly_limit=quota.monthly_limit,
        reset_date=quota.next_reset_at(now),
    )


async def update_user_quota(admin_user_id: int, target_user_id: int, new_limit: int) -> None:
    admin = await UserRepository.find_by_id(admin_user_id)
    if admin is None or not admin.is_admin():
        raise ForbiddenError("Admin access required")

    if not isinstance(new_limit, int) or not 0 < new_limit <= MAX_DAILY_LIMIT:
        raise ValidationError(f"Daily limit must be between 1 and {MAX_DAILY_LIMIT}")

    target = await UserRepository.find_by_id(target_user_id)
    if target is None:
        raise NotFoundError(f"User {target_user_id} not found")

    await QuotaTrackingRepository.update_monthly_limit(target_user_id, new_limit)

    logger.info(
        "User quota updated by admin",
        admin_user_id=admin_user_id,
        target_user_id=target_user_id,
        new_limit=new_limit,
    )
