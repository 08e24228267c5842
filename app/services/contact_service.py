"""
Subscriber list management and public unsubscribe.
"""

from dataclasses import dataclass
from typing import Any

from app.db.helpers import with_db_retry
from app.errors import NotFoundError, QuotaExceededError, ValidationError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import MAX_NAME_LENGTH, Contact
from app.models.domain.validation import is_valid_email, normalize_email
from app.repositories.contact_repository import ContactRepository
from app.repositories.user_repository import UserRepository

logger = get_logger(__name__)


@dataclass(slots=True)
class ContactQuota:
    allowed: bool
    current_count: int
    limit: int
    remaining: int
    upgrade_required: bool
    message: str | None = None


async def check_contact_quota(user_id: int, additional: int = 1) -> ContactQuota:
    """
    Report whether `additional` new contacts fit under the user's plan limit.

    Advisory for concurrent writers: two adds racing at the boundary may
    both pass.
    """
    if additional < 0:
        raise ValidationError("additional must be non-negative")

    limit = await UserRepository.get_max_contacts(user_id)
    if limit is None:
        raise NotFoundError("User not found")

    current = await ContactRepository.count_for_user(user_id)
    would_exceed = current + additional > limit

    return ContactQuota(
        allowed=not would_exceed,
        current_count=current,
        limit=limit,
        remaining=max(0, limit - current),
        upgrade_required=would_exceed,
        message=(
            f"Contact limit reached ({current}/{limit}). "
            "Please upgrade your plan to add more contacts."
            if would_exceed
            else None
        ),
    )


async def add_contact(
    user_id: int, email: str, name: str | None = None, source: str = "manual"
) -> Contact:
    email = normalize_email(email or "")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")

    name = (name or "").strip() or None
    if name and len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")

    # Re-adding an existing address is an update and needs no free slot
    quota = await check_contact_quota(user_id)
    if not quota.allowed and not await ContactRepository.exists(user_id, email):
        logger.info("Contact limit reached", user_id=user_id, limit=quota.limit)
        raise QuotaExceededError(quota.message, limit=quota.limit, used=quota.current_count)

    return await ContactRepository.create(user_id, email, name, source)


@with_db_retry(max_retries=2, base_delay=0.1)
async def list_contacts(user_id: int, subscribed: bool | None = None) -> dict[str, Any]:
    contacts = await ContactRepository.list_for_user(user_id, subscribed)
    stats = await ContactRepository.get_stats(user_id)
    return {"contacts": contacts, "stats": stats}


async def delete_contacts(user_id: int, contact_ids: list[int]) -> int:
    if not contact_ids:
        raise ValidationError("contact_ids must not be empty")
    return await ContactRepository.delete(user_id, contact_ids)


async def unsubscribe(token: str) -> dict[str, Any]:
    """
    Unsubscribe the contact owning `token`.

    Idempotent: repeating the request reports already_unsubscribed=True.
    """
    if not token or not token.strip():
        raise ValidationError("Unsubscribe token is required")

    contact = await ContactRepository.find_by_unsubscribe_token(token.strip())
    if contact is None:
        raise NotFoundError("Invalid unsubscribe link")

    if not contact.subscribed:
        return {"email": contact.email, "already_unsubscribed": True}

    changed = await ContactRepository.unsubscribe(contact.id)
    logger.info("Contact unsubscribed", contact_id=contact.id, user_id=contact.user_id)

    return {"email": contact.email, "already_unsubscribed": not changed}
