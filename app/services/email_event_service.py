"""
Applies provider engagement events (Resend webhooks) to email logs.
"""

from typing import Any

from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_log_domain import EVENT_TYPES, EmailEvent, EmailLog
from app.repositories.contact_repository import ContactRepository
from app.repositories.email_log_repository import EmailLogRepository

logger = get_logger(__name__)

HARD_BOUNCE_TYPES = {"hard", "permanent"}


class EmailEventService:
    """Dispatches one webhook event to its handler and records an email_events row."""

    def __init__(self, email_log_repository=EmailLogRepository, contact_repository=ContactRepository):
        self.email_log_repository = email_log_repository
        self.contact_repository = contact_repository

    async def process(self, event_type: str, data: dict[str, Any]) -> bool:
        """
        Returns True when the event was applied.

        Unknown event types and unknown email ids are ignored so the provider
        does not keep retrying deliveries we cannot use.
        """
        stored_type = EVENT_TYPES.get(event_type)
        if stored_type is None:
            logger.info("Ignoring unhandled webhook event", event_type=event_type)
            return False

        email_id = (data or {}).get("email_id")
        if not email_id:
            logger.warning("Webhook event without email_id", event_type=event_type)
            return False

        log = await self.email_log_repository.find_by_provider_id(email_id)
        if log is None:
            logger.info("Webhook event for unknown email", event_type=event_type, email_id=email_id)
            return False

        event_data = await self._apply(stored_type, log, data)

        await self.email_log_repository.record_event(
            EmailEvent(
                email_log_id=log.id,
                event_type=stored_type,
                event_data=event_data,
                contact_id=log.contact_id,
                resend_email_id=email_id,
            )
        )

        logger.info(
            "Webhook event processed",
            event_type=stored_type,
            email_log_id=log.id,
            user_id=log.user_id,
        )
        return True

    async def _apply(self, event_type: str, log: EmailLog, data: dict[str, Any]) -> dict[str, Any]:
        if event_type == "delivered":
            await self.email_log_repository.mark_delivered(log.id)
            return {}

        if event_type == "delayed":
            return {"reason": _bounce_field(data, "message") or "Delivery delayed"}

        if event_type == "bounced":
            bounce_type = _bounce_field(data, "type") or "unknown"
            reason = _bounce_field(data, "message") or "Unknown reason"
            await self.email_log_repository.mark_bounced(log.id, f"Bounced: {bounce_type} - {reason}")

            if bounce_type.lower() in HARD_BOUNCE_TYPES and log.contact_id:
                await self.contact_repository.unsubscribe(log.contact_id)
                logger.info("Contact unsubscribed after hard bounce", contact_id=log.contact_id)

            return {"bounce_type": bounce_type, "reason": reason}

        if event_type == "opened":
            await self.email_log_repository.mark_opened(log.id)
            return {}

        if event_type == "clicked":
            url = (data.get("click") or {}).get("link")
            await self.email_log_repository.mark_clicked(log.id, url)
            return {"url": url} if url else {}

        # "sent": event row only
        return {}


def _bounce_field(data: dict[str, Any], key: str) -> str | None:
    bounce = data.get("bounce") or {}
    return bounce.get(key) or data.get(f"bounce_{key}")
