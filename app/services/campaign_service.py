"""
Campaign drafts and sending a draft to the subscriber list.

Service layer returns domain models only - API layer handles HTTP concerns.
"""

import time
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime

from psycopg import errors as pg_errors

from app.config import settings
from app.db.helpers import with_db_retry
from app.db.transaction import db_transaction
from app.errors import (
    ConflictError,
    EmailDeliveryError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from app.infrastructure.observability.logging import get_logger
from app.models.domain.campaign_domain import MAX_SUBJECT_LENGTH, EmailCampaign
from app.models.domain.contact_domain import Contact
from app.repositories.campaign_repository import EmailCampaignRepository
from app.repositories.contact_repository import ContactRepository
from app.repositories.execution_log_repository import ExecutionLogRepository
from app.services.send_email_service import SendEmailCommand, SendTrackEmailService

logger = get_logger(__name__)

UNSUBSCRIBE_PLACEHOLDER = "unsubscribe?token=TEMP_TOKEN"
UNSUBSCRIBE_URL_TAG = "{{unsubscribe_url}}"


# =================================================================
# DRAFT CRUD
# =================================================================


def _check_subject(subject: str | None) -> None:
    if subject and len(subject) > MAX_SUBJECT_LENGTH:
        raise ValidationError(f"Subject must be at most {MAX_SUBJECT_LENGTH} characters")


async def create_campaign(
    user_id: int,
    subject: str = "",
    html_content: str = "",
    track_id: str | None = None,
    template_id: str | None = None,
    scheduled_at: datetime | None = None,
) -> EmailCampaign:
    """New campaigns are always drafts; subject and body may be filled in later."""
    _check_subject(subject)
    return await EmailCampaignRepository.create(
        user_id, subject or "", html_content or "", track_id, template_id, scheduled_at
    )


@with_db_retry(max_retries=2, base_delay=0.1)
async def get_campaign(user_id: int, campaign_id: str) -> EmailCampaign:
    campaign = await EmailCampaignRepository.find_by_id(user_id, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    return campaign


@with_db_retry(max_retries=2, base_delay=0.1)
async def list_campaigns(user_id: int, status: str | None = None) -> list[EmailCampaign]:
    if status is not None and status not in ("draft", "sent"):
        raise ValidationError("status must be 'draft' or 'sent'")
    return await EmailCampaignRepository.list_for_user(user_id, status)


async def update_draft(
    user_id: int,
    campaign_id: str,
    subject: str | None = None,
    html_content: str | None = None,
    scheduled_at: datetime | None = None,
) -> EmailCampaign:
    _check_subject(subject)

    updated = await EmailCampaignRepository.update_draft(
        user_id, campaign_id, subject, html_content, scheduled_at
    )
    if updated is not None:
        return updated

    # Distinguish a missing campaign from one that is no longer a draft
    existing = await EmailCampaignRepository.find_by_id(user_id, campaign_id)
    if existing is None:
        raise NotFoundError("Campaign not found")
    raise ValidationError("Sent campaigns cannot be modified")


async def delete_draft(user_id: int, campaign_id: str) -> None:
    if await EmailCampaignRepository.delete_draft(user_id, campaign_id):
        logger.info("Campaign draft deleted", user_id=user_id, campaign_id=campaign_id)
        return

    existing = await EmailCampaignRepository.find_by_id(user_id, campaign_id)
    if existing is None:
        raise NotFoundError("Campaign not found")
    raise ValidationError("Sent campaigns cannot be deleted")


# =================================================================
# SEND DRAFT
# =================================================================


def personalize_html(html: str, unsubscribe_url: str, token: str) -> str:
    """Insert the recipient's own unsubscribe link into the campaign body."""
    return html.replace(UNSUBSCRIBE_PLACEHOLDER, f"unsubscribe?token={token}").replace(
        UNSUBSCRIBE_URL_TAG, unsubscribe_url
    )


@dataclass(slots=True)
class SendDraftResult:
    campaign_id: str
    emails_sent: int = 0
    emails_failed: int = 0
    emails_skipped: int = 0
    total_contacts: int = 0
    duration_ms: int = 0
    failures: list[dict[str, str]] = field(default_factory=list)
    quota_exhausted: bool = False

    @property
    def promoted(self) -> bool:
        return self.emails_sent > 0


class SendDraftService:
    """
    Send a draft campaign to every subscribed contact of its owner.

    The draft row stays locked (FOR UPDATE NOWAIT) for the whole batch so a
    second send of the same draft fails fast instead of double-sending. Each
    recipient goes through the quota-enforced send in its own transaction.
    """

    def __init__(
        self,
        send_service: SendTrackEmailService | None = None,
        campaign_repository=EmailCampaignRepository,
        contact_repository=ContactRepository,
        execution_log_repository=ExecutionLogRepository,
        transaction: Callable[[], AbstractAsyncContextManager] = db_transaction,
    ):
        self.send_service = send_service or SendTrackEmailService()
        self.campaign_repository = campaign_repository
        self.contact_repository = contact_repository
        self.execution_log_repository = execution_log_repository
        self.transaction = transaction

    async def execute(self, user_id: int, draft_id: str) -> SendDraftResult:
        started = time.monotonic()
        result = SendDraftResult(campaign_id=draft_id)
        draft: EmailCampaign | None = None

        try:
            async with self.transaction() as conn:
                draft = await self._lock_draft(user_id, draft_id, conn)

                contacts = await self.contact_repository.get_subscribed(user_id)
                if not contacts:
                    raise ValidationError("No subscribed contacts to send to")
                result.total_contacts = len(contacts)

                logger.info(
                    "Sending campaign",
                    user_id=user_id,
                    campaign_id=draft_id,
                    total_contacts=len(contacts),
                )

                await self._send_to_contacts(user_id, draft, contacts, result)

                if result.emails_sent > 0:
                    await self.campaign_repository.mark_as_sent(draft.id, result.emails_sent, conn)

        except (ConflictError, NotFoundError, ValidationError):
            raise

        except Exception as e:
            # Emails already sent stay sent and counted; record what happened
            result.duration_ms = _elapsed_ms(started)
            await self._record_execution(user_id, draft, result, error=str(e))
            raise

        result.duration_ms = _elapsed_ms(started)
        await self._record_execution(user_id, draft, result, error=_summarize_errors(result))

        logger.info(
            "Campaign send finished",
            user_id=user_id,
            campaign_id=draft_id,
            emails_sent=result.emails_sent,
            emails_failed=result.emails_failed,
            emails_skipped=result.emails_skipped,
            promoted=result.promoted,
            duration_ms=result.duration_ms,
        )

        if not result.promoted and result.quota_exhausted:
            raise QuotaExceededError(
                "Daily email limit reached. Quota resets tomorrow.",
            )

        return result

    async def _lock_draft(self, user_id: int, draft_id: str, conn) -> EmailCampaign:
        try:
            draft = await self.campaign_repository.lock_draft(user_id, draft_id, conn)
        except pg_errors.LockNotAvailable as e:
            raise ConflictError("Campaign is already being sent") from e

        if draft is None:
            raise NotFoundError("Campaign not found")
        if draft.is_sent:
            raise ValidationError("Campaign has already been sent")
        draft.ensure_sendable()
        return draft

    async def _send_to_contacts(
        self,
        user_id: int,
        draft: EmailCampaign,
        contacts: list[Contact],
        result: SendDraftResult,
    ) -> None:
        base_url = settings.unsubscribe_base_url()

        for contact in contacts:
            if result.quota_exhausted:
                result.emails_skipped += 1
                continue

            unsubscribe_url = contact.unsubscribe_url(base_url)
            command = SendEmailCommand(
                user_id=user_id,
                to=contact.email,
                subject=draft.subject,
                html=personalize_html(draft.html_content, unsubscribe_url, contact.unsubscribe_token),
                unsubscribe_url=unsubscribe_url,
                tags={"campaign_id": str(draft.id), "user_id": str(user_id)},
                contact_id=contact.id,
                campaign_id=draft.id,
                track_id=draft.track_id,
            )

            try:
                await self.send_service.execute(command)
                result.emails_sent += 1
            except QuotaExceededError:
                result.quota_exhausted = True
                result.emails_skipped += 1
            except EmailDeliveryError as e:
                result.emails_failed += 1
                result.failures.append({"email": contact.email, "error": e.message})
            except Exception as e:
                # One recipient's failure rolled back only that recipient's quota slot
                logger.warning(
                    "Send to contact failed",
                    campaign_id=str(draft.id),
                    contact_id=contact.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.emails_failed += 1
                result.failures.append({"email": contact.email, "error": str(e)})

    async def _record_execution(
        self,
        user_id: int,
        draft: EmailCampaign | None,
        result: SendDraftResult,
        error: str | None,
    ) -> None:
        try:
            await self.execution_log_repository.create(
                user_id=user_id,
                emails_sent=result.emails_sent,
                duration_ms=result.duration_ms,
                campaign_id=result.campaign_id,
                track_id=draft.track_id if draft else None,
                track_title=draft.subject if draft else None,
                error=error,
            )
        except Exception as e:
            logger.warning(
                "Failed to record execution log",
                user_id=user_id,
                campaign_id=result.campaign_id,
                error=str(e),
            )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _summarize_errors(result: SendDraftResult) -> str | None:
    parts = []
    if result.emails_failed:
        parts.append(f"{result.emails_failed} failed")
    if result.quota_exhausted:
        parts.append(f"quota exhausted, {result.emails_skipped} skipped")
    return "; ".join(parts) or None
