"""
Quota-enforced email send.

Every outbound email goes through SendTrackEmailService.execute:

    BEGIN
      SELECT quota row FOR UPDATE         (other sends for this user wait here)
      reset counter if the UTC day changed
      reject if emails_sent_today >= limit
      increment counter
      call the email transport
    COMMIT                                (ROLLBACK on any failure above)

Incrementing before the transport call and rolling back on failure keeps
emails_sent_today equal to the number of accepted sends. Nothing here retries
a failed send.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from app.db.transaction import db_transaction
from app.errors import EmailDeliveryError, NotFoundError, QuotaExceededError, ValidationError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.validation import is_valid_email
from app.repositories.email_log_repository import EmailLogRepository
from app.repositories.quota_repository import QuotaTrackingRepository
from app.services.email import EmailProvider, OutboundEmail, get_email_provider

logger = get_logger(__name__)


@dataclass(slots=True)
class SendEmailCommand:
    user_id: int
    to: str
    subject: str
    html: str
    from_address: str | None = None
    reply_to: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    unsubscribe_url: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    # Only used for the email_logs row written after commit
    contact_id: int | None = None
    campaign_id: str | None = None
    track_id: str | None = None


@dataclass(slots=True)
class SendEmailResult:
    success: bool
    message_id: str | None
    quota_remaining: int


def _validate(command: SendEmailCommand) -> None:
    if not isinstance(command.user_id, int) or command.user_id <= 0:
        raise ValidationError("Invalid user id")
    if not is_valid_email(command.to):
        raise ValidationError("Invalid recipient email address")
    if not command.subject or not command.subject.strip():
        raise ValidationError("Subject is required")
    if not command.html or not command.html.strip():
        raise ValidationError("Email content is required")


class SendTrackEmailService:
    """
    Sends one email while enforcing the sender's daily quota.

    Collaborators are injectable so the locking and rollback behaviour can be
    exercised without PostgreSQL or a real provider.
    """

    def __init__(
        self,
        email_provider: EmailProvider | None = None,
        quota_repository=QuotaTrackingRepository,
        email_log_repository=EmailLogRepository,
        transaction: Callable[[], AbstractAsyncContextManager] = db_transaction,
        clock: Callable[[], datetime] | None = None,
    ):
        self.email_provider = email_provider or get_email_provider()
        self.quota_repository = quota_repository
        self.email_log_repository = email_log_repository
        self.transaction = transaction
        self.clock = clock or (lambda: datetime.now(UTC))

    async def execute(self, command: SendEmailCommand) -> SendEmailResult:
        _validate(command)

        user_id = command.user_id
        provider_name = getattr(self.email_provider, "name", "unknown")

        try:
            async with self.transaction() as conn:
                quota = await self.quota_repository.get_by_user_id_with_lock(user_id, conn)
                if quota is None:
                    raise NotFoundError(f"Quota not found for user {user_id}")

                if quota.needs_reset(self.clock()):
                    await self.quota_repository.reset_daily_count_in_transaction(user_id, conn)
                elif not quota.can_send_email():
                    raise QuotaExceededError(
                        f"Daily email limit reached ({quota.monthly_limit}). Quota resets tomorrow.",
                        limit=quota.monthly_limit,
                        used=quota.emails_sent_today,
                    )

                sent_today = await self.quota_repository.increment_email_count_in_transaction(
                    user_id, conn
                )

                result = await self.email_provider.send(
                    OutboundEmail(
                        to=command.to,
                        subject=command.subject,
                        html=command.html,
                        from_address=command.from_address,
                        reply_to=command.reply_to,
                        headers=dict(command.headers),
                        tags=dict(command.tags),
                        unsubscribe_url=command.unsubscribe_url,
                    )
                )

                if not result.success:
                    # Raising inside the block rolls back the increment
                    raise EmailDeliveryError(
                        result.error or "Email delivery failed", provider=provider_name
                    )

        except QuotaExceededError as e:
            logger.warning("Daily email quota exceeded", user_id=user_id, limit=e.limit, used=e.used)
            raise

        except EmailDeliveryError as e:
            logger.error(
                "Email delivery failed, quota increment rolled back",
                user_id=user_id,
                provider=provider_name,
                error=e.message,
            )
            await self._record_log(command, None, status="failed", error=e.message)
            raise

        quota_remaining = max(0, quota.monthly_limit - sent_today)

        logger.info(
            "Email sent",
            user_id=user_id,
            provider=provider_name,
            message_id=result.message_id,
            quota_remaining=quota_remaining,
            campaign_id=command.campaign_id,
        )

        await self._record_log(command, result.message_id, status="sent")

        return SendEmailResult(
            success=True, message_id=result.message_id, quota_remaining=quota_remaining
        )

    async def _record_log(
        self,
        command: SendEmailCommand,
        message_id: str | None,
        status: str,
        error: str | None = None,
    ) -> None:
        """Write the email_logs row. Runs after commit and never affects quota."""
        if self.email_log_repository is None:
            return
        try:
            await self.email_log_repository.create(
                user_id=command.user_id,
                recipient_email=command.to,
                resend_email_id=message_id,
                status=status,
                contact_id=command.contact_id,
                campaign_id=command.campaign_id,
                track_id=command.track_id,
                error=error,
            )
        except Exception as e:
            logger.warning(
                "Failed to record email log",
                user_id=command.user_id,
                message_id=message_id,
                error=str(e),
            )
