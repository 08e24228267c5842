"""
Artist-owned sending domains, registered and verified through Mailgun.
"""

import asyncio

from app.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.dns_domain import SendingDomain, normalize_domain
from app.repositories.sending_domain_repository import SendingDomainRepository
from app.services.mailgun_client import MailgunClient, MailgunError

logger = get_logger(__name__)


class SendingDomainService:
    def __init__(self, mailgun: MailgunClient | None = None, repository=SendingDomainRepository):
        self._mailgun = mailgun
        self.repository = repository

    @property
    def mailgun(self) -> MailgunClient:
        if self._mailgun is None:
            self._mailgun = MailgunClient()
        return self._mailgun

    async def _owned(self, user_id: int, domain_id: int) -> SendingDomain:
        domain = await self.repository.find_by_id(domain_id)
        if domain is None:
            raise NotFoundError("Sending domain not found")
        if domain.user_id != user_id:
            raise ForbiddenError("You do not own this domain")
        return domain

    async def add(self, user_id: int, domain_name: str) -> SendingDomain:
        name = normalize_domain(domain_name)

        if await self.repository.find_by_domain(name):
            raise ConflictError(f"Domain {name} is already registered")

        try:
            dns_records = await asyncio.to_thread(self.mailgun.create_domain, name)
        except MailgunError as e:
            raise ValidationError(f"Could not register domain: {e}") from e

        domain = await self.repository.create(user_id, name, dns_records, name)
        logger.info("Sending domain added", user_id=user_id, domain_id=domain.id)
        return domain

    async def verify(self, user_id: int, domain_id: int) -> SendingDomain:
        domain = await self._owned(user_id, domain_id)

        if domain.is_verified():
            return domain
        if not domain.can_verify():
            raise ValidationError(f"Domain cannot be verified while {domain.status}")

        try:
            status = await asyncio.to_thread(
                self.mailgun.verify_domain, domain.mailgun_domain_name or domain.domain
            )
        except MailgunError as e:
            return await self.repository.update_verification(domain.id, "failed", str(e))

        if status["verified"]:
            updated = await self.repository.update_verification(domain.id, "verified", None)
            logger.info("Sending domain verified", user_id=user_id, domain_id=domain.id)
            return updated

        missing = [kind.upper() for kind in ("spf", "dkim") if not status[kind]]
        message = f"DNS records not verified: {', '.join(missing)}"
        return await self.repository.update_verification(domain.id, "failed", message)

    async def list(self, user_id: int) -> list[SendingDomain]:
        return await self.repository.list_for_user(user_id)

    async def delete(self, user_id: int, domain_id: int) -> None:
        domain = await self._owned(user_id, domain_id)

        try:
            await asyncio.to_thread(
                self.mailgun.delete_domain, domain.mailgun_domain_name or domain.domain
            )
        except MailgunError as e:
            # Already gone on Mailgun's side is fine; anything else keeps the row
            if e.status_code != 404:
                raise ValidationError(f"Could not delete domain: {e}") from e

        await self.repository.delete(domain.id)
        logger.info("Sending domain deleted", user_id=user_id, domain_id=domain.id)
