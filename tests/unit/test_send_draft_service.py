"""
Tests for sending a campaign draft to the subscriber list.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from psycopg import errors as pg_errors

from app.db.helpers import DatabaseError
from app.errors import ConflictError, NotFoundError, QuotaExceededError, ValidationError
from app.models.domain.campaign_domain import EmailCampaign
from app.models.domain.contact_domain import Contact
from app.services.campaign_service import SendDraftService, personalize_html
from app.services.send_email_service import SendTrackEmailService
from tests.conftest import FIXED_NOW, FakeEmailProvider, FakeQuotaStore

HTML = '<p>New track!</p><a href="https://app.example.com/api/unsubscribe?token=TEMP_TOKEN">Unsubscribe</a>'


def _draft(**overrides) -> EmailCampaign:
    values = {"id": "camp-1", "user_id": 1, "subject": "Out now", "html_content": HTML}
    values.update(overrides)
    return EmailCampaign(**values)


def _contacts(count: int) -> list[Contact]:
    return [
        Contact(
            id=i,
            user_id=1,
            email=f"fan{i}@example.com",
            name=None,
            subscribed=True,
            unsubscribe_token=f"tok{i}",
        )
        for i in range(1, count + 1)
    ]


@asynccontextmanager
async def _draft_transaction():
    yield object()


def _build(quota_store, provider, draft=None, contacts=None):
    campaigns = AsyncMock()
    campaigns.lock_draft.return_value = draft
    campaigns.mark_as_sent.return_value = True

    contact_repository = AsyncMock()
    contact_repository.get_subscribed.return_value = contacts or []

    execution_logs = AsyncMock()

    send_service = SendTrackEmailService(
        email_provider=provider,
        quota_repository=quota_store,
        email_log_repository=AsyncMock(),
        transaction=quota_store.transaction,
        clock=lambda: FIXED_NOW,
    )
    service = SendDraftService(
        send_service=send_service,
        campaign_repository=campaigns,
        contact_repository=contact_repository,
        execution_log_repository=execution_logs,
        transaction=_draft_transaction,
    )
    return service, campaigns, execution_logs


def test_personalize_html_replaces_placeholders():
    html = "a unsubscribe?token=TEMP_TOKEN b {{unsubscribe_url}}"
    result = personalize_html(html, "https://x/api/unsubscribe?token=abc", "abc")
    assert result == "a unsubscribe?token=abc b https://x/api/unsubscribe?token=abc"


@pytest.mark.asyncio
async def test_sends_to_all_contacts_and_promotes_draft(quota_store, email_provider):
    quota_store.add(1, limit=10)
    service, campaigns, execution_logs = _build(
        quota_store, email_provider, draft=_draft(), contacts=_contacts(3)
    )

    result = await service.execute(1, "camp-1")

    assert result.emails_sent == 3
    assert result.emails_failed == 0
    assert result.promoted is True
    assert quota_store.rows[1].emails_sent_today == 3
    campaigns.mark_as_sent.assert_awaited_once()
    assert campaigns.mark_as_sent.await_args.args[:2] == ("camp-1", 3)

    first = email_provider.sent[0]
    assert "token=tok1" in first.html
    assert "TEMP_TOKEN" not in first.html
    assert first.unsubscribe_url == "https://app.example.com/api/unsubscribe?token=tok1"
    assert first.tags["campaign_id"] == "camp-1"

    log_kwargs = execution_logs.create.await_args.kwargs
    assert log_kwargs["emails_sent"] == 3
    assert log_kwargs["error"] is None


@pytest.mark.asyncio
async def test_transport_failures_are_collected_and_sending_continues(quota_store):
    quota_store.add(1, limit=10)
    provider = FakeEmailProvider(fail_for={"fan2@example.com"})
    service, campaigns, _ = _build(quota_store, provider, draft=_draft(), contacts=_contacts(3))

    result = await service.execute(1, "camp-1")

    assert result.emails_sent == 2
    assert result.emails_failed == 1
    assert result.failures[0]["email"] == "fan2@example.com"
    assert quota_store.rows[1].emails_sent_today == 2
    campaigns.mark_as_sent.assert_awaited_once()


@pytest.mark.asyncio
async def test_quota_exhaustion_stops_batch_and_skips_the_rest(quota_store, email_provider):
    quota_store.add(1, limit=2)
    service, campaigns, execution_logs = _build(
        quota_store, email_provider, draft=_draft(), contacts=_contacts(5)
    )

    result = await service.execute(1, "camp-1")

    assert result.emails_sent == 2
    assert result.emails_skipped == 3
    assert result.quota_exhausted is True
    assert email_provider.calls == 2
    assert quota_store.rows[1].emails_sent_today == 2
    campaigns.mark_as_sent.assert_awaited_once()
    assert "quota exhausted" in execution_logs.create.await_args.kwargs["error"]


@pytest.mark.asyncio
async def test_no_quota_left_raises_and_keeps_draft(quota_store, email_provider):
    quota_store.add(1, limit=2, sent=2)
    service, campaigns, execution_logs = _build(
        quota_store, email_provider, draft=_draft(), contacts=_contacts(2)
    )

    with pytest.raises(QuotaExceededError):
        await service.execute(1, "camp-1")

    campaigns.mark_as_sent.assert_not_awaited()
    execution_logs.create.assert_awaited_once()
    assert email_provider.calls == 0


@pytest.mark.asyncio
async def test_all_failures_keep_draft(quota_store):
    quota_store.add(1, limit=10)
    provider = FakeEmailProvider(fail_for={"fan1@example.com", "fan2@example.com"})
    service, campaigns, _ = _build(quota_store, provider, draft=_draft(), contacts=_contacts(2))

    result = await service.execute(1, "camp-1")

    assert result.promoted is False
    assert result.emails_failed == 2
    campaigns.mark_as_sent.assert_not_awaited()
    assert quota_store.rows[1].emails_sent_today == 0


@pytest.mark.asyncio
async def test_missing_draft_is_not_found(quota_store, email_provider):
    service, _, _ = _build(quota_store, email_provider, draft=None)

    with pytest.raises(NotFoundError):
        await service.execute(1, "missing")


@pytest.mark.asyncio
async def test_sent_campaign_cannot_be_sent_again(quota_store, email_provider):
    sent = _draft(status="sent", sent_at=FIXED_NOW)
    service, _, _ = _build(quota_store, email_provider, draft=sent, contacts=_contacts(1))

    with pytest.raises(ValidationError, match="already been sent"):
        await service.execute(1, "camp-1")

    assert email_provider.calls == 0


@pytest.mark.asyncio
async def test_draft_without_content_is_rejected(quota_store, email_provider):
    service, _, _ = _build(
        quota_store, email_provider, draft=_draft(html_content=""), contacts=_contacts(1)
    )

    with pytest.raises(ValidationError):
        await service.execute(1, "camp-1")


@pytest.mark.asyncio
async def test_no_subscribers_is_rejected(quota_store, email_provider):
    service, _, _ = _build(quota_store, email_provider, draft=_draft(), contacts=[])

    with pytest.raises(ValidationError, match="No subscribed contacts"):
        await service.execute(1, "camp-1")


@pytest.mark.asyncio
async def test_concurrent_send_of_same_draft_is_conflict(quota_store, email_provider):
    service, campaigns, _ = _build(quota_store, email_provider)
    campaigns.lock_draft.side_effect = pg_errors.LockNotAvailable("could not obtain lock")

    with pytest.raises(ConflictError):
        await service.execute(1, "camp-1")

    assert email_provider.calls == 0


class FlakyQuotaStore(FakeQuotaStore):
    """Raises a database error on the Nth increment."""

    def __init__(self, fail_on: int):
        super().__init__()
        self.fail_on = fail_on
        self.increments = 0

    async def increment_email_count_in_transaction(self, user_id, conn):
        self.increments += 1
        if self.increments == self.fail_on:
            raise DatabaseError("connection lost", operation="execute")
        return await super().increment_email_count_in_transaction(user_id, conn)


class ExplodingProvider(FakeEmailProvider):
    """Raises instead of returning a failed EmailResult for one recipient."""

    def __init__(self, explode_for: str):
        super().__init__()
        self.explode_for = explode_for

    async def send(self, message):
        if message.to == self.explode_for:
            self.calls += 1
            raise RuntimeError("socket closed")
        return await super().send(message)


@pytest.mark.asyncio
async def test_database_error_for_one_recipient_does_not_abort_batch(email_provider):
    store = FlakyQuotaStore(fail_on=3)
    store.add(1, limit=10)
    service, campaigns, execution_logs = _build(
        store, email_provider, draft=_draft(), contacts=_contacts(5)
    )

    result = await service.execute(1, "camp-1")

    assert result.emails_sent == 4
    assert result.emails_failed == 1
    assert result.failures == [{"email": "fan3@example.com", "error": "connection lost"}]
    assert result.promoted is True
    assert store.rows[1].emails_sent_today == 4
    campaigns.mark_as_sent.assert_awaited_once()
    assert campaigns.mark_as_sent.await_args.args[:2] == ("camp-1", 4)
    assert execution_logs.create.await_args.kwargs["emails_sent"] == 4


@pytest.mark.asyncio
async def test_provider_exception_is_recorded_and_rolls_back_its_slot(quota_store):
    quota_store.add(1, limit=10)
    provider = ExplodingProvider(explode_for="fan1@example.com")
    service, campaigns, _ = _build(quota_store, provider, draft=_draft(), contacts=_contacts(3))

    result = await service.execute(1, "camp-1")

    assert result.emails_sent == 2
    assert result.emails_failed == 1
    assert result.failures[0] == {"email": "fan1@example.com", "error": "socket closed"}
    assert quota_store.rows[1].emails_sent_today == 2
    campaigns.mark_as_sent.assert_awaited_once()
