from unittest.mock import AsyncMock

import pytest

from app.models.domain.email_log_domain import EmailLog
from app.services.email_event_service import EmailEventService


def _service(log: EmailLog | None):
    logs = AsyncMock()
    logs.find_by_provider_id.return_value = log
    contacts = AsyncMock()
    return EmailEventService(email_log_repository=logs, contact_repository=contacts), logs, contacts


def _log() -> EmailLog:
    return EmailLog(id=10, user_id=1, recipient_email="fan@example.com", status="sent", contact_id=5)


@pytest.mark.asyncio
async def test_delivered_marks_log_and_records_event():
    service, logs, _ = _service(_log())

    assert await service.process("email.delivered", {"email_id": "re-1"}) is True

    logs.mark_delivered.assert_awaited_once_with(10)
    event = logs.record_event.await_args.args[0]
    assert event.event_type == "delivered"
    assert event.email_log_id == 10
    assert event.contact_id == 5


@pytest.mark.asyncio
async def test_hard_bounce_marks_log_and_unsubscribes_contact():
    service, logs, contacts = _service(_log())

    data = {"email_id": "re-1", "bounce": {"type": "Permanent", "message": "Mailbox does not exist"}}
    await service.process("email.bounced", data)

    logs.mark_bounced.assert_awaited_once_with(10, "Bounced: Permanent - Mailbox does not exist")
    contacts.unsubscribe.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_soft_bounce_keeps_subscription():
    service, logs, contacts = _service(_log())

    await service.process("email.bounced", {"email_id": "re-1", "bounce": {"type": "Transient"}})

    logs.mark_bounced.assert_awaited_once()
    contacts.unsubscribe.assert_not_awaited()


@pytest.mark.asyncio
async def test_click_records_url():
    service, logs, _ = _service(_log())

    await service.process("email.clicked", {"email_id": "re-1", "click": {"link": "https://sc.com/t"}})

    logs.mark_clicked.assert_awaited_once_with(10, "https://sc.com/t")
    assert logs.record_event.await_args.args[0].event_data == {"url": "https://sc.com/t"}


@pytest.mark.asyncio
async def test_opened_increments():
    service, logs, _ = _service(_log())

    await service.process("email.opened", {"email_id": "re-1"})

    logs.mark_opened.assert_awaited_once_with(10)


@pytest.mark.asyncio
async def test_unknown_email_and_unknown_type_are_ignored():
    service, logs, _ = _service(None)

    assert await service.process("email.opened", {"email_id": "nope"}) is False
    assert await service.process("contact.created", {"email_id": "re-1"}) is False
    assert await service.process("email.opened", {}) is False
    logs.record_event.assert_not_awaited()
