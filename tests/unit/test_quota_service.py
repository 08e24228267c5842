from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.domain.quota_domain import QuotaTracking
from app.models.domain.user_domain import User
from app.services import quota_service
from tests.conftest import FIXED_NOW


@pytest.fixture
def quota_repo(monkeypatch):
    repo = AsyncMock()
    monkeypatch.setattr(quota_service, "QuotaTrackingRepository", repo)
    return repo


@pytest.fixture
def user_repo(monkeypatch):
    repo = AsyncMock()
    monkeypatch.setattr(quota_service, "UserRepository", repo)
    return repo


def _quota(sent=0, limit=10, last_reset=FIXED_NOW):
    return QuotaTracking(
        id=1, user_id=1, emails_sent_today=sent, monthly_limit=limit, last_reset_date=last_reset
    )


@pytest.mark.asyncio
async def test_check_quota_reports_remaining_and_next_midnight(quota_repo):
    quota_repo.get_by_user_id.return_value = _quota(sent=4)

    status = await quota_service.check_quota(1, now=FIXED_NOW)

    assert status.allowed is True
    assert status.remaining == 6
    assert status.reset_date.isoformat() == "2026-03-11T00:00:00+00:00"
    quota_repo.reset_daily_count.assert_not_awaited()


@pytest.mark.asyncio
async def test_check_quota_applies_stale_reset(quota_repo):
    quota_repo.get_by_user_id.return_value = _quota(
        sent=10, last_reset=FIXED_NOW - timedelta(days=2)
    )

    status = await quota_service.check_quota(1, now=FIXED_NOW)

    assert status.allowed is True
    assert status.emails_sent_today == 0
    quota_repo.reset_daily_count.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_check_quota_at_limit(quota_repo):
    quota_repo.get_by_user_id.return_value = _quota(sent=10)

    status = await quota_service.check_quota(1, now=FIXED_NOW)

    assert status.allowed is False
    assert status.remaining == 0


@pytest.mark.asyncio
async def test_check_quota_missing_row(quota_repo):
    quota_repo.get_by_user_id.return_value = None

    with pytest.raises(NotFoundError):
        await quota_service.check_quota(5, now=FIXED_NOW)


@pytest.mark.asyncio
async def test_admin_can_update_limit(quota_repo, user_repo):
    user_repo.find_by_id.side_effect = [
        User(id=1, email="admin@example.com", role="admin"),
        User(id=2, email="artist@example.com"),
    ]

    await quota_service.update_user_quota(1, 2, 500)

    quota_repo.update_monthly_limit.assert_awaited_once_with(2, 500)


@pytest.mark.asyncio
async def test_non_admin_cannot_update_limit(quota_repo, user_repo):
    user_repo.find_by_id.return_value = User(id=1, email="artist@example.com")

    with pytest.raises(ForbiddenError):
        await quota_service.update_user_quota(1, 2, 500)

    quota_repo.update_monthly_limit.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -5, 10001])
async def test_limit_out_of_range(quota_repo, user_repo, limit):
    user_repo.find_by_id.return_value = User(id=1, email="admin@example.com", role="admin")

    with pytest.raises(ValidationError):
        await quota_service.update_user_quota(1, 2, limit)
