import asyncio
import os
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime

# Settings are read at import time; configure before importing the app
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-enough-length-0123456789")
os.environ.setdefault("EMAIL_PROVIDER", "resend")
os.environ.setdefault("APP_URL", "https://app.example.com")
os.environ.setdefault("environment", "test")

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402

from app.auth.verify import current_user_id  # noqa: E402
from app.middleware.error_handlers import register_error_handlers  # noqa: E402
from app.models.domain.quota_domain import QuotaTracking  # noqa: E402
from app.services.email.base import EmailResult  # noqa: E402

FIXED_NOW = datetime(2026, 3, 10, 15, 30, tzinfo=UTC)


class FakeConnection:
    """Stands in for a psycopg connection inside a FakeQuotaStore transaction."""

    def __init__(self):
        self.locks: list[asyncio.Lock] = []
        self.snapshot: dict[int, QuotaTracking] = {}


class FakeQuotaStore:
    """
    In-memory quota_tracking with transaction and row-lock semantics.

    - get_by_user_id_with_lock blocks while another transaction holds the row
    - an exception inside transaction() restores rows touched by it
    - locks are released when the transaction ends
    """

    def __init__(self, clock=lambda: FIXED_NOW):
        self.rows: dict[int, QuotaTracking] = {}
        self.locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.clock = clock
        self.commits = 0
        self.rollbacks = 0

    def add(self, user_id: int, limit: int, sent: int = 0, last_reset: datetime | None = None):
        self.rows[user_id] = QuotaTracking(
            id=user_id,
            user_id=user_id,
            emails_sent_today=sent,
            monthly_limit=limit,
            last_reset_date=last_reset or self.clock(),
        )
        return self.rows[user_id]

    @asynccontextmanager
    async def transaction(self):
        conn = FakeConnection()
        try:
            yield conn
        except BaseException:
            self.rows.update(conn.snapshot)
            self.rollbacks += 1
            raise
        else:
            self.commits += 1
        finally:
            for lock in reversed(conn.locks):
                lock.release()

    def _remember(self, user_id: int, conn: FakeConnection) -> None:
        if user_id not in conn.snapshot:
            conn.snapshot[user_id] = replace(self.rows[user_id])

    async def get_by_user_id_with_lock(self, user_id: int, conn: FakeConnection):
        lock = self.locks[user_id]
        await lock.acquire()
        conn.locks.append(lock)

        row = self.rows.get(user_id)
        return replace(row) if row else None

    async def increment_email_count_in_transaction(self, user_id: int, conn: FakeConnection) -> int:
        self._remember(user_id, conn)
        self.rows[user_id].emails_sent_today += 1
        return self.rows[user_id].emails_sent_today

    async def reset_daily_count_in_transaction(self, user_id: int, conn: FakeConnection) -> None:
        self._remember(user_id, conn)
        self.rows[user_id].emails_sent_today = 0
        self.rows[user_id].last_reset_date = self.clock()


class FakeEmailProvider:
    """Records messages; fails for recipients listed in `fail_for`."""

    name = "fake"

    def __init__(self, fail_for: set[str] | None = None, delay: float = 0):
        self.fail_for = fail_for or set()
        self.delay = delay
        self.sent = []
        self.calls = 0

    async def send(self, message):
        self.calls += 1
        # Yield so concurrent sends interleave while the row lock is held
        await asyncio.sleep(self.delay)
        if message.to in self.fail_for:
            return EmailResult(success=False, error=f"Rejected recipient {message.to}")
        self.sent.append(message)
        return EmailResult(success=True, message_id=f"msg-{len(self.sent)}")


@pytest.fixture
def quota_store():
    return FakeQuotaStore()


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def auth_override():
    def _override():
        return 42

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[current_user_id] = auth_override

    return _apply


@pytest.fixture
def make_app(apply_auth_override):
    """Build a small app around the given routers with auth and error handlers."""

    def _make(*routers, authenticated: bool = True):
        app = FastAPI()
        register_error_handlers(app)
        for router in routers:
            app.include_router(router)
        if authenticated:
            apply_auth_override(app)
        return app

    return _make
