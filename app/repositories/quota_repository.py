"""
Persistence for the per-user daily email quota.

The `*_in_transaction` methods take the caller's connection and must run
inside the transaction that holds the row lock from
`get_by_user_id_with_lock`.
"""

import psycopg

from app.db.helpers import execute_query, fetch_one
from app.errors import NotFoundError, ValidationError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.quota_domain import MAX_DAILY_LIMIT, QuotaTracking

logger = get_logger(__name__)


class QuotaTrackingRepository:
    """Raw SQL access to quota_tracking."""

    SELECT_COLUMNS = """
        id, user_id, emails_sent_today, monthly_limit,
        last_reset_date, created_at, updated_at
    """

    @classmethod
    async def get_by_user_id(cls, user_id: int) -> QuotaTracking | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM quota_tracking WHERE user_id = %s",
            (user_id,),
        )
        return QuotaTracking.from_row(row) if row else None

    @classmethod
    async def get_by_user_id_with_lock(
        cls, user_id: int, connection: psycopg.AsyncConnection
    ) -> QuotaTracking | None:
        """
        SELECT ... FOR UPDATE on the user's quota row.

        Blocks until any other transaction holding the lock commits or rolls
        back, so concurrent sends for one user are serialized here.
        """
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM quota_tracking WHERE user_id = %s FOR UPDATE",
            (user_id,),
            connection=connection,
        )
        return QuotaTracking.from_row(row) if row else None

    @staticmethod
    async def increment_email_count_in_transaction(
        user_id: int, connection: psycopg.AsyncConnection
    ) -> int:
        """Add one to today's counter. Returns the new count."""
        row = await fetch_one(
            """
            UPDATE quota_tracking
            SET emails_sent_today = emails_sent_today + 1,
                updated_at = NOW()
            WHERE user_id = %s
            RETURNING emails_sent_today
            """,
            (user_id,),
            connection=connection,
        )
        if not row:
            raise NotFoundError(f"Quota not found for user {user_id}")
        return row["emails_sent_today"]

    @staticmethod
    async def reset_daily_count_in_transaction(
        user_id: int, connection: psycopg.AsyncConnection
    ) -> None:
        rows = await execute_query(
            """
            UPDATE quota_tracking
            SET emails_sent_today = 0,
                last_reset_date = NOW(),
                updated_at = NOW()
            WHERE user_id = %s
            """,
            (user_id,),
            connection=connection,
        )
        if rows == 0:
            raise NotFoundError(f"Quota not found for user {user_id}")

        logger.info("Daily quota reset", user_id=user_id)

    @classmethod
    async def reset_daily_count(cls, user_id: int) -> None:
        """Reset outside the send path (quota status checks)."""
        rows = await execute_query(
            """
            UPDATE quota_tracking
            SET emails_sent_today = 0,
                last_reset_date = NOW(),
                updated_at = NOW()
            WHERE user_id = %s
              AND (last_reset_date AT TIME ZONE 'UTC')::date < (NOW() AT TIME ZONE 'UTC')::date
            """,
            (user_id,),
        )
        if rows:
            logger.info("Daily quota reset", user_id=user_id)

    @staticmethod
    async def update_monthly_limit(user_id: int, limit: int) -> None:
        if not 0 < limit <= MAX_DAILY_LIMIT:
            raise ValidationError(f"Daily limit must be between 1 and {MAX_DAILY_LIMIT}")

        rows = await execute_query(
            """
            UPDATE quota_tracking
            SET monthly_limit = %s,
                updated_at = NOW()
            WHERE user_id = %s
            """,
            (limit, user_id),
        )
        if rows == 0:
            raise NotFoundError(f"Quota not found for user {user_id}")

        logger.info("Daily quota limit updated", user_id=user_id, limit=limit)

    @classmethod
    async def create(
        cls, user_id: int, limit: int, connection: psycopg.AsyncConnection | None = None
    ) -> QuotaTracking:
        row = await fetch_one(
            f"""
            INSERT INTO quota_tracking (user_id, emails_sent_today, monthly_limit, last_reset_date)
            VALUES (%s, 0, %s, NOW())
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (user_id, limit),
            connection=connection,
        )
        return QuotaTracking.from_row(row)
