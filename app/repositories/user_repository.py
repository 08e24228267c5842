"""
Persistence for user accounts.
"""

from datetime import datetime

from app.db.helpers import execute_query, fetch_one
from app.db.transaction import with_transaction
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import User
from app.repositories.quota_repository import QuotaTrackingRepository

logger = get_logger(__name__)


class UserRepository:
    SELECT_COLUMNS = "id, email, name, role, active, created_at"

    @classmethod
    async def find_by_id(cls, user_id: int) -> User | None:
        row = await fetch_one(f"SELECT {cls.SELECT_COLUMNS} FROM users WHERE id = %s", (user_id,))
        return User(**row) if row else None

    @classmethod
    async def find_by_email(cls, email: str) -> User | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM users WHERE email = %s", (email,)
        )
        return User(**row) if row else None

    @staticmethod
    async def get_password_hash(user_id: int) -> str | None:
        row = await fetch_one("SELECT password_hash FROM users WHERE id = %s", (user_id,))
        return row["password_hash"] if row else None

    @staticmethod
    async def get_max_contacts(user_id: int) -> int | None:
        row = await fetch_one("SELECT max_contacts FROM users WHERE id = %s", (user_id,))
        return row["max_contacts"] if row else None

    @classmethod
    async def create_with_quota(
        cls,
        email: str,
        password_hash: str,
        name: str | None,
        daily_limit: int,
        max_contacts: int,
    ) -> User:
        """Insert the user and its quota row in one transaction."""

        async def _create(conn) -> User:
            row = await fetch_one(
                f"""
                INSERT INTO users (email, password_hash, name, role, active, max_contacts)
                VALUES (%s, %s, %s, 'artist', true, %s)
                RETURNING {cls.SELECT_COLUMNS}
                """,
                (email, password_hash, name, max_contacts),
                connection=conn,
            )
            await QuotaTrackingRepository.create(row["id"], daily_limit, connection=conn)
            return User(**row)

        user = await with_transaction(_create)
        logger.info("User created", user_id=user.id, daily_limit=daily_limit)
        return user

    # =================================================================
    # PASSWORD RESET
    # =================================================================

    @staticmethod
    async def set_password_reset_token(
        user_id: int, token_hash: str, expires_at: datetime
    ) -> None:
        """Store a new reset token hash, replacing any earlier one."""
        await execute_query(
            """
            UPDATE users
            SET password_reset_token_hash = %s,
                password_reset_expires_at = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (token_hash, expires_at, user_id),
        )

    @staticmethod
    async def consume_password_reset_token(token_hash: str, password_hash: str) -> int | None:
        """
        Set a new password for the holder of an unexpired token and clear it.

        One UPDATE, so two requests racing with the same token cannot both win.
        Returns the user id, or None when the token is unknown, used or expired.
        """
        row = await fetch_one(
            """
            UPDATE users
            SET password_hash = %s,
                password_reset_token_hash = NULL,
                password_reset_expires_at = NULL,
                updated_at = NOW()
            WHERE password_reset_token_hash = %s
              AND password_reset_expires_at > NOW()
              AND active = true
            RETURNING id
            """,
            (password_hash, token_hash),
        )
        return row["id"] if row else None
