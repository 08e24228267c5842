"""
Persistence for contacts (subscribers) scoped to their owning user.
"""

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import Contact

logger = get_logger(__name__)


class ContactRepository:
    SELECT_COLUMNS = """
        id, user_id, email, name, source, subscribed,
        unsubscribe_token, created_at, unsubscribed_at
    """

    @classmethod
    async def get_subscribed(cls, user_id: int) -> list[Contact]:
        rows = await fetch_all(
            f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM contacts
            WHERE user_id = %s AND subscribed = true
            ORDER BY id
            """,
            (user_id,),
        )
        return [Contact.from_row(row) for row in rows]

    @classmethod
    async def list_for_user(cls, user_id: int, subscribed: bool | None = None) -> list[Contact]:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM contacts WHERE user_id = %s"
        params: tuple = (user_id,)
        if subscribed is not None:
            query += " AND subscribed = %s"
            params += (subscribed,)
        query += " ORDER BY created_at DESC, id DESC"

        rows = await fetch_all(query, params)
        return [Contact.from_row(row) for row in rows]

    @staticmethod
    async def get_stats(user_id: int) -> dict[str, int]:
        row = await fetch_one(
            """
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE subscribed = true) AS subscribed,
                COUNT(*) FILTER (WHERE subscribed = false) AS unsubscribed
            FROM contacts
            WHERE user_id = %s
            """,
            (user_id,),
        )
        return {
            "total": row["total"] if row else 0,
            "subscribed": row["subscribed"] if row else 0,
            "unsubscribed": row["unsubscribed"] if row else 0,
        }

    @staticmethod
    async def count_for_user(user_id: int) -> int:
        """All contacts, subscribed or not, count toward the plan limit."""
        row = await fetch_one("SELECT COUNT(*) AS count FROM contacts WHERE user_id = %s", (user_id,))
        return row["count"] if row else 0

    @staticmethod
    async def exists(user_id: int, email: str) -> bool:
        row = await fetch_one(
            "SELECT 1 AS found FROM contacts WHERE user_id = %s AND email = %s",
            (user_id, email),
        )
        return row is not None

    @classmethod
    async def create(
        cls, user_id: int, email: str, name: str | None, source: str = "manual"
    ) -> Contact:
        """
        Insert or update a contact by (user_id, email).

        An existing unsubscribed contact keeps subscribed = false.
        """
        row = await fetch_one(
            f"""
            INSERT INTO contacts (user_id, email, name, source, subscribed)
            VALUES (%s, %s, %s, %s, true)
            ON CONFLICT (user_id, email) DO UPDATE
            SET name = COALESCE(EXCLUDED.name, contacts.name)
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (user_id, email, name, source),
        )
        logger.info("Contact saved", user_id=user_id, contact_id=row["id"], source=source)
        return Contact.from_row(row)

    @staticmethod
    async def delete(user_id: int, contact_ids: list[int]) -> int:
        deleted = await execute_query(
            "DELETE FROM contacts WHERE user_id = %s AND id = ANY(%s)",
            (user_id, contact_ids),
        )
        logger.info("Contacts deleted", user_id=user_id, deleted=deleted)
        return deleted

    @classmethod
    async def find_by_unsubscribe_token(cls, token: str) -> Contact | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM contacts WHERE unsubscribe_token = %s",
            (token,),
        )
        return Contact.from_row(row) if row else None

    @staticmethod
    async def unsubscribe(contact_id: int) -> bool:
        """Returns False when the contact was already unsubscribed."""
        updated = await execute_query(
            """
            UPDATE contacts
            SET subscribed = false,
                unsubscribed_at = NOW()
            WHERE id = %s AND subscribed = true
            """,
            (contact_id,),
        )
        return updated > 0
