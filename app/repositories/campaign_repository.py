"""
Persistence for email campaigns.

Updates and deletes are guarded by `status = 'draft'` in SQL so a sent
campaign cannot be modified even by a request racing the send.
"""

from datetime import datetime

import psycopg

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.campaign_domain import EmailCampaign

logger = get_logger(__name__)


class EmailCampaignRepository:
    SELECT_COLUMNS = """
        id, user_id, track_id, template_id, subject, html_content, status,
        scheduled_at, sent_at, recipients_count, created_at, updated_at
    """

    @classmethod
    async def create(
        cls,
        user_id: int,
        subject: str,
        html_content: str,
        track_id: str | None = None,
        template_id: str | None = None,
        scheduled_at: datetime | None = None,
    ) -> EmailCampaign:
        row = await fetch_one(
            f"""
            INSERT INTO email_campaigns (
                user_id, track_id, template_id, subject, html_content, status, scheduled_at
            )
            VALUES (%s, %s, %s, %s, %s, 'draft', %s)
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (user_id, track_id, template_id, subject, html_content, scheduled_at),
        )
        logger.info("Campaign draft created", user_id=user_id, campaign_id=str(row["id"]))
        return EmailCampaign.from_row(row)

    @classmethod
    async def find_by_id(cls, user_id: int, campaign_id: str) -> EmailCampaign | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM email_campaigns WHERE id = %s AND user_id = %s",
            (campaign_id, user_id),
        )
        return EmailCampaign.from_row(row) if row else None

    @classmethod
    async def list_for_user(cls, user_id: int, status: str | None = None) -> list[EmailCampaign]:
        query = f"SELECT {cls.SELECT_COLUMNS} FROM email_campaigns WHERE user_id = %s"
        params: tuple = (user_id,)
        if status:
            query += " AND status = %s"
            params += (status,)
        query += " ORDER BY created_at DESC"

        rows = await fetch_all(query, params)
        return [EmailCampaign.from_row(row) for row in rows]

    @classmethod
    async def update_draft(
        cls,
        user_id: int,
        campaign_id: str,
        subject: str | None,
        html_content: str | None,
        scheduled_at: datetime | None,
    ) -> EmailCampaign | None:
        """Returns None when no draft with that id exists for the user."""
        row = await fetch_one(
            f"""
            UPDATE email_campaigns
            SET subject = COALESCE(%s, subject),
                html_content = COALESCE(%s, html_content),
                scheduled_at = COALESCE(%s, scheduled_at),
                updated_at = NOW()
            WHERE id = %s AND user_id = %s AND status = 'draft'
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (subject, html_content, scheduled_at, campaign_id, user_id),
        )
        return EmailCampaign.from_row(row) if row else None

    @staticmethod
    async def delete_draft(user_id: int, campaign_id: str) -> bool:
        deleted = await execute_query(
            "DELETE FROM email_campaigns WHERE id = %s AND user_id = %s AND status = 'draft'",
            (campaign_id, user_id),
        )
        return deleted > 0

    @classmethod
    async def lock_draft(
        cls, user_id: int, campaign_id: str, connection: psycopg.AsyncConnection
    ) -> EmailCampaign | None:
        """
        Lock the campaign row for the duration of a send.

        NOWAIT makes a second concurrent send fail fast with
        psycopg.errors.LockNotAvailable instead of queueing behind the first.
        """
        row = await fetch_one(
            f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM email_campaigns
            WHERE id = %s AND user_id = %s
            FOR UPDATE NOWAIT
            """,
            (campaign_id, user_id),
            connection=connection,
        )
        return EmailCampaign.from_row(row) if row else None

    @staticmethod
    async def mark_as_sent(
        campaign_id: str, recipients_count: int, connection: psycopg.AsyncConnection
    ) -> bool:
        updated = await execute_query(
            """
            UPDATE email_campaigns
            SET status = 'sent',
                sent_at = NOW(),
                recipients_count = %s,
                updated_at = NOW()
            WHERE id = %s AND status = 'draft'
            """,
            (recipients_count, campaign_id),
            connection=connection,
        )
        return updated > 0
