"""
Persistence for per-recipient send records and provider engagement events.
"""

from typing import Any

from psycopg.types.json import Jsonb

from app.db.helpers import execute_query, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_log_domain import EmailEvent, EmailLog

logger = get_logger(__name__)


class EmailLogRepository:
    SELECT_COLUMNS = """
        id, user_id, contact_id, campaign_id, track_id, recipient_email,
        resend_email_id, status, error, sent_at, delivered_at, opened_at,
        clicked_at, open_count, click_count, clicked_urls
    """

    @classmethod
    async def create(
        cls,
        user_id: int,
        recipient_email: str,
        resend_email_id: str | None,
        status: str = "sent",
        contact_id: int | None = None,
        campaign_id: str | None = None,
        track_id: str | None = None,
        error: str | None = None,
    ) -> EmailLog:
        row = await fetch_one(
            f"""
            INSERT INTO email_logs (
                user_id, contact_id, campaign_id, track_id, recipient_email,
                resend_email_id, status, error
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (
                user_id,
                contact_id,
                campaign_id,
                track_id,
                recipient_email,
                resend_email_id,
                status,
                (error or "")[:1000] or None,
            ),
        )
        return EmailLog.from_row(row)

    @classmethod
    async def find_by_provider_id(cls, resend_email_id: str) -> EmailLog | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM email_logs WHERE resend_email_id = %s",
            (resend_email_id,),
        )
        return EmailLog.from_row(row) if row else None

    @staticmethod
    async def mark_delivered(log_id: int) -> None:
        # Status only moves forward from 'sent'; opens may arrive first
        await execute_query(
            """
            UPDATE email_logs
            SET delivered_at = COALESCE(delivered_at, NOW()),
                status = CASE WHEN status = 'sent' THEN 'delivered' ELSE status END
            WHERE id = %s
            """,
            (log_id,),
        )

    @staticmethod
    async def mark_opened(log_id: int) -> None:
        await execute_query(
            """
            UPDATE email_logs
            SET opened_at = COALESCE(opened_at, NOW()),
                open_count = open_count + 1,
                status = CASE WHEN status IN ('sent', 'delivered') THEN 'opened' ELSE status END
            WHERE id = %s
            """,
            (log_id,),
        )

    @staticmethod
    async def mark_clicked(log_id: int, url: str | None) -> None:
        await execute_query(
            """
            UPDATE email_logs
            SET clicked_at = COALESCE(clicked_at, NOW()),
                click_count = click_count + 1,
                clicked_urls = CASE
                    WHEN %s::text IS NULL OR clicked_urls ? %s::text THEN clicked_urls
                    ELSE clicked_urls || to_jsonb(%s::text)
                END,
                status = CASE WHEN status <> 'bounced' THEN 'clicked' ELSE status END
            WHERE id = %s
            """,
            (url, url, url, log_id),
        )

    @staticmethod
    async def mark_bounced(log_id: int, reason: str) -> None:
        await execute_query(
            "UPDATE email_logs SET status = 'bounced', error = %s WHERE id = %s",
            (reason[:1000], log_id),
        )

    @staticmethod
    async def record_event(event: EmailEvent) -> None:
        await execute_query(
            """
            INSERT INTO email_events (
                email_log_id, contact_id, event_type, event_data, resend_email_id
            )
            VALUES (%s, %s, %s, %s, %s)
            """,
            (
                event.email_log_id,
                event.contact_id,
                event.event_type,
                Jsonb(event.event_data),
                event.resend_email_id,
            ),
        )

    @staticmethod
    async def get_user_stats(user_id: int) -> dict[str, Any]:
        row = await fetch_one(
            """
            SELECT
                COUNT(*) AS total_sent,
                COUNT(*) FILTER (WHERE delivered_at IS NOT NULL) AS delivered,
                COUNT(*) FILTER (WHERE opened_at IS NOT NULL) AS opened,
                COUNT(*) FILTER (WHERE clicked_at IS NOT NULL) AS clicked,
                COUNT(*) FILTER (WHERE status = 'bounced') AS bounced,
                COUNT(*) FILTER (WHERE status = 'failed') AS failed
            FROM email_logs
            WHERE user_id = %s
            """,
            (user_id,),
        ) or {}

        total = row.get("total_sent") or 0
        delivered = row.get("delivered") or 0
        opened = row.get("opened") or 0
        clicked = row.get("clicked") or 0

        return {
            "total_sent": total,
            "delivered": delivered,
            "opened": opened,
            "clicked": clicked,
            "bounced": row.get("bounced") or 0,
            "failed": row.get("failed") or 0,
            "open_rate": round(opened / delivered * 100, 2) if delivered else 0.0,
            "click_rate": round(clicked / delivered * 100, 2) if delivered else 0.0,
        }
