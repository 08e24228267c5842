from app.db.helpers import execute_query, fetch_all
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ExecutionLogRepository:
    """One row per campaign or track send run."""

    @staticmethod
    async def create(
        user_id: int,
        emails_sent: int,
        duration_ms: int,
        campaign_id: str | None = None,
        track_id: str | None = None,
        track_title: str | None = None,
        error: str | None = None,
    ) -> None:
        await execute_query(
            """
            INSERT INTO execution_logs (
                user_id, campaign_id, track_id, track_title, emails_sent, duration_ms, error
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (user_id, campaign_id, track_id, track_title, emails_sent, duration_ms, error),
        )

    @staticmethod
    async def list_recent(user_id: int, limit: int = 20) -> list[dict]:
        return await fetch_all(
            """
            SELECT id, campaign_id, track_id, track_title, emails_sent,
                   duration_ms, error, executed_at
            FROM execution_logs
            WHERE user_id = %s
            ORDER BY executed_at DESC
            LIMIT %s
            """,
            (user_id, limit),
        )
