from fastapi import APIRouter, Depends, Query

from app.auth.verify import current_user_id
from app.models.api.email_response import EmailStatsResponse, ExecutionHistoryResponse
from app.repositories.email_log_repository import EmailLogRepository
from app.repositories.execution_log_repository import ExecutionLogRepository

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/email-stats", response_model=EmailStatsResponse)
async def email_stats(user_id: int = Depends(current_user_id)):
    return EmailStatsResponse(**await EmailLogRepository.get_user_stats(user_id))


@router.get("/execution-history", response_model=ExecutionHistoryResponse)
async def execution_history(
    limit: int = Query(20, ge=1, le=100), user_id: int = Depends(current_user_id)
):
    rows = await ExecutionLogRepository.list_recent(user_id, limit)
    return ExecutionHistoryResponse(executions=rows)
