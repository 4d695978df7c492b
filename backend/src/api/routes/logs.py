"""HTTP API routes for the agent operation log."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...models.agent_log import AgentLogListResponse
from ...services.agent_log import AgentLogService
from ...services.entry_service import EntryService, get_entry_service
from .entries import get_user_id

router = APIRouter()


def get_log_service(service: EntryService = Depends(get_entry_service)) -> AgentLogService:
    return service.logs


@router.get("/api/logs", response_model=AgentLogListResponse)
async def list_logs(
    recent: Optional[int] = Query(None, ge=1, le=100, description="Return the N latest logs"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    action: Optional[str] = Query(None),
    user_id: str = Depends(get_user_id),
    logs: AgentLogService = Depends(get_log_service),
):
    """List agent actions from the retention window, newest first."""
    if recent:
        items = logs.recent_logs(user_id, limit=recent)
        return AgentLogListResponse(logs=items, total=len(items), page=1, page_size=recent)
    return logs.list_logs(user_id, page=page, page_size=page_size, action=action)


__all__ = ["router"]
