"""Agent operation log models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DiffStats(BaseModel):
    """Word delta of a mutation."""

    added_words: int = Field(0, ge=0)
    removed_words: int = Field(0, ge=0)


class AgentLog(BaseModel):
    """One action performed by an automated caller."""

    id: int
    action: str
    entry_id: Optional[str] = None
    entry_title: Optional[str] = None
    summary: Optional[str] = None
    diff_stats: Optional[DiffStats] = None
    created_at: datetime


class AgentLogListResponse(BaseModel):
    logs: list[AgentLog]
    total: int
    page: int
    page_size: int


__all__ = ["DiffStats", "AgentLog", "AgentLogListResponse"]
