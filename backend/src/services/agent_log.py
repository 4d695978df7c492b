"""Operation log for actions performed by automated callers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
import logging
import sqlite3
from typing import Optional

from ..models.agent_log import AgentLog, AgentLogListResponse, DiffStats
from .database import DatabaseService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentLogService:
    """Record and list agent actions, scoped to a retention window."""

    def __init__(
        self, db_service: DatabaseService | None = None, retention_days: int = 30
    ) -> None:
        self.db_service = db_service or DatabaseService()
        self.retention_days = retention_days

    def create_log(
        self,
        user_id: str,
        action: str,
        *,
        entry_id: Optional[str] = None,
        entry_title: Optional[str] = None,
        summary: Optional[str] = None,
        diff_stats: Optional[DiffStats] = None,
    ) -> AgentLog:
        created_at = _utcnow().isoformat(timespec="milliseconds")
        stats_json = diff_stats.model_dump_json() if diff_stats else None
        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(
                    """
                    INSERT INTO agent_logs (
                        user_id, action, entry_id, entry_title, summary, diff_stats, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, action, entry_id, entry_title, summary, stats_json, created_at),
                )
            logger.info(
                "Agent action logged",
                extra={"user_id": user_id, "action": action, "entry_id": entry_id},
            )
            return AgentLog(
                id=cursor.lastrowid,
                action=action,
                entry_id=entry_id,
                entry_title=entry_title,
                summary=summary,
                diff_stats=diff_stats,
                created_at=datetime.fromisoformat(created_at),
            )
        finally:
            conn.close()

    def list_logs(
        self,
        user_id: str,
        *,
        page: int = 1,
        page_size: int = 50,
        action: Optional[str] = None,
    ) -> AgentLogListResponse:
        """Logs inside the retention window, newest first."""
        clauses = ["user_id = ?", "created_at >= ?"]
        params: list = [user_id, self._window_start()]
        if action:
            clauses.append("action = ?")
            params.append(action)
        where = " AND ".join(clauses)

        conn = self.db_service.connect()
        try:
            total = conn.execute(
                f"SELECT COUNT(*) AS total FROM agent_logs WHERE {where}", params
            ).fetchone()["total"]
            rows = conn.execute(
                f"SELECT * FROM agent_logs WHERE {where} "
                "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                [*params, page_size, (page - 1) * page_size],
            ).fetchall()
        finally:
            conn.close()

        return AgentLogListResponse(
            logs=[self._row_to_log(row) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
        )

    def recent_logs(self, user_id: str, limit: int = 10) -> list[AgentLog]:
        conn = self.db_service.connect()
        try:
            rows = conn.execute(
                """
                SELECT * FROM agent_logs
                WHERE user_id = ? AND created_at >= ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, self._window_start(), limit),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_log(row) for row in rows]

    def _window_start(self) -> str:
        window_start = _utcnow() - timedelta(days=self.retention_days)
        return window_start.isoformat(timespec="milliseconds")

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> AgentLog:
        stats = json.loads(row["diff_stats"]) if row["diff_stats"] else None
        return AgentLog(
            id=row["id"],
            action=row["action"],
            entry_id=row["entry_id"],
            entry_title=row["entry_title"],
            summary=row["summary"],
            diff_stats=DiffStats(**stats) if stats else None,
            created_at=datetime.fromisoformat(row["created_at"]),
        )


__all__ = ["AgentLogService"]
