from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from backend.src.models.agent_log import DiffStats
from backend.src.services.agent_log import AgentLogService
from backend.src.services.database import DatabaseService


@pytest.fixture()
def log_service(tmp_path: Path) -> AgentLogService:
    db_service = DatabaseService(tmp_path / "logs.db")
    db_service.initialize()
    return AgentLogService(db_service, retention_days=7)


def test_create_and_list_logs(log_service: AgentLogService) -> None:
    log_service.create_log("u1", "create", entry_id="e1", entry_title="One")
    log_service.create_log(
        "u1", "update", entry_id="e1", diff_stats=DiffStats(added_words=4, removed_words=1)
    )
    log_service.create_log("u2", "create", entry_id="e2")

    listing = log_service.list_logs("u1")

    assert listing.total == 2
    assert [log.action for log in listing.logs] == ["update", "create"]
    assert listing.logs[0].diff_stats == DiffStats(added_words=4, removed_words=1)
    assert log_service.list_logs("u1", action="create").total == 1


def test_logs_outside_retention_are_hidden(log_service: AgentLogService) -> None:
    old = (datetime.now(timezone.utc) - timedelta(days=30)).isoformat(timespec="milliseconds")
    conn = log_service.db_service.connect()
    try:
        with conn:
            conn.execute(
                "INSERT INTO agent_logs (user_id, action, created_at) VALUES (?, ?, ?)",
                ("u1", "update", old),
            )
    finally:
        conn.close()
    log_service.create_log("u1", "create", entry_id="e1")

    assert [log.action for log in log_service.recent_logs("u1")] == ["create"]
    assert log_service.list_logs("u1").total == 1
