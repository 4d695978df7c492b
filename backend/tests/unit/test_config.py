from pathlib import Path

import pytest

from backend.src.services import config as config_module

ENV_KEYS = (
    "DATABASE_PATH",
    "LONG_DOC_THRESHOLD",
    "DEFAULT_PAGE_LIMIT",
    "LOCAL_USER_ID",
    "LOG_RETENTION_DAYS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """
    Ensure configuration cache and environment are clean between tests.
    """
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    config_module.get_config.cache_clear()
    yield
    config_module.get_config.cache_clear()


def test_get_config_defaults(monkeypatch, tmp_path: Path) -> None:
    db_path = tmp_path / "data" / "notebrain.db"
    monkeypatch.setenv("DATABASE_PATH", str(db_path))

    cfg = config_module.get_config()

    assert cfg.database_path == db_path.resolve()
    assert cfg.database_path.parent.is_dir()
    assert cfg.long_doc_threshold == config_module.DEFAULT_LONG_DOC_THRESHOLD == 2000
    assert cfg.default_page_limit == 100
    assert cfg.local_user_id == "local-dev"
    assert cfg.log_retention_days == 30


def test_get_config_reads_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "nb.db"))
    monkeypatch.setenv("LONG_DOC_THRESHOLD", "500")
    monkeypatch.setenv("LOCAL_USER_ID", "alice")

    cfg = config_module.reload_config()

    assert cfg.long_doc_threshold == 500
    assert cfg.local_user_id == "alice"


def test_get_config_rejects_non_positive_threshold(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "nb.db"))
    monkeypatch.setenv("LONG_DOC_THRESHOLD", "0")

    with pytest.raises(ValueError):
        config_module.reload_config()


def test_get_config_rejects_empty_database_path(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_PATH", "")

    with pytest.raises(ValueError):
        config_module.reload_config()
