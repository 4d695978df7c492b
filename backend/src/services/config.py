"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DATABASE_PATH = PROJECT_ROOT / "data" / "notebrain.db"
DEFAULT_LONG_DOC_THRESHOLD = 2000
DEFAULT_PAGE_LIMIT = 100


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    database_path: Path = Field(
        default=DEFAULT_DATABASE_PATH, description="SQLite database file"
    )
    long_doc_threshold: int = Field(
        default=DEFAULT_LONG_DOC_THRESHOLD,
        ge=1,
        description="Word count at which reads default to outline mode",
    )
    default_page_limit: int = Field(
        default=DEFAULT_PAGE_LIMIT,
        ge=1,
        description="Lines returned by a page read when no limit is given",
    )
    local_user_id: str = Field(
        default="local-dev",
        min_length=1,
        description="Acting user for the single-tenant HTTP and MCP surfaces",
    )
    log_retention_days: int = Field(
        default=30, ge=1, description="Window for agent log listings"
    )

    @field_validator("database_path", mode="before")
    @classmethod
    def _normalize_database_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("DATABASE_PATH cannot be empty")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    config = AppConfig(
        database_path=_read_env("DATABASE_PATH", str(DEFAULT_DATABASE_PATH)),
        long_doc_threshold=_read_env(
            "LONG_DOC_THRESHOLD", str(DEFAULT_LONG_DOC_THRESHOLD)
        ),
        default_page_limit=_read_env("DEFAULT_PAGE_LIMIT", str(DEFAULT_PAGE_LIMIT)),
        local_user_id=_read_env("LOCAL_USER_ID", "local-dev"),
        log_retention_days=_read_env("LOG_RETENTION_DAYS", "30"),
    )
    # Ensure the data directory exists for downstream services.
    config.database_path.parent.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "PROJECT_ROOT",
    "DEFAULT_DATABASE_PATH",
    "DEFAULT_LONG_DOC_THRESHOLD",
    "DEFAULT_PAGE_LIMIT",
]
