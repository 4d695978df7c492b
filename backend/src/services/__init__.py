"""Service layer for entry storage, Markdown addressing, and agent logs."""

from .agent_log import AgentLogService
from .config import AppConfig, get_config, reload_config
from .database import DatabaseService, init_database
from .entry_service import EntryService, get_entry_service
from .entry_store import EntryStore, normalize_tags
from .relation_service import RelationService

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "init_database",
    "EntryStore",
    "normalize_tags",
    "EntryService",
    "get_entry_service",
    "AgentLogService",
    "RelationService",
]
