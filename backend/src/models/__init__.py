"""Pydantic models for data validation and serialization."""

from .agent_log import AgentLog, AgentLogListResponse, DiffStats
from .entry import (
    CreateResult,
    Entry,
    EntryAppend,
    EntryCreate,
    EntryError,
    EntryFull,
    EntryListItem,
    EntryListResponse,
    EntryOutline,
    EntryPage,
    EntryUpdate,
    ErrorKind,
    MutationResult,
    SectionContent,
    SectionInfo,
    SectionUpdate,
    TextReplace,
    VersionSnapshot,
)
from .relation import EntryRelation, RelationCreate, RelationCreated, RelationListResponse

__all__ = [
    "Entry",
    "EntryCreate",
    "EntryUpdate",
    "EntryAppend",
    "SectionUpdate",
    "TextReplace",
    "SectionInfo",
    "SectionContent",
    "EntryPage",
    "EntryOutline",
    "EntryFull",
    "EntryListItem",
    "EntryListResponse",
    "MutationResult",
    "CreateResult",
    "ErrorKind",
    "EntryError",
    "VersionSnapshot",
    "DiffStats",
    "AgentLog",
    "AgentLogListResponse",
    "EntryRelation",
    "RelationCreate",
    "RelationCreated",
    "RelationListResponse",
]
