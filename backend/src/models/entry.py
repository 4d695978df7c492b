"""Entry-related Pydantic models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .relation import EntryRelation

EntryType = Literal["note", "diary", "experience", "document"]
EntrySource = Literal["manual", "agent"]
ReadMode = Literal["full", "outline"]


class Entry(BaseModel):
    """Persisted Markdown entry snapshot."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b6f2c1e-3c1a-4d7e-9a51-8f0d7c2b4e11",
                "user_id": "local-dev",
                "notebook_id": "inbox",
                "title": "Reading notes",
                "content": "# Reading notes\n\n## Chapter 1\n...",
                "summary": "# Reading notes  ## Chapter 1 ...",
                "type": "note",
                "source": "manual",
                "version": 3,
                "word_count": 1250,
                "tags": ["books"],
                "created_at": "2025-01-10T09:00:00+00:00",
                "updated_at": "2025-01-15T14:30:00+00:00",
            }
        }
    )

    id: str
    user_id: str
    notebook_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    content: str = ""
    summary: Optional[str] = None
    type: EntryType = "note"
    source: EntrySource = "manual"
    version: int = Field(..., ge=1, description="Optimistic concurrency version")
    word_count: int = Field(0, ge=0)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SectionInfo(BaseModel):
    """A level-2 heading delimited region of an entry (derived, never stored)."""

    index: int = Field(..., ge=0)
    heading: str
    line_start: int = Field(..., ge=1)
    line_end: int = Field(..., ge=1)
    word_count: int = Field(..., ge=0)


class LineRange(BaseModel):
    """Line-numbered slice of content."""

    content: str
    has_more: bool


class SectionContent(BaseModel):
    """A single section rendered with line-number prefixes."""

    heading: str
    content: str
    line_start: int
    line_end: int
    word_count: int


class PageWindow(BaseModel):
    offset: int
    limit: int
    has_more: bool


class EntryPage(BaseModel):
    """Paginated read of an entry."""

    mode: Literal["page"] = "page"
    id: str
    title: str
    version: int
    total_lines: int
    showing: PageWindow
    content: str


class _EntryMetadataView(BaseModel):
    id: str
    title: str
    summary: Optional[str] = None
    type: EntryType
    source: EntrySource
    version: int
    word_count: int
    total_lines: int
    notebook_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    relations: list[EntryRelation] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class EntryOutline(_EntryMetadataView):
    """Section list and metadata without the body."""

    mode: Literal["outline"] = "outline"
    sections: list[SectionInfo]


class EntryFull(_EntryMetadataView):
    """Whole entry body with metadata."""

    mode: Literal["full"] = "full"
    content: str


class EntryListItem(BaseModel):
    id: str
    title: str
    summary: Optional[str] = None
    type: EntryType
    source: EntrySource
    word_count: int
    notebook_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class EntryListResponse(BaseModel):
    entries: list[EntryListItem]
    total: int
    page: int
    page_size: int


class EntryCreate(BaseModel):
    """Request payload to create an entry."""

    title: str = Field(..., min_length=1, max_length=512)
    content: str = Field(..., max_length=1_048_576)
    notebook_id: Optional[str] = None
    tags: Optional[list[str]] = None
    type: EntryType = "note"
    summary: Optional[str] = None
    source: EntrySource = "manual"


class EntryUpdate(BaseModel):
    """Partial update; only the fields that are set overwrite stored values."""

    version: int = Field(..., ge=1, description="Expected version for concurrency check")
    title: Optional[str] = Field(None, min_length=1, max_length=512)
    content: Optional[str] = Field(None, max_length=1_048_576)
    summary: Optional[str] = None
    tags: Optional[list[str]] = None
    notebook_id: Optional[str] = None
    type: Optional[EntryType] = None
    change_summary: Optional[str] = None
    source: EntrySource = "manual"


class EntryAppend(BaseModel):
    content: str = Field(..., min_length=1, max_length=1_048_576)
    version: int = Field(..., ge=1)
    source: EntrySource = "manual"


class SectionUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1_048_576)
    version: int = Field(..., ge=1)
    source: EntrySource = "manual"


class TextReplace(BaseModel):
    old_text: str = Field(..., min_length=1)
    new_text: str
    version: int = Field(..., ge=1)
    source: EntrySource = "manual"


class MutationResult(BaseModel):
    """Successful mutation outcome."""

    id: str
    version: int
    updated_at: datetime


class CreateResult(BaseModel):
    id: str
    title: str
    version: int
    created_at: datetime


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AMBIGUOUS = "ambiguous"
    INVALID_ARGUMENT = "invalid_argument"


class EntryError(BaseModel):
    """Recoverable failure of an entry operation.

    ``current_version`` is set for conflicts and ``match_count`` for
    ambiguous replacements so callers can re-fetch or widen their context.
    """

    error: ErrorKind
    message: str
    current_version: Optional[int] = None
    match_count: Optional[int] = None

    def detail(self) -> dict:
        extra = {}
        if self.current_version is not None:
            extra["current_version"] = self.current_version
        if self.match_count is not None:
            extra["match_count"] = self.match_count
        return extra


class VersionSnapshot(BaseModel):
    """Append-only audit row written alongside every version bump."""

    entry_id: str
    version: int = Field(..., ge=1)
    title: str
    content: str
    summary: Optional[str] = None
    change_summary: str
    source: EntrySource
    word_count: int
    created_at: datetime


__all__ = [
    "Entry",
    "EntryType",
    "EntrySource",
    "ReadMode",
    "SectionInfo",
    "LineRange",
    "SectionContent",
    "PageWindow",
    "EntryPage",
    "EntryOutline",
    "EntryFull",
    "EntryListItem",
    "EntryListResponse",
    "EntryCreate",
    "EntryUpdate",
    "EntryAppend",
    "SectionUpdate",
    "TextReplace",
    "MutationResult",
    "CreateResult",
    "ErrorKind",
    "EntryError",
    "VersionSnapshot",
]
