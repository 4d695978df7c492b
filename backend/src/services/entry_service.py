"""Entry read and mutation workflows with optimistic concurrency control."""

from __future__ import annotations

import logging
import time
from typing import Optional, Union

from ..models.agent_log import DiffStats
from ..models.entry import (
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
    EntrySource,
    EntryUpdate,
    ErrorKind,
    MutationResult,
    PageWindow,
    SectionContent,
    SectionUpdate,
    TextReplace,
    VersionSnapshot,
)
from .agent_log import AgentLogService
from .config import DEFAULT_LONG_DOC_THRESHOLD, DEFAULT_PAGE_LIMIT, get_config
from .entry_store import EntryStore
from .relation_service import RelationService
from .markdown import (
    AmbiguousMatchError,
    SectionNotFoundError,
    TextNotFoundError,
    count_lines,
    count_words,
    derive_summary,
    get_line_range,
    get_section_content,
    parse_sections,
    replace_exact_text,
    replace_section_content,
)

logger = logging.getLogger(__name__)

CHANGE_CREATE = "初始创建"
CHANGE_UPDATE = "更新文档"
CHANGE_APPEND = "追加内容"
CHANGE_REPLACE = "精确文本替换"

ReadResult = Union[EntryPage, EntryOutline, EntryFull, EntryError]
MutationOutcome = Union[MutationResult, EntryError]


def section_change_summary(section_index: int) -> str:
    return f"更新了 section {section_index}"


def _not_found(entry_id: str) -> EntryError:
    return EntryError(error=ErrorKind.NOT_FOUND, message=f"Entry not found: {entry_id}")


def _conflict(current_version: int, requested_version: int) -> EntryError:
    return EntryError(
        error=ErrorKind.CONFLICT,
        message=(
            f"Version conflict: current version is {current_version}, "
            f"requested version is {requested_version}"
        ),
        current_version=current_version,
    )


def _invalid(message: str) -> EntryError:
    return EntryError(error=ErrorKind.INVALID_ARGUMENT, message=message)


class EntryService:
    """Read views and safe mutations over persisted entries.

    Every mutation loads a snapshot, checks the caller's version, derives the
    new content, and persists through a conditional write keyed on that same
    version. Expected failures come back as :class:`EntryError` values;
    storage errors propagate.
    """

    def __init__(
        self,
        store: EntryStore | None = None,
        log_service: AgentLogService | None = None,
        relation_service: RelationService | None = None,
        *,
        long_doc_threshold: int = DEFAULT_LONG_DOC_THRESHOLD,
        default_page_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        self.store = store or EntryStore()
        self.logs = log_service or AgentLogService(self.store.db_service)
        self.relations = relation_service or RelationService(self.store.db_service)
        self.long_doc_threshold = long_doc_threshold
        self.default_page_limit = default_page_limit

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(
        self,
        user_id: str,
        entry_id: str,
        *,
        mode: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ReadResult:
        """Return a page, outline, or full view of an entry.

        ``offset`` takes precedence over ``mode``. Without either, documents at
        or above the long-document threshold are returned as an outline.
        """
        if mode is not None and mode not in ("full", "outline"):
            return _invalid(f"Unsupported read mode: {mode}")
        if offset is not None and offset < 1:
            return _invalid("offset must be >= 1")
        if limit is not None and limit < 1:
            return _invalid("limit must be >= 1")

        entry = self.store.fetch(user_id, entry_id)
        if entry is None:
            return _not_found(entry_id)

        total_lines = count_lines(entry.content)

        if offset is not None:
            page_limit = limit or self.default_page_limit
            line_range = get_line_range(entry.content, offset, page_limit)
            return EntryPage(
                id=entry.id,
                title=entry.title,
                version=entry.version,
                total_lines=total_lines,
                showing=PageWindow(
                    offset=offset, limit=page_limit, has_more=line_range.has_more
                ),
                content=line_range.content,
            )

        resolved = mode or (
            "outline" if entry.word_count >= self.long_doc_threshold else "full"
        )
        metadata = dict(
            id=entry.id,
            title=entry.title,
            summary=entry.summary,
            type=entry.type,
            source=entry.source,
            version=entry.version,
            word_count=entry.word_count,
            total_lines=total_lines,
            notebook_id=entry.notebook_id,
            tags=entry.tags,
            relations=self.relations.relations_for(entry.id),
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )
        if resolved == "outline":
            return EntryOutline(sections=parse_sections(entry.content), **metadata)
        return EntryFull(content=entry.content, **metadata)

    def get_section(
        self, user_id: str, entry_id: str, section_index: int
    ) -> Union[SectionContent, EntryError]:
        if section_index < 0:
            return _invalid("section_index must be >= 0")
        entry = self.store.fetch(user_id, entry_id)
        if entry is None:
            return _not_found(entry_id)
        try:
            return get_section_content(entry.content, section_index)
        except SectionNotFoundError as exc:
            return EntryError(error=ErrorKind.NOT_FOUND, message=str(exc))

    def list_entries(
        self,
        user_id: str,
        *,
        notebook_id: Optional[str] = None,
        tags: Optional[list[str]] = None,
        entry_type: Optional[str] = None,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = 20,
    ) -> EntryListResponse:
        entries, total = self.store.list_entries(
            user_id,
            notebook_id=notebook_id,
            tags=tags,
            entry_type=entry_type,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )
        return EntryListResponse(
            entries=[
                EntryListItem(
                    id=entry.id,
                    title=entry.title,
                    summary=entry.summary,
                    type=entry.type,
                    source=entry.source,
                    word_count=entry.word_count,
                    notebook_id=entry.notebook_id,
                    tags=entry.tags,
                    created_at=entry.created_at,
                    updated_at=entry.updated_at,
                )
                for entry in entries
            ],
            total=total,
            page=page,
            page_size=page_size,
        )

    def list_versions(
        self, user_id: str, entry_id: str
    ) -> Union[list[VersionSnapshot], EntryError]:
        versions = self.store.list_versions(user_id, entry_id)
        if versions is None:
            return _not_found(entry_id)
        return versions

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_entry(self, user_id: str, data: EntryCreate) -> CreateResult:
        word_count = count_words(data.content)
        entry = self.store.insert(
            user_id,
            title=data.title,
            content=data.content,
            summary=data.summary or derive_summary(data.content),
            word_count=word_count,
            notebook_id=data.notebook_id,
            entry_type=data.type,
            source=data.source,
            tags=data.tags,
            change_summary=CHANGE_CREATE,
        )
        logger.info(
            "Entry created",
            extra={"user_id": user_id, "entry_id": entry.id, "source": data.source},
        )
        if data.source == "agent":
            self.logs.create_log(
                user_id,
                "create",
                entry_id=entry.id,
                entry_title=entry.title,
                summary=f'创建了 "{entry.title}"',
                diff_stats=DiffStats(added_words=word_count),
            )
        return CreateResult(
            id=entry.id, title=entry.title, version=entry.version, created_at=entry.created_at
        )

    def update_entry(self, user_id: str, entry_id: str, data: EntryUpdate) -> MutationOutcome:
        """Full or partial update; only fields that are present overwrite."""
        existing = self.store.fetch(user_id, entry_id)
        if existing is None:
            return _not_found(entry_id)
        if existing.version != data.version:
            return self._reject(_conflict(existing.version, data.version), entry_id)
        return self._commit(user_id, existing, data)

    def append_entry(self, user_id: str, entry_id: str, data: EntryAppend) -> MutationOutcome:
        existing = self.store.fetch(user_id, entry_id)
        if existing is None:
            return _not_found(entry_id)
        if existing.version != data.version:
            return self._reject(_conflict(existing.version, data.version), entry_id)

        new_content = existing.content + "\n\n" + data.content
        return self._commit(
            user_id,
            existing,
            EntryUpdate.model_construct(
                version=data.version,
                content=new_content,
                change_summary=CHANGE_APPEND,
                source=data.source,
            ),
        )

    def update_section(
        self, user_id: str, entry_id: str, section_index: int, data: SectionUpdate
    ) -> MutationOutcome:
        if section_index < 0:
            return _invalid("section_index must be >= 0")
        existing = self.store.fetch(user_id, entry_id)
        if existing is None:
            return _not_found(entry_id)
        if existing.version != data.version:
            return self._reject(_conflict(existing.version, data.version), entry_id)

        try:
            new_content = replace_section_content(existing.content, section_index, data.content)
        except SectionNotFoundError as exc:
            return self._reject(
                EntryError(error=ErrorKind.NOT_FOUND, message=str(exc)), entry_id
            )

        return self._commit(
            user_id,
            existing,
            EntryUpdate.model_construct(
                version=data.version,
                content=new_content,
                change_summary=section_change_summary(section_index),
                source=data.source,
            ),
        )

    def replace_text(self, user_id: str, entry_id: str, data: TextReplace) -> MutationOutcome:
        existing = self.store.fetch(user_id, entry_id)
        if existing is None:
            return _not_found(entry_id)
        if existing.version != data.version:
            return self._reject(_conflict(existing.version, data.version), entry_id)

        try:
            new_content = replace_exact_text(existing.content, data.old_text, data.new_text)
        except TextNotFoundError as exc:
            return self._reject(
                EntryError(error=ErrorKind.NOT_FOUND, message=str(exc)), entry_id
            )
        except AmbiguousMatchError as exc:
            return self._reject(
                EntryError(
                    error=ErrorKind.AMBIGUOUS, message=str(exc), match_count=exc.count
                ),
                entry_id,
            )
        except ValueError as exc:
            return _invalid(str(exc))

        return self._commit(
            user_id,
            existing,
            EntryUpdate.model_construct(
                version=data.version,
                content=new_content,
                change_summary=CHANGE_REPLACE,
                source=data.source,
            ),
        )

    def delete_entry(
        self, user_id: str, entry_id: str, source: EntrySource = "manual"
    ) -> bool:
        existing = self.store.fetch(user_id, entry_id) if source == "agent" else None
        deleted = self.store.delete(user_id, entry_id)
        if deleted:
            logger.info("Entry deleted", extra={"user_id": user_id, "entry_id": entry_id})
        if deleted and existing is not None:
            self.logs.create_log(
                user_id,
                "delete",
                entry_id=entry_id,
                entry_title=existing.title,
                summary=f'删除了 "{existing.title}"',
                diff_stats=DiffStats(removed_words=existing.word_count),
            )
        return deleted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, user_id: str, existing: Entry, data: EntryUpdate) -> MutationOutcome:
        start_time = time.time()

        changes: dict = {}
        if data.title is not None:
            changes["title"] = data.title
        if data.content is not None:
            changes["content"] = data.content
            changes["word_count"] = count_words(data.content)
            if not data.summary:
                changes["summary"] = derive_summary(data.content)
        if data.summary is not None:
            changes["summary"] = data.summary
        if data.notebook_id is not None:
            changes["notebook_id"] = data.notebook_id
        if data.type is not None:
            changes["type"] = data.type

        change_summary = data.change_summary or CHANGE_UPDATE
        updated = self.store.compare_and_swap(
            user_id,
            existing.id,
            data.version,
            changes,
            tags=data.tags,
            change_summary=change_summary,
            source=data.source,
        )
        if updated is None:
            # A concurrent writer bumped the version between fetch and write.
            current = self.store.fetch(user_id, existing.id)
            if current is None:
                return _not_found(existing.id)
            return self._reject(_conflict(current.version, data.version), existing.id)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Entry updated",
            extra={
                "user_id": user_id,
                "entry_id": updated.id,
                "version": updated.version,
                "change_summary": change_summary,
                "source": data.source,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )

        if data.source == "agent":
            old_wc = existing.word_count
            new_wc = updated.word_count
            self.logs.create_log(
                user_id,
                "update",
                entry_id=updated.id,
                entry_title=updated.title,
                summary=data.change_summary or f'更新了 "{updated.title}"',
                diff_stats=DiffStats(
                    added_words=max(0, new_wc - old_wc),
                    removed_words=max(0, old_wc - new_wc),
                ),
            )

        return MutationResult(id=updated.id, version=updated.version, updated_at=updated.updated_at)

    @staticmethod
    def _reject(error: EntryError, entry_id: str) -> EntryError:
        logger.info(
            "Entry mutation rejected",
            extra={"entry_id": entry_id, "error": error.error.value, "reason": error.message},
        )
        return error


_entry_service: Optional[EntryService] = None


def get_entry_service() -> EntryService:
    """Get or create the entry service singleton."""
    global _entry_service
    if _entry_service is None:
        config = get_config()
        _entry_service = EntryService(
            log_service=AgentLogService(retention_days=config.log_retention_days),
            long_doc_threshold=config.long_doc_threshold,
            default_page_limit=config.default_page_limit,
        )
    return _entry_service


__all__ = [
    "EntryService",
    "get_entry_service",
    "section_change_summary",
    "CHANGE_CREATE",
    "CHANGE_UPDATE",
    "CHANGE_APPEND",
    "CHANGE_REPLACE",
]
