"""FastMCP server exposing entry reading and editing tools to agents."""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any, Dict, List, Literal, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

# Load environment variables from .env file
load_dotenv()

from ..models.entry import (
    EntryAppend,
    EntryCreate,
    EntryError,
    EntryUpdate,
    SectionUpdate,
    TextReplace,
)
from ..models.relation import RelationType
from ..services.config import get_config
from ..services.database import init_database
from ..services.entry_service import get_entry_service

logger = logging.getLogger(__name__)

EntryTypeArg = Literal["note", "diary", "experience", "document"]

mcp = FastMCP(
    "notebrain",
    instructions=(
        "Markdown knowledge base tools. Long entries (by word count) are returned as an "
        "outline of '##' sections; read a section by its 0-based index or a line window "
        "with a 1-based offset. Every edit requires the entry's current version and fails "
        "on mismatch: re-read and retry. entry_replace_text needs old_text to occur exactly "
        "once; widen the context when it reports several matches."
    ),
)


def _current_user_id() -> str:
    """Resolve the acting user ID (single-tenant; defaults to local-dev)."""
    return get_config().local_user_id


def _unwrap(result: Any, tool_name: str) -> Any:
    if isinstance(result, EntryError):
        logger.info(
            "MCP tool rejected",
            extra={"tool_name": tool_name, "error": result.error.value},
        )
        raise ToolError(result.message)
    return result


def _log_call(tool_name: str, start_time: float, **fields: Any) -> None:
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "MCP tool called",
        extra={"tool_name": tool_name, "duration_ms": f"{duration_ms:.2f}", **fields},
    )


def entries_list(
    notebook_id: Annotated[Optional[str], Field(description="Notebook ID filter")] = None,
    tags: Annotated[Optional[List[str]], Field(description="Tag names (any match)")] = None,
    type: Annotated[Optional[EntryTypeArg], Field(description="Entry type filter")] = None,
    sort_by: Literal["updated_at", "created_at", "title"] = "updated_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: Annotated[int, Field(ge=1)] = 1,
    page_size: Annotated[int, Field(ge=1, le=100)] = 20,
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = get_entry_service().list_entries(
        user_id,
        notebook_id=notebook_id,
        tags=tags,
        entry_type=type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    _log_call("entries_list", start_time, user_id=user_id, result_count=len(result.entries))
    return result.model_dump(mode="json")


def entry_get(
    id: Annotated[str, Field(description="Entry ID")],
    mode: Annotated[
        Optional[Literal["full", "outline"]],
        Field(description="full=whole body, outline=section list; omit to decide by length"),
    ] = None,
    offset: Annotated[
        Optional[int],
        Field(ge=1, description="1-based first line; when given, mode is ignored"),
    ] = None,
    limit: Annotated[
        Optional[int], Field(ge=1, description="Number of lines to read with offset")
    ] = None,
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().get_entry(user_id, id, mode=mode, offset=offset, limit=limit),
        "entry_get",
    )
    _log_call("entry_get", start_time, user_id=user_id, entry_id=id, mode=result.mode)
    return result.model_dump(mode="json")


def entry_get_section(
    id: Annotated[str, Field(description="Entry ID")],
    section_index: Annotated[int, Field(ge=0, description="0-based index from the outline")],
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().get_section(user_id, id, section_index), "entry_get_section"
    )
    _log_call("entry_get_section", start_time, user_id=user_id, entry_id=id)
    return result.model_dump(mode="json")


def entry_create(
    title: Annotated[str, Field(description="Entry title")],
    content: Annotated[str, Field(description="Markdown body")],
    notebook_id: Optional[str] = None,
    tags: Optional[List[str]] = None,
    type: EntryTypeArg = "note",
    summary: Annotated[Optional[str], Field(description="Derived when omitted")] = None,
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = get_entry_service().create_entry(
        user_id,
        EntryCreate(
            title=title,
            content=content,
            notebook_id=notebook_id,
            tags=tags,
            type=type,
            summary=summary,
            source="agent",
        ),
    )
    _log_call("entry_create", start_time, user_id=user_id, entry_id=result.id)
    return result.model_dump(mode="json")


def entry_update(
    id: Annotated[str, Field(description="Entry ID")],
    version: Annotated[int, Field(ge=1, description="Current version from entry_get")],
    title: Optional[str] = None,
    content: Annotated[Optional[str], Field(description="New full Markdown body")] = None,
    summary: Optional[str] = None,
    tags: Annotated[Optional[List[str]], Field(description="Replaces all tags")] = None,
    notebook_id: Optional[str] = None,
    type: Optional[EntryTypeArg] = None,
    change_summary: Optional[str] = None,
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().update_entry(
            user_id,
            id,
            EntryUpdate(
                version=version,
                title=title,
                content=content,
                summary=summary,
                tags=tags,
                notebook_id=notebook_id,
                type=type,
                change_summary=change_summary,
                source="agent",
            ),
        ),
        "entry_update",
    )
    _log_call("entry_update", start_time, user_id=user_id, entry_id=id, version=result.version)
    return result.model_dump(mode="json")


def entry_append(
    id: Annotated[str, Field(description="Entry ID")],
    content: Annotated[str, Field(description="Markdown to append")],
    version: Annotated[int, Field(ge=1, description="Current version")],
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().append_entry(
            user_id, id, EntryAppend(content=content, version=version, source="agent")
        ),
        "entry_append",
    )
    _log_call("entry_append", start_time, user_id=user_id, entry_id=id, version=result.version)
    return result.model_dump(mode="json")


def entry_update_section(
    id: Annotated[str, Field(description="Entry ID")],
    section_index: Annotated[int, Field(ge=0, description="0-based section index")],
    content: Annotated[str, Field(description="Replacement text, heading line included")],
    version: Annotated[int, Field(ge=1, description="Current version")],
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().update_section(
            user_id,
            id,
            section_index,
            SectionUpdate(content=content, version=version, source="agent"),
        ),
        "entry_update_section",
    )
    _log_call(
        "entry_update_section", start_time, user_id=user_id, entry_id=id, version=result.version
    )
    return result.model_dump(mode="json")


def entry_replace_text(
    id: Annotated[str, Field(description="Entry ID")],
    old_text: Annotated[str, Field(min_length=1, description="Literal text occurring once")],
    new_text: Annotated[str, Field(description="Replacement text")],
    version: Annotated[int, Field(ge=1, description="Current version")],
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().replace_text(
            user_id,
            id,
            TextReplace(old_text=old_text, new_text=new_text, version=version, source="agent"),
        ),
        "entry_replace_text",
    )
    _log_call(
        "entry_replace_text", start_time, user_id=user_id, entry_id=id, version=result.version
    )
    return result.model_dump(mode="json")


def entry_versions(id: Annotated[str, Field(description="Entry ID")]) -> List[Dict[str, Any]]:
    user_id = _current_user_id()
    versions = _unwrap(get_entry_service().list_versions(user_id, id), "entry_versions")
    return [
        snapshot.model_dump(mode="json", exclude={"content"}) for snapshot in versions
    ]


def entry_delete(id: Annotated[str, Field(description="Entry ID")]) -> Dict[str, str]:
    user_id = _current_user_id()
    if not get_entry_service().delete_entry(user_id, id, source="agent"):
        raise ToolError(f"Entry not found: {id}")
    return {"status": "ok"}


def entry_relations_list(id: Annotated[str, Field(description="Entry ID")]) -> Dict[str, Any]:
    user_id = _current_user_id()
    relations = get_entry_service().relations.list_relations(user_id, id)
    if relations is None:
        raise ToolError(f"Entry not found: {id}")
    return {"relations": [relation.model_dump(mode="json") for relation in relations]}


def entry_relation_create(
    from_id: Annotated[str, Field(description="Source entry ID")],
    to_id: Annotated[str, Field(description="Target entry ID")],
    type: Annotated[
        RelationType,
        Field(description="references, continues, related, contradicts or summarizes"),
    ],
) -> Dict[str, Any]:
    start_time = time.time()
    user_id = _current_user_id()
    result = _unwrap(
        get_entry_service().relations.create_relation(user_id, from_id, to_id, type),
        "entry_relation_create",
    )
    _log_call("entry_relation_create", start_time, user_id=user_id, relation_id=result.id)
    return result.model_dump(mode="json")


def entry_relation_delete(
    entry_id: Annotated[str, Field(description="Entry ID")],
    relation_id: Annotated[str, Field(description="Relation ID")],
) -> Dict[str, str]:
    user_id = _current_user_id()
    if not get_entry_service().relations.delete_relation(user_id, relation_id):
        raise ToolError(f"Relation not found: {relation_id}")
    return {"status": "ok"}


def logs_recent(limit: Annotated[int, Field(ge=1, le=100)] = 10) -> List[Dict[str, Any]]:
    user_id = _current_user_id()
    logs = get_entry_service().logs.recent_logs(user_id, limit=limit)
    return [log.model_dump(mode="json") for log in logs]


TOOLS = (
    (entries_list, "List entries by metadata (notebook, tags, type) with paging and sorting."),
    (
        entry_get,
        "Read an entry. Short entries return the full body; long ones return an outline of "
        "sections with line numbers. Pass offset+limit to read a line window with line-number "
        "prefixes.",
    ),
    (entry_get_section, "Read one section (by outline index) with line-number prefixes."),
    (entry_create, "Create an entry. Tags are created on the fly."),
    (
        entry_update,
        "Update an entry (full body replacement and/or fields). version is required.",
    ),
    (entry_append, "Append Markdown to the end of an entry."),
    (entry_update_section, "Replace one section of an entry by its index."),
    (
        entry_replace_text,
        "Replace a literal text fragment that occurs exactly once in the entry.",
    ),
    (entry_versions, "List an entry's version history (newest first)."),
    (entry_delete, "Delete an entry and its history."),
    (entry_relations_list, "List an entry's relations (outgoing and incoming)."),
    (
        entry_relation_create,
        "Link two entries. Types: references, continues, related, contradicts, summarizes.",
    ),
    (entry_relation_delete, "Delete a relation between entries."),
    (logs_recent, "List the most recent agent actions."),
)

for _fn, _description in TOOLS:
    mcp.tool(name=_fn.__name__, description=_description)(_fn)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
    mcp.run()
