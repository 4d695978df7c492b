"""HTTP API routes for entry operations."""

from __future__ import annotations

from typing import Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ...models.entry import (
    CreateResult,
    EntryAppend,
    EntryCreate,
    EntryError,
    EntryFull,
    EntryListResponse,
    EntryOutline,
    EntryPage,
    EntryUpdate,
    MutationResult,
    SectionContent,
    SectionUpdate,
    TextReplace,
    VersionSnapshot,
)
from ...services.config import get_config
from ...services.entry_service import EntryService, get_entry_service
from ..middleware import EntryOperationError

router = APIRouter()


def get_user_id() -> str:
    """Return the acting user ID (single-tenant; authentication is external)."""
    return get_config().local_user_id


@router.get("/api/entries", response_model=EntryListResponse)
async def list_entries(
    notebook_id: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma-separated tag names"),
    type: Optional[Literal["note", "diary", "experience", "document"]] = Query(None),
    sort_by: Literal["updated_at", "created_at", "title"] = Query("updated_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """List entries with metadata filters."""
    tag_names = [tag for tag in (tags or "").split(",") if tag.strip()]
    return service.list_entries(
        user_id,
        notebook_id=notebook_id,
        tags=tag_names or None,
        entry_type=type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )


@router.post("/api/entries", response_model=CreateResult, status_code=201)
async def create_entry(
    create: EntryCreate,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Create a new entry at version 1."""
    return service.create_entry(user_id, create)


@router.get(
    "/api/entries/{entry_id}",
    response_model=Union[EntryPage, EntryOutline, EntryFull],
)
async def get_entry(
    entry_id: str,
    mode: Optional[Literal["full", "outline"]] = Query(None),
    offset: Optional[int] = Query(None, ge=1, description="1-indexed first line"),
    limit: Optional[int] = Query(None, ge=1, description="Number of lines"),
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Read an entry as a page (offset given), an outline, or in full."""
    result = service.get_entry(user_id, entry_id, mode=mode, offset=offset, limit=limit)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.put("/api/entries/{entry_id}", response_model=MutationResult)
async def update_entry(
    entry_id: str,
    update: EntryUpdate,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Update an entry with optimistic concurrency control."""
    result = service.update_entry(user_id, entry_id, update)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.delete("/api/entries/{entry_id}", status_code=204)
async def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Delete an entry together with its version history."""
    if not service.delete_entry(user_id, entry_id):
        raise HTTPException(status_code=404, detail=f"Entry not found: {entry_id}")
    return Response(status_code=204)


@router.post("/api/entries/{entry_id}/append", response_model=MutationResult)
async def append_entry(
    entry_id: str,
    append: EntryAppend,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Append Markdown to the end of an entry."""
    result = service.append_entry(user_id, entry_id, append)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.get("/api/entries/{entry_id}/sections/{index}", response_model=SectionContent)
async def get_section(
    entry_id: str,
    index: int,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Read one ``##`` section with line-number prefixes."""
    result = service.get_section(user_id, entry_id, index)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.put("/api/entries/{entry_id}/sections/{index}", response_model=MutationResult)
async def update_section(
    entry_id: str,
    index: int,
    update: SectionUpdate,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Replace one section's lines, leaving the rest of the entry untouched."""
    result = service.update_section(user_id, entry_id, index, update)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.post("/api/entries/{entry_id}/replace", response_model=MutationResult)
async def replace_text(
    entry_id: str,
    replace: TextReplace,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Replace a unique literal occurrence of ``old_text``."""
    result = service.replace_text(user_id, entry_id, replace)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.get("/api/entries/{entry_id}/versions", response_model=dict[str, list[VersionSnapshot]])
async def list_versions(
    entry_id: str,
    user_id: str = Depends(get_user_id),
    service: EntryService = Depends(get_entry_service),
):
    """Version history, newest first."""
    result = service.list_versions(user_id, entry_id)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return {"versions": result}


__all__ = ["router", "get_user_id"]
