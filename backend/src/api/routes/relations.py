"""HTTP API routes for relations between entries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from ...models.entry import EntryError
from ...models.relation import RelationCreate, RelationCreated, RelationListResponse
from ...services.entry_service import EntryService, get_entry_service
from ...services.relation_service import RelationService
from ..middleware import EntryOperationError
from .entries import get_user_id

router = APIRouter()


def get_relation_service(
    service: EntryService = Depends(get_entry_service),
) -> RelationService:
    return service.relations


@router.get("/api/entries/{entry_id}/relations", response_model=RelationListResponse)
async def list_relations(
    entry_id: str,
    user_id: str = Depends(get_user_id),
    relations: RelationService = Depends(get_relation_service),
):
    """Outgoing and incoming relations of an entry."""
    result = relations.list_relations(user_id, entry_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Entry not found: {entry_id}")
    return RelationListResponse(relations=result)


@router.post(
    "/api/entries/{entry_id}/relations", response_model=RelationCreated, status_code=201
)
async def create_relation(
    entry_id: str,
    create: RelationCreate,
    user_id: str = Depends(get_user_id),
    relations: RelationService = Depends(get_relation_service),
):
    """Link this entry to ``to_id`` with a typed relation."""
    result = relations.create_relation(user_id, entry_id, create.to_id, create.type)
    if isinstance(result, EntryError):
        raise EntryOperationError(result)
    return result


@router.delete("/api/entries/{entry_id}/relations/{relation_id}", status_code=204)
async def delete_relation(
    entry_id: str,
    relation_id: str,
    user_id: str = Depends(get_user_id),
    relations: RelationService = Depends(get_relation_service),
):
    if not relations.delete_relation(user_id, relation_id):
        raise HTTPException(status_code=404, detail=f"Relation not found: {relation_id}")
    return Response(status_code=204)


__all__ = ["router"]
