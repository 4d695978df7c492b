"""Entry relation models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

RelationType = Literal["references", "continues", "related", "contradicts", "summarizes"]
RelationDirection = Literal["outgoing", "incoming"]


class EntryRelation(BaseModel):
    """A typed link seen from one entry; ``target_*`` describe the other end."""

    relation_id: str
    target_id: str
    target_title: str
    target_summary: Optional[str] = None
    type: RelationType
    direction: RelationDirection
    created_at: datetime


class RelationCreate(BaseModel):
    to_id: str = Field(..., min_length=1, description="Target entry ID")
    type: RelationType


class RelationCreated(BaseModel):
    id: str


class RelationListResponse(BaseModel):
    relations: list[EntryRelation]


__all__ = [
    "RelationType",
    "RelationDirection",
    "EntryRelation",
    "RelationCreate",
    "RelationCreated",
    "RelationListResponse",
]
