"""Typed links between entries of the same user."""

from __future__ import annotations

from datetime import datetime
import logging
import sqlite3
from typing import List, Optional, Union
import uuid

from ..models.entry import EntryError, ErrorKind
from ..models.relation import EntryRelation, RelationCreated, RelationType
from .database import DatabaseService
from .entry_store import utcnow_iso

logger = logging.getLogger(__name__)

_OUTGOING_SQL = """
    SELECT r.id, r.type, r.created_at, e.id AS target_id, e.title, e.summary
    FROM entry_relations r
    JOIN entries e ON e.id = r.to_id
    WHERE r.from_id = ?
    ORDER BY r.created_at, r.id
"""
_INCOMING_SQL = """
    SELECT r.id, r.type, r.created_at, e.id AS target_id, e.title, e.summary
    FROM entry_relations r
    JOIN entries e ON e.id = r.from_id
    WHERE r.to_id = ?
    ORDER BY r.created_at, r.id
"""


class RelationService:
    """List, create and delete relations; ownership is checked on both ends."""

    def __init__(self, db_service: DatabaseService | None = None) -> None:
        self.db_service = db_service or DatabaseService()

    def list_relations(self, user_id: str, entry_id: str) -> Optional[List[EntryRelation]]:
        """Outgoing then incoming relations, or None if the entry does not exist."""
        conn = self.db_service.connect()
        try:
            if not self._owns(conn, user_id, entry_id):
                return None
            return self._relations_for(conn, entry_id)
        finally:
            conn.close()

    def relations_for(self, entry_id: str) -> List[EntryRelation]:
        conn = self.db_service.connect()
        try:
            return self._relations_for(conn, entry_id)
        finally:
            conn.close()

    def create_relation(
        self, user_id: str, from_id: str, to_id: str, relation_type: RelationType
    ) -> Union[RelationCreated, EntryError]:
        relation_id = str(uuid.uuid4())
        conn = self.db_service.connect()
        try:
            for entry_id in (from_id, to_id):
                if not self._owns(conn, user_id, entry_id):
                    return EntryError(
                        error=ErrorKind.NOT_FOUND, message=f"Entry not found: {entry_id}"
                    )
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO entry_relations (id, from_id, to_id, type, created_at) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (relation_id, from_id, to_id, relation_type, utcnow_iso()),
                    )
            except sqlite3.IntegrityError:
                return EntryError(
                    error=ErrorKind.INVALID_ARGUMENT,
                    message=f"Relation already exists: {from_id} -[{relation_type}]-> {to_id}",
                )
        finally:
            conn.close()

        logger.info(
            "Relation created",
            extra={
                "user_id": user_id,
                "relation_id": relation_id,
                "from_id": from_id,
                "to_id": to_id,
                "type": relation_type,
            },
        )
        return RelationCreated(id=relation_id)

    def delete_relation(self, user_id: str, relation_id: str) -> bool:
        """Delete a relation whose source entry belongs to ``user_id``."""
        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(
                    """
                    DELETE FROM entry_relations
                    WHERE id = ?
                      AND from_id IN (SELECT id FROM entries WHERE user_id = ?)
                    """,
                    (relation_id, user_id),
                )
            deleted = cursor.rowcount == 1
        finally:
            conn.close()
        if deleted:
            logger.info(
                "Relation deleted", extra={"user_id": user_id, "relation_id": relation_id}
            )
        return deleted

    @staticmethod
    def _owns(conn: sqlite3.Connection, user_id: str, entry_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM entries WHERE id = ? AND user_id = ?", (entry_id, user_id)
        ).fetchone()
        return row is not None

    def _relations_for(self, conn: sqlite3.Connection, entry_id: str) -> List[EntryRelation]:
        relations: List[EntryRelation] = []
        for sql, direction in ((_OUTGOING_SQL, "outgoing"), (_INCOMING_SQL, "incoming")):
            for row in conn.execute(sql, (entry_id,)).fetchall():
                relations.append(
                    EntryRelation(
                        relation_id=row["id"],
                        target_id=row["target_id"],
                        target_title=row["title"],
                        target_summary=row["summary"],
                        type=row["type"],
                        direction=direction,
                        created_at=datetime.fromisoformat(row["created_at"]),
                    )
                )
        return relations


__all__ = ["RelationService"]
