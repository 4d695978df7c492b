"""SQLite persistence for entries and their version snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence, Tuple
import uuid

from ..models.entry import Entry, EntrySource, VersionSnapshot
from .database import DatabaseService

logger = logging.getLogger(__name__)

MUTABLE_COLUMNS = ("title", "content", "summary", "notebook_id", "type", "word_count")
SORT_COLUMNS = {
    "updated_at": "updated_at",
    "updatedAt": "updated_at",
    "created_at": "created_at",
    "createdAt": "created_at",
    "title": "title",
}


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def normalize_tags(tags: Optional[Sequence[str]]) -> List[str]:
    """Trim tags, drop empties, and de-duplicate while preserving order."""
    seen: Dict[str, None] = {}
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


class EntryStore:
    """Entry rows, tags, and the append-only version history.

    Updates are conditional on the caller's expected version so that the
    version check and the write happen in a single statement.
    """

    def __init__(self, db_service: DatabaseService | None = None) -> None:
        self.db_service = db_service or DatabaseService()

    def fetch(self, user_id: str, entry_id: str) -> Optional[Entry]:
        conn = self.db_service.connect()
        try:
            return self._fetch(conn, user_id, entry_id)
        finally:
            conn.close()

    def insert(
        self,
        user_id: str,
        *,
        title: str,
        content: str,
        summary: Optional[str],
        word_count: int,
        notebook_id: Optional[str] = None,
        entry_type: str = "note",
        source: EntrySource = "manual",
        tags: Optional[Sequence[str]] = None,
        change_summary: str,
    ) -> Entry:
        """Create an entry at version 1 together with its first snapshot."""
        entry_id = str(uuid.uuid4())
        now = utcnow_iso()
        conn = self.db_service.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO entries (
                        id, user_id, notebook_id, title, content, summary,
                        type, source, version, word_count, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?)
                    """,
                    (
                        entry_id,
                        user_id,
                        notebook_id,
                        title,
                        content,
                        summary,
                        entry_type,
                        source,
                        word_count,
                        now,
                        now,
                    ),
                )
                self._replace_tags(conn, entry_id, tags)
                entry = self._fetch(conn, user_id, entry_id)
                self._insert_snapshot(conn, entry, change_summary, source)
            return entry
        finally:
            conn.close()

    def compare_and_swap(
        self,
        user_id: str,
        entry_id: str,
        expected_version: int,
        changes: Dict[str, Any],
        *,
        tags: Optional[Sequence[str]] = None,
        change_summary: str,
        source: EntrySource = "manual",
    ) -> Optional[Entry]:
        """Apply ``changes`` only if the stored version still equals ``expected_version``.

        Returns the updated entry, or None when no row matched (missing entry
        or a concurrent writer got there first). Nothing is written in that case.
        """
        unknown = set(changes) - set(MUTABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unsupported entry fields: {sorted(unknown)}")

        assignments = [f"{column} = ?" for column in changes]
        params: List[Any] = list(changes.values())
        assignments.extend(["version = version + 1", "updated_at = ?"])
        params.append(utcnow_iso())
        params.extend([entry_id, user_id, expected_version])

        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"UPDATE entries SET {', '.join(assignments)} "
                    "WHERE id = ? AND user_id = ? AND version = ?",
                    params,
                )
                if cursor.rowcount != 1:
                    logger.debug(
                        "Conditional update matched no row",
                        extra={"entry_id": entry_id, "expected_version": expected_version},
                    )
                    return None
                if tags is not None:
                    self._replace_tags(conn, entry_id, tags)
                entry = self._fetch(conn, user_id, entry_id)
                self._insert_snapshot(conn, entry, change_summary, source)
            return entry
        finally:
            conn.close()

    def delete(self, user_id: str, entry_id: str) -> bool:
        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(
                    "DELETE FROM entries WHERE id = ? AND user_id = ?", (entry_id, user_id)
                )
                if cursor.rowcount == 0:
                    return False
                conn.execute("DELETE FROM entry_tags WHERE entry_id = ?", (entry_id,))
                conn.execute("DELETE FROM entry_versions WHERE entry_id = ?", (entry_id,))
                conn.execute(
                    "DELETE FROM entry_relations WHERE from_id = ? OR to_id = ?",
                    (entry_id, entry_id),
                )
            return True
        finally:
            conn.close()

    def list_entries(
        self,
        user_id: str,
        *,
        notebook_id: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        entry_type: Optional[str] = None,
        sort_by: str = "updated_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Entry], int]:
        """Return one page of entries plus the total count for the filters."""
        sort_column = SORT_COLUMNS.get(sort_by)
        if sort_column is None:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        direction = "ASC" if sort_order.lower() == "asc" else "DESC"

        clauses = ["user_id = ?"]
        params: List[Any] = [user_id]
        if notebook_id:
            clauses.append("notebook_id = ?")
            params.append(notebook_id)
        if entry_type:
            clauses.append("type = ?")
            params.append(entry_type)
        tag_filter = normalize_tags(tags)
        if tag_filter:
            placeholders = ", ".join("?" for _ in tag_filter)
            clauses.append(
                "EXISTS (SELECT 1 FROM entry_tags t "
                f"WHERE t.entry_id = entries.id AND t.tag IN ({placeholders}))"
            )
            params.extend(tag_filter)
        where = " AND ".join(clauses)

        conn = self.db_service.connect()
        try:
            total = conn.execute(
                f"SELECT COUNT(*) AS total FROM entries WHERE {where}", params
            ).fetchone()["total"]
            rows = conn.execute(
                f"SELECT * FROM entries WHERE {where} "
                f"ORDER BY {sort_column} {direction}, id ASC LIMIT ? OFFSET ?",
                [*params, page_size, (page - 1) * page_size],
            ).fetchall()
            entries = [self._row_to_entry(row, self._tags_for(conn, row["id"])) for row in rows]
            return entries, total
        finally:
            conn.close()

    def list_versions(self, user_id: str, entry_id: str) -> Optional[List[VersionSnapshot]]:
        """Version history newest first, or None if the entry does not exist."""
        conn = self.db_service.connect()
        try:
            exists = conn.execute(
                "SELECT 1 FROM entries WHERE id = ? AND user_id = ?", (entry_id, user_id)
            ).fetchone()
            if exists is None:
                return None
            rows = conn.execute(
                """
                SELECT entry_id, version, title, content, summary, change_summary,
                       source, word_count, created_at
                FROM entry_versions
                WHERE entry_id = ?
                ORDER BY version DESC
                """,
                (entry_id,),
            ).fetchall()
            return [
                VersionSnapshot(
                    entry_id=row["entry_id"],
                    version=row["version"],
                    title=row["title"],
                    content=row["content"],
                    summary=row["summary"],
                    change_summary=row["change_summary"],
                    source=row["source"],
                    word_count=row["word_count"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]
        finally:
            conn.close()

    def _fetch(self, conn: sqlite3.Connection, user_id: str, entry_id: str) -> Optional[Entry]:
        row = conn.execute(
            "SELECT * FROM entries WHERE id = ? AND user_id = ?", (entry_id, user_id)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row, self._tags_for(conn, entry_id))

    def _tags_for(self, conn: sqlite3.Connection, entry_id: str) -> List[str]:
        rows = conn.execute(
            "SELECT tag FROM entry_tags WHERE entry_id = ? ORDER BY tag", (entry_id,)
        ).fetchall()
        return [row["tag"] for row in rows]

    def _replace_tags(
        self, conn: sqlite3.Connection, entry_id: str, tags: Optional[Sequence[str]]
    ) -> None:
        conn.execute("DELETE FROM entry_tags WHERE entry_id = ?", (entry_id,))
        cleaned = normalize_tags(tags)
        if cleaned:
            conn.executemany(
                "INSERT INTO entry_tags (entry_id, tag) VALUES (?, ?)",
                [(entry_id, tag) for tag in cleaned],
            )

    def _insert_snapshot(
        self,
        conn: sqlite3.Connection,
        entry: Entry,
        change_summary: str,
        source: EntrySource,
    ) -> None:
        conn.execute(
            """
            INSERT INTO entry_versions (
                entry_id, version, title, content, summary,
                change_summary, source, word_count, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.version,
                entry.title,
                entry.content,
                entry.summary,
                change_summary,
                source,
                entry.word_count,
                utcnow_iso(),
            ),
        )

    @staticmethod
    def _row_to_entry(row: sqlite3.Row, tags: List[str]) -> Entry:
        return Entry(
            id=row["id"],
            user_id=row["user_id"],
            notebook_id=row["notebook_id"],
            title=row["title"],
            content=row["content"],
            summary=row["summary"],
            type=row["type"],
            source=row["source"],
            version=row["version"],
            word_count=row["word_count"],
            tags=tags,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


__all__ = ["EntryStore", "normalize_tags", "utcnow_iso"]
