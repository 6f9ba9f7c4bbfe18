"""
Record store for tasks and notes.

Wraps the SQLite database with record-level operations. Writes that change
a record's text re-index its embedding inline, after the row is committed;
an indexing failure is logged and leaves the record unindexed rather than
failing the write.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from taskflow.core.database import Database
from taskflow.core.models import Record, RecordKind, record_from_row, utc_now_iso
from taskflow.errors import RecordNotFoundError, StoreError

if TYPE_CHECKING:
    from taskflow.search.indexer import EmbeddingIndexer
    from taskflow.search.predicates import CompiledFilter

logger = logging.getLogger(__name__)

# Stay well under SQLite's bound-parameter limit
_ID_CHUNK = 500

# Everything except the embedding blob
_RECORD_COLUMNS = {
    RecordKind.TASK: "id, list_id, title, description, status, priority, due_date, created_at, tags",
    RecordKind.NOTE: "id, list_id, title, content, created_at, updated_at, tags",
}


@contextmanager
def _store_errors(operation: str):
    try:
        yield
    except sqlite3.Error as e:
        logger.error(f"Record store {operation} failed: {e}")
        raise StoreError(f"{operation} failed: {e}") from e


def _chunks(ids: List[int]) -> Iterable[List[int]]:
    for i in range(0, len(ids), _ID_CHUNK):
        yield ids[i:i + _ID_CHUNK]


class RecordStore:
    """
    Record-level access to the ``tasks`` and ``notes`` tables.

    Args:
        db: Database instance
        indexer: Optional embedding indexer run after text-changing writes
    """

    def __init__(self, db: Database, indexer: Optional['EmbeddingIndexer'] = None):
        self.db = db
        self.indexer = indexer

    def attach_indexer(self, indexer: 'EmbeddingIndexer') -> None:
        self.indexer = indexer

    # === Reads ===

    def get_all(self, kind: RecordKind) -> List[Record]:
        with _store_errors("get_all"):
            rows = self.db.execute(
                f"SELECT {_RECORD_COLUMNS[kind]} FROM {kind.value} ORDER BY id"
            )
        return [record_from_row(kind, row) for row in rows]

    def get_by_id(self, kind: RecordKind, record_id: int) -> Optional[Record]:
        with _store_errors("get_by_id"):
            row = self.db.execute_one(
                f"SELECT {_RECORD_COLUMNS[kind]} FROM {kind.value} WHERE id = ?",
                (record_id,),
            )
        return record_from_row(kind, row) if row else None

    def get_many(self, kind: RecordKind, record_ids: Iterable[int]) -> Dict[int, Record]:
        ids = list(dict.fromkeys(record_ids))
        records: Dict[int, Record] = {}
        with _store_errors("get_many"):
            for chunk in _chunks(ids):
                placeholders = ", ".join("?" for _ in chunk)
                rows = self.db.execute(
                    f"SELECT {_RECORD_COLUMNS[kind]} FROM {kind.value} WHERE id IN ({placeholders})",
                    chunk,
                )
                for row in rows:
                    records[row["id"]] = record_from_row(kind, row)
        return records

    def filter(self, kind: RecordKind, compiled: 'CompiledFilter',
               limit: Optional[int] = None) -> List[Record]:
        """Records matching a compiled filter, ordered by id"""
        query = f"SELECT {_RECORD_COLUMNS[kind]} FROM {kind.value}"
        params: List[Any] = list(compiled.params)
        if not compiled.is_empty:
            query += f" WHERE {compiled.where}"
        query += " ORDER BY id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with _store_errors("filter"):
            rows = self.db.execute(query, params)
        return [record_from_row(kind, row) for row in rows]

    def filter_ids(self, kind: RecordKind, compiled: 'CompiledFilter') -> List[int]:
        """Identifiers of every record matching a compiled filter"""
        query = f"SELECT id FROM {kind.value}"
        if not compiled.is_empty:
            query += f" WHERE {compiled.where}"
        query += " ORDER BY id"

        with _store_errors("filter_ids"):
            rows = self.db.execute(query, compiled.params)
        return [row["id"] for row in rows]

    def embeddings(self, kind: RecordKind,
                   record_ids: Optional[Iterable[int]] = None) -> List[Tuple[int, bytes]]:
        """
        Stored embeddings as ``(id, blob)`` pairs, skipping unindexed records.

        Args:
            kind: Record kind
            record_ids: Restrict to these ids; None means every record
        """
        base = f"SELECT id, embedding FROM {kind.value} WHERE embedding IS NOT NULL"
        with _store_errors("embeddings"):
            if record_ids is None:
                rows = self.db.execute(base + " ORDER BY id")
            else:
                rows = []
                for chunk in _chunks(sorted(set(record_ids))):
                    placeholders = ", ".join("?" for _ in chunk)
                    rows.extend(self.db.execute(
                        f"{base} AND id IN ({placeholders}) ORDER BY id", chunk
                    ))
        return [(row["id"], bytes(row["embedding"])) for row in rows]

    # === Writes ===

    def put(self, kind: RecordKind, record: Record) -> Record:
        """
        Insert (id is None) or update a record, then re-index if its text changed.

        Returns:
            The stored record, including its store-assigned id

        Raises:
            RecordNotFoundError: If updating an id that does not exist
            StoreError: If the write fails
        """
        previous = None
        if record.id is not None:
            previous = self.get_by_id(kind, record.id)
            if previous is None:
                raise RecordNotFoundError(kind.value, record.id)

        text_changed = previous is None or (previous.title, previous.body) != (record.title, record.body)

        row = record.to_row()
        if previous is not None and kind is RecordKind.NOTE:
            row["updated_at"] = utc_now_iso()
        columns = list(row)
        values = [row[c] for c in columns]

        with _store_errors("put"):
            if previous is None:
                placeholders = ", ".join("?" for _ in columns)
                record.id = self.db.execute_write(
                    f"INSERT INTO {kind.value} ({', '.join(columns)}) VALUES ({placeholders})",
                    values,
                )
            else:
                assignments = [f"{c} = ?" for c in columns]
                if text_changed:
                    # The old vector describes the old text
                    assignments.append("embedding = NULL")
                self.db.execute_write(
                    f"UPDATE {kind.value} SET {', '.join(assignments)} WHERE id = ?",
                    values + [record.id],
                )

        stored = self.get_by_id(kind, record.id)
        if text_changed:
            self._reindex_quietly(kind, stored)
        return stored

    def delete(self, kind: RecordKind, record_id: int) -> bool:
        with _store_errors("delete"):
            changed = self.db.execute_write(
                f"DELETE FROM {kind.value} WHERE id = ?", (record_id,)
            )
        return changed > 0

    def update_embedding(self, kind: RecordKind, record_id: int,
                         blob: Optional[bytes]) -> bool:
        """Store (or clear, with None) a record's embedding blob"""
        with _store_errors("update_embedding"):
            changed = self.db.execute_write(
                f"UPDATE {kind.value} SET embedding = ? WHERE id = ?",
                (blob, record_id),
            )
        return changed > 0

    def _reindex_quietly(self, kind: RecordKind, record: Record) -> None:
        if self.indexer is None:
            return
        try:
            self.indexer.index(kind, record)
        except Exception as e:
            logger.error(
                f"Indexing {kind.label} {record.id} failed; record stays unindexed: {e}",
                exc_info=True,
            )
