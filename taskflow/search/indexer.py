"""
Embedding indexer.

Keeps each record's stored embedding in step with its text. The text is
``title + " " + body`` (description for tasks, content for notes), trimmed;
empty text means no embedding and clears any stale one.
"""

import logging
from typing import Dict

from taskflow.core.models import Record, RecordKind
from taskflow.core.record_store import RecordStore
from taskflow.errors import EmbeddingError, RecordNotFoundError
from taskflow.search.embeddings import EmbeddingFunction, vector_to_blob

logger = logging.getLogger(__name__)


def embedding_text(record: Record) -> str:
    return f"{record.title or ''} {record.body}".strip()


class EmbeddingIndexer:
    """
    Computes and persists record embeddings.

    Args:
        store: Record store the embeddings are written to
        embedder: Embedding function (normally the shared sentence-transformers model)
    """

    def __init__(self, store: RecordStore, embedder: EmbeddingFunction):
        self.store = store
        self.embedder = embedder

    def index(self, kind: RecordKind, record: Record) -> bool:
        """
        Re-embed one record.

        Returns:
            True if an embedding was stored, False if it was cleared (empty text)

        Raises:
            EmbeddingError: If the embedding function fails
            StoreError: If the embedding cannot be written
        """
        text = embedding_text(record)
        if not text:
            self.store.update_embedding(kind, record.id, None)
            logger.debug(f"Cleared embedding for {kind.label} {record.id} (no text)")
            return False

        vector = self.embedder.embed(text)
        blob = vector_to_blob(vector, self.embedder.dimension)
        self.store.update_embedding(kind, record.id, blob)
        logger.debug(f"Indexed {kind.label} {record.id} ({len(blob)} bytes)")
        return True

    def reindex(self, kind: RecordKind, record_id: int) -> bool:
        """Re-embed a stored record by id"""
        record = self.store.get_by_id(kind, record_id)
        if record is None:
            raise RecordNotFoundError(kind.value, record_id)
        return self.index(kind, record)

    def reindex_all(self, kind: RecordKind) -> Dict[str, int]:
        """
        Rebuild embeddings for every record of one kind.

        Per-record failures are counted and logged; one bad record does not
        stop the run. An EmbeddingError (model unavailable) aborts it.

        Returns:
            Dict with indexed / cleared / failed counts
        """
        stats = {"indexed": 0, "cleared": 0, "failed": 0}
        for record in self.store.get_all(kind):
            try:
                if self.index(kind, record):
                    stats["indexed"] += 1
                else:
                    stats["cleared"] += 1
            except EmbeddingError:
                raise
            except Exception as e:
                stats["failed"] += 1
                logger.error(f"Failed to index {kind.label} {record.id}: {e}")

        logger.info(
            f"Reindexed {kind.label}s: {stats['indexed']} indexed, "
            f"{stats['cleared']} cleared, {stats['failed']} failed"
        )
        return stats
