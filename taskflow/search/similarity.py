"""
Similarity search engine.

Brute-force cosine ranking over the stored embeddings of one record kind,
optionally restricted to a candidate id set. similarity = 1 - cosine
distance, computed on unit-normalised vectors; ties go to the lower id.
"""

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np

from taskflow.core.models import RecordKind
from taskflow.core.record_store import RecordStore
from taskflow.search.embeddings import EMBEDDING_DIM, blob_to_vector, normalize

logger = logging.getLogger(__name__)


def cosine_similarities(query_vector: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """1 - cosine distance between ``query_vector`` and each row of ``matrix``"""
    query = normalize(query_vector)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return (matrix / norms) @ query


def rank(ids: List[int], scores: np.ndarray, limit: int) -> List[Tuple[int, float]]:
    """Order by score descending, then id ascending, and keep ``limit``"""
    order = sorted(range(len(ids)), key=lambda i: (-float(scores[i]), ids[i]))
    return [(ids[i], float(scores[i])) for i in order[:max(limit, 0)]]


class SimilaritySearchEngine:
    """
    Ranks records by cosine similarity to a query vector.

    Args:
        store: Record store holding the embeddings
        dimension: Expected embedding length; blobs of another size are skipped
    """

    def __init__(self, store: RecordStore, dimension: int = EMBEDDING_DIM):
        self.store = store
        self.dimension = dimension

    def search(
        self,
        kind: RecordKind,
        query_vector: np.ndarray,
        candidate_ids: Optional[Iterable[int]] = None,
        limit: int = 10,
    ) -> List[Tuple[int, float]]:
        """
        Rank stored embeddings against ``query_vector``.

        Args:
            kind: Which record kind to search
            query_vector: Query embedding
            candidate_ids: Only score these records (hybrid mode); None scores all
            limit: Maximum number of results

        Returns:
            List of (record id, similarity) sorted by similarity descending
        """
        if candidate_ids is not None:
            candidate_ids = list(candidate_ids)
            if not candidate_ids:
                return []

        ids: List[int] = []
        vectors: List[np.ndarray] = []
        for record_id, blob in self.store.embeddings(kind, candidate_ids):
            try:
                vectors.append(blob_to_vector(blob, self.dimension))
            except ValueError as e:
                logger.warning(f"Skipping {kind.label} {record_id}: {e}")
                continue
            ids.append(record_id)

        if not ids:
            return []

        scores = cosine_similarities(np.asarray(query_vector, dtype=np.float32), np.vstack(vectors))
        results = rank(ids, scores, limit)
        logger.debug(f"Scored {len(ids)} {kind.label}s, returning {len(results)}")
        return results
