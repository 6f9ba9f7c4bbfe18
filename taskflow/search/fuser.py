"""
Result fuser: the hybrid search entry point.

Classifies the query, then runs exactly one of three single-pass branches:

- structured: compiled predicates against the store, up to 50 records by id,
  no similarity score.
- semantic: filters ignored; embed the search terms (or the raw query when
  there are none) and rank every indexed record, up to 10.
- hybrid: compiled predicates select a candidate set, which is then ranked by
  similarity, up to 10. No candidates means no results; there is no fallback
  to a global semantic search.

Classifier and predicate problems degrade the query but never fail it.
Embedding failures raise ``SearchUnavailable``; store failures propagate as
``StoreError``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from taskflow.core.models import Record, RecordKind
from taskflow.core.record_store import RecordStore
from taskflow.errors import EmbeddingError, InvalidPredicateError, SearchUnavailable
from taskflow.search.classifier import QueryClassifier
from taskflow.search.embeddings import EmbeddingFunction
from taskflow.search.intent import QueryIntent, QueryType
from taskflow.search.predicates import PredicateCompiler
from taskflow.search.similarity import SimilaritySearchEngine

logger = logging.getLogger(__name__)

SEMANTIC_LIMIT = 10
STRUCTURED_LIMIT = 50


@dataclass
class RankedResult:
    """One search hit; ``similarity`` is None for structured queries"""
    id: int
    kind: RecordKind
    similarity: Optional[float] = None
    record: Optional[Record] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.label,
            "similarity": self.similarity,
            "record": self.record.to_dict() if self.record is not None else None,
        }


@dataclass
class SearchResult:
    intent: QueryIntent
    results: List[RankedResult] = field(default_factory=list)
    dropped_predicates: List[InvalidPredicateError] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped_predicates)


class ResultFuser:
    """
    Orchestrates classifier, predicate compiler, embedder and similarity engine.

    Args:
        store: Record store
        classifier: Query classifier
        embedder: Embedding function used for query vectors
        engine: Similarity engine (built over ``store`` if omitted)
        semantic_limit: Result cap for semantic and hybrid queries
        structured_limit: Result cap for structured queries
    """

    def __init__(
        self,
        store: RecordStore,
        classifier: QueryClassifier,
        embedder: EmbeddingFunction,
        engine: Optional[SimilaritySearchEngine] = None,
        semantic_limit: int = SEMANTIC_LIMIT,
        structured_limit: int = STRUCTURED_LIMIT,
    ):
        self.store = store
        self.classifier = classifier
        self.embedder = embedder
        self.engine = engine or SimilaritySearchEngine(store, dimension=embedder.dimension)
        self.semantic_limit = semantic_limit
        self.structured_limit = structured_limit

    def hybrid_search(self, query: str, now: Optional[datetime] = None,
                      kind: RecordKind = RecordKind.TASK) -> List[RankedResult]:
        """Ranked results for ``query``; see ``search`` for errors"""
        return self.search(query, now=now, kind=kind).results

    def search(self, query: str, now: Optional[datetime] = None,
               kind: RecordKind = RecordKind.TASK) -> SearchResult:
        """
        Run one natural-language query.

        Raises:
            SearchUnavailable: If a query vector was needed but could not be computed
            StoreError: If the record store fails
        """
        if now is None:
            now = datetime.now(timezone.utc)

        intent = self.classifier.classify(query, now)
        logger.info(f"Searching {kind.label}s: type={intent.type.value} filters={len(intent.filters)}")

        if intent.type is QueryType.STRUCTURED:
            return self._structured(kind, intent)
        if intent.type is QueryType.HYBRID:
            return self._hybrid(kind, intent, query)
        return self._semantic(kind, intent, query)

    def _structured(self, kind: RecordKind, intent: QueryIntent) -> SearchResult:
        compiled = PredicateCompiler(kind).compile(intent.filters)
        records = self.store.filter(kind, compiled.to_sql(), limit=self.structured_limit)
        results = [RankedResult(id=r.id, kind=kind, record=r) for r in records]
        return SearchResult(intent=intent, results=results, dropped_predicates=compiled.dropped)

    def _semantic(self, kind: RecordKind, intent: QueryIntent, query: str) -> SearchResult:
        text = self._query_text(intent, query)
        if not text:
            return SearchResult(intent=intent)

        vector = self._embed_query(text)
        ranked = self.engine.search(kind, vector, limit=self.semantic_limit)
        return SearchResult(intent=intent, results=self._attach_records(kind, ranked))

    def _hybrid(self, kind: RecordKind, intent: QueryIntent, query: str) -> SearchResult:
        compiled = PredicateCompiler(kind).compile(intent.filters)
        candidate_ids = self.store.filter_ids(kind, compiled.to_sql())
        if not candidate_ids:
            logger.info("Hybrid filters matched no records")
            return SearchResult(intent=intent, dropped_predicates=compiled.dropped)

        text = self._query_text(intent, query)
        if not text:
            return SearchResult(intent=intent, dropped_predicates=compiled.dropped)

        vector = self._embed_query(text)
        ranked = self.engine.search(kind, vector, candidate_ids=candidate_ids, limit=self.semantic_limit)
        return SearchResult(
            intent=intent,
            results=self._attach_records(kind, ranked),
            dropped_predicates=compiled.dropped,
        )

    @staticmethod
    def _query_text(intent: QueryIntent, query: str) -> str:
        terms = (intent.search_terms or "").strip()
        return terms or (query or "").strip()

    def _embed_query(self, text: str):
        try:
            return self.embedder.embed(text)
        except EmbeddingError as e:
            logger.error(f"Query embedding failed: {e}")
            raise SearchUnavailable(f"Search is unavailable: {e}") from e

    def _attach_records(self, kind: RecordKind, ranked) -> List[RankedResult]:
        records = self.store.get_many(kind, [record_id for record_id, _ in ranked])
        return [
            RankedResult(id=record_id, kind=kind, similarity=score, record=records.get(record_id))
            for record_id, score in ranked
            if record_id in records
        ]
