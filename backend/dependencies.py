"""
Dependency injection for FastAPI endpoints.

Provides singleton instances of Config, Database, the record store and the
search components to be used across all API routes.

Pattern: **Dependency Injection** - FastAPI's Depends() mechanism lets
tests swap any of these with ``app.dependency_overrides``.
"""

from functools import lru_cache

from taskflow.core.config import Config
from taskflow.core.database import Database
from taskflow.core.record_store import RecordStore
from taskflow.search.classifier import OpenAIClassifierOracle, QueryClassifier
from taskflow.search.embeddings import SentenceTransformerEmbedder, shared_embedder
from taskflow.search.fuser import ResultFuser
from taskflow.search.indexer import EmbeddingIndexer


@lru_cache()
def get_config() -> Config:
    """
    Get cached Config instance.

    lru_cache ensures we only create one Config instance
    for the lifetime of the application (singleton pattern).
    """
    return Config()


@lru_cache()
def get_database() -> Database:
    """Get cached Database instance for the configured path."""
    return Database(get_config().get_database_path())


def get_embedder() -> SentenceTransformerEmbedder:
    """
    Process-wide embedding model handle.

    The model itself loads lazily on first use, guarded so that concurrent
    first requests share a single load.
    """
    config = get_config()
    return shared_embedder(
        config.get("embedding_model", section="search"),
        config.get("embedding_dimension", section="search"),
    )


@lru_cache()
def get_record_store() -> RecordStore:
    """Record store with inline embedding indexing attached."""
    store = RecordStore(get_database())
    store.attach_indexer(EmbeddingIndexer(store, get_embedder()))
    return store


def get_indexer() -> EmbeddingIndexer:
    """Indexer bound to the shared record store."""
    return get_record_store().indexer


@lru_cache()
def get_classifier() -> QueryClassifier:
    """Query classifier backed by the configured OpenAI model."""
    config = get_config()
    oracle = OpenAIClassifierOracle(
        model=config.get("classifier_model", section="search"),
        timeout=float(config.get("classifier_timeout_seconds", section="search")),
    )
    return QueryClassifier(oracle)


def get_result_fuser() -> ResultFuser:
    """Hybrid search orchestrator wired to the shared components."""
    config = get_config()
    return ResultFuser(
        store=get_record_store(),
        classifier=get_classifier(),
        embedder=get_embedder(),
        semantic_limit=config.get("semantic_limit", section="search"),
        structured_limit=config.get("structured_limit", section="search"),
    )
