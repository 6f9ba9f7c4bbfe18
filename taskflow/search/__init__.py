"""
Hybrid search engine for TaskFlow.

Query classification, predicate compilation, embedding indexing,
similarity ranking and result fusion.
"""

from .classifier import QueryClassifier, OpenAIClassifierOracle
from .embeddings import SentenceTransformerEmbedder, shared_embedder
from .fuser import ResultFuser, RankedResult, SearchResult
from .indexer import EmbeddingIndexer
from .intent import QueryIntent, QueryType, Operator
from .predicates import PredicateCompiler, CompiledFilter
from .similarity import SimilaritySearchEngine

__all__ = [
    'QueryClassifier',
    'OpenAIClassifierOracle',
    'SentenceTransformerEmbedder',
    'shared_embedder',
    'ResultFuser',
    'RankedResult',
    'SearchResult',
    'EmbeddingIndexer',
    'QueryIntent',
    'QueryType',
    'Operator',
    'PredicateCompiler',
    'CompiledFilter',
    'SimilaritySearchEngine',
]
