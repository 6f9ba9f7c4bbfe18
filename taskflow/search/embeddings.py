"""
Embedding function for tasks and notes.

Uses a local sentence-transformers model (all-MiniLM-L6-v2 by default):
mean-pooled, L2-normalised 384-dimensional vectors. The model is loaded
lazily, once per process; concurrent first callers block on the same lock
and reuse the single loaded model.

Vectors are stored as raw little-endian float32 bytes (4 x 384 bytes).
"""

import logging
import threading
from typing import Dict, Optional, Protocol, Tuple

import numpy as np

from taskflow.errors import EmbeddingError

logger = logging.getLogger(__name__)

EMBEDDING_DIM = 384
DEFAULT_MODEL = "all-MiniLM-L6-v2"

# Little-endian float32 regardless of host byte order
_BLOB_DTYPE = np.dtype("<f4")


class EmbeddingFunction(Protocol):
    """Anything that turns text into a fixed-length normalised vector"""

    dimension: int

    def embed(self, text: str) -> np.ndarray:
        ...


def _load_sentence_transformer(model_name: str):
    """Lazy import and load of a sentence-transformers model."""
    try:
        from sentence_transformers import SentenceTransformer
    except ImportError as e:
        raise EmbeddingError(
            "sentence-transformers not installed. Run: pip install sentence-transformers"
        ) from e
    return SentenceTransformer(model_name)


class SentenceTransformerEmbedder:
    """
    Generates embeddings with a local sentence-transformers model.

    Args:
        model_name: sentence-transformers model name
        dimension: Expected vector length; anything else is an EmbeddingError
    """

    def __init__(self, model_name: str = DEFAULT_MODEL, dimension: int = EMBEDDING_DIM):
        self.model_name = model_name
        self.dimension = dimension
        self._model = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def _get_model(self):
        model = self._model
        if model is not None:
            return model

        with self._lock:
            if self._model is None:
                logger.info(f"Loading embedding model: {self.model_name}")
                try:
                    self._model = _load_sentence_transformer(self.model_name)
                except EmbeddingError:
                    raise
                except Exception as e:
                    raise EmbeddingError(f"Failed to load embedding model {self.model_name}: {e}") from e
                logger.info(f"Embedding model ready: {self.model_name}")
            return self._model

    def embed(self, text: str) -> np.ndarray:
        """
        Embed a single text.

        Returns:
            float32 vector of length ``dimension`` with unit L2 norm

        Raises:
            EmbeddingError: If the model cannot be loaded or produces a bad vector
        """
        model = self._get_model()
        try:
            output = model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        except Exception as e:
            logger.error(f"Local embedding error: {e}")
            raise EmbeddingError(f"Embedding failed: {e}") from e

        vector = np.asarray(output, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.dimension:
            raise EmbeddingError(
                f"Model {self.model_name} returned {vector.shape[0]} dimensions, expected {self.dimension}"
            )
        return vector


_shared: Dict[Tuple[str, int], SentenceTransformerEmbedder] = {}
_shared_lock = threading.Lock()


def shared_embedder(model_name: str = DEFAULT_MODEL,
                    dimension: int = EMBEDDING_DIM) -> SentenceTransformerEmbedder:
    """Process-wide embedder for ``model_name``; the same instance for every caller."""
    key = (model_name, dimension)
    with _shared_lock:
        embedder = _shared.get(key)
        if embedder is None:
            embedder = SentenceTransformerEmbedder(model_name, dimension)
            _shared[key] = embedder
        return embedder


def normalize(vector: np.ndarray) -> np.ndarray:
    """Scale to unit L2 norm; the zero vector is returned unchanged"""
    vector = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


def vector_to_blob(vector: np.ndarray, dimension: int = EMBEDDING_DIM) -> bytes:
    """Encode as little-endian float32 bytes, exactly 4 * dimension long"""
    array = np.asarray(vector, dtype=_BLOB_DTYPE).reshape(-1)
    if array.shape[0] != dimension:
        raise EmbeddingError(f"Expected {dimension} dimensions, got {array.shape[0]}")
    return array.tobytes()


def blob_to_vector(blob: bytes, dimension: Optional[int] = EMBEDDING_DIM) -> np.ndarray:
    """Decode little-endian float32 bytes; raises ValueError on a size mismatch"""
    if dimension is not None and len(blob) != dimension * _BLOB_DTYPE.itemsize:
        raise ValueError(f"Embedding blob is {len(blob)} bytes, expected {dimension * _BLOB_DTYPE.itemsize}")
    return np.frombuffer(blob, dtype=_BLOB_DTYPE).astype(np.float32)
