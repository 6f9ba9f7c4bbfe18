"""
Shared fixtures for TaskFlow tests.

Provides a temporary SQLite database with the production schema, a
deterministic bag-of-words embedder standing in for sentence-transformers,
and a scripted classifier oracle standing in for the OpenAI API.
"""

import hashlib
import json
import re
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from taskflow.core.database import Database
from taskflow.core.record_store import RecordStore
from taskflow.core.schema import init_schema
from taskflow.errors import EmbeddingError
from taskflow.search.embeddings import EMBEDDING_DIM
from taskflow.search.indexer import EmbeddingIndexer


class FakeEmbedder:
    """
    Deterministic embedder: hashed bag of words, L2-normalised.

    Texts sharing words get positive cosine similarity; ``fail`` makes every
    call raise EmbeddingError.
    """

    def __init__(self, dimension: int = EMBEDDING_DIM):
        self.dimension = dimension
        self.calls = []
        self.fail = False

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("model unavailable")
        vector = np.zeros(self.dimension, dtype=np.float32)
        for word in re.findall(r"\w+", text.lower()):
            slot = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            vector[slot] += 1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector


class ScriptedOracle:
    """Classifier oracle returning a fixed reply (or raising a fixed error)."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if isinstance(self.reply, (dict, list)):
            return json.dumps(self.reply)
        return self.reply


@pytest.fixture
def db(tmp_path):
    """Fresh database with the tasks and notes schema."""
    db_file = init_schema(tmp_path / "taskflow.db")
    return Database(db_file)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store(db):
    """Record store without indexing attached."""
    return RecordStore(db)


@pytest.fixture
def indexed_store(db, embedder):
    """Record store that indexes inline on every text-changing write."""
    store = RecordStore(db)
    store.attach_indexer(EmbeddingIndexer(store, embedder))
    return store


@pytest.fixture
def make_oracle():
    return ScriptedOracle
