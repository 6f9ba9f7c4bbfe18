"""
Unit tests for the embedding function and blob encoding.
The sentence-transformers model is patched out; these tests check loading,
shape and storage format only.
"""

import threading
import time
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from taskflow.errors import EmbeddingError
from taskflow.search.embeddings import (
    EMBEDDING_DIM,
    SentenceTransformerEmbedder,
    blob_to_vector,
    normalize,
    shared_embedder,
    vector_to_blob,
)

LOADER = "taskflow.search.embeddings._load_sentence_transformer"


def fake_model(dimension=EMBEDDING_DIM):
    model = MagicMock()
    model.encode.side_effect = lambda text, **kwargs: normalize(np.ones(dimension))
    return model


class TestBlobs:
    """Tests for the stored vector format."""

    def test_blob_is_little_endian_float32(self):
        vector = np.arange(EMBEDDING_DIM, dtype=np.float32)

        blob = vector_to_blob(vector)

        assert len(blob) == 1536
        # 1.0 as little-endian IEEE 754
        assert blob[4:8] == b"\x00\x00\x80\x3f"
        assert np.array_equal(blob_to_vector(blob), vector)

    def test_wrong_dimension_rejected_on_write(self):
        with pytest.raises(EmbeddingError):
            vector_to_blob(np.ones(10))

    def test_wrong_size_rejected_on_read(self):
        with pytest.raises(ValueError):
            blob_to_vector(b"\x00" * 100)

    def test_normalize_leaves_zero_vector(self):
        assert not normalize(np.zeros(3)).any()
        assert np.isclose(np.linalg.norm(normalize(np.array([3.0, 4.0]))), 1.0)


class TestSentenceTransformerEmbedder:
    """Tests for lazy model loading and embedding."""

    def test_model_not_loaded_until_first_embed(self):
        with patch(LOADER, return_value=fake_model()) as loader:
            embedder = SentenceTransformerEmbedder()
            assert not embedder.is_loaded
            loader.assert_not_called()

            vector = embedder.embed("hello")

        assert embedder.is_loaded
        assert vector.dtype == np.float32
        assert vector.shape == (EMBEDDING_DIM,)
        assert np.isclose(np.linalg.norm(vector), 1.0)

    def test_encode_requests_normalized_numpy(self):
        model = fake_model()
        with patch(LOADER, return_value=model):
            SentenceTransformerEmbedder().embed("hello")

        kwargs = model.encode.call_args.kwargs
        assert kwargs["normalize_embeddings"] is True
        assert kwargs["convert_to_numpy"] is True

    def test_concurrent_first_use_loads_once(self):
        def slow_load(name):
            time.sleep(0.05)
            return fake_model()

        embedder = SentenceTransformerEmbedder()
        with patch(LOADER, side_effect=slow_load) as loader:
            threads = [threading.Thread(target=embedder.embed, args=(f"t{i}",)) for i in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert loader.call_count == 1

    def test_load_failure_raises_and_retries_later(self):
        embedder = SentenceTransformerEmbedder()

        with patch(LOADER, side_effect=OSError("no network")):
            with pytest.raises(EmbeddingError):
                embedder.embed("hello")
        assert not embedder.is_loaded

        with patch(LOADER, return_value=fake_model()):
            assert embedder.embed("hello").shape == (EMBEDDING_DIM,)

    def test_wrong_model_dimension(self):
        with patch(LOADER, return_value=fake_model(dimension=768)):
            with pytest.raises(EmbeddingError):
                SentenceTransformerEmbedder().embed("hello")

    def test_encode_failure_wrapped(self):
        model = MagicMock()
        model.encode.side_effect = RuntimeError("CUDA out of memory")
        with patch(LOADER, return_value=model):
            with pytest.raises(EmbeddingError):
                SentenceTransformerEmbedder().embed("hello")


class TestSharedEmbedder:
    def test_same_instance_per_model(self):
        assert shared_embedder("model-a") is shared_embedder("model-a")
        assert shared_embedder("model-a") is not shared_embedder("model-b")
