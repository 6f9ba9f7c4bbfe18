"""
Unit tests for the result fuser (end-to-end search over a real SQLite store).
The classifier oracle is scripted and the embedder is the deterministic
bag-of-words fake from conftest.
"""

from datetime import datetime, timezone

import pytest

from taskflow.core.models import Note, RecordKind, Task
from taskflow.errors import SearchUnavailable, StoreError
from taskflow.search.classifier import QueryClassifier
from taskflow.search.fuser import ResultFuser
from taskflow.search.intent import QueryType

NOW = datetime(2025, 8, 15, tzinfo=timezone.utc)


def structured(*filters):
    return {"type": "structured", "filters": list(filters)}


def hybrid(terms, *filters):
    return {"type": "hybrid", "filters": list(filters), "search_terms": terms}


HIGH = {"field": "priority", "operator": "=", "value": "High"}
RECENT = {"field": "dueDate", "operator": ">=", "value": "2025-08-10T00:00:00.000Z"}


@pytest.fixture
def make_fuser(indexed_store, embedder, make_oracle):
    def build(reply=None, error=None):
        oracle = make_oracle(reply, error)
        return ResultFuser(indexed_store, QueryClassifier(oracle), embedder)
    return build


@pytest.fixture
def apollo_tasks(indexed_store):
    """Four tasks; only the first two are High priority and due since Aug 10."""
    put = lambda **kw: indexed_store.put(RecordKind.TASK, Task(**kw)).id
    return {
        "apollo": put(title="Apollo", priority="High", due_date="2025-08-12"),
        "groceries": put(title="Buy groceries", priority="High", due_date="2025-08-13"),
        "low": put(title="Apollo retrospective", priority="Low", due_date="2025-08-12"),
        "old": put(title="Apollo kickoff", priority="High", due_date="2025-07-01"),
    }


class TestStructured:
    """Structured queries: filters only, ordered by id, no similarity."""

    def test_filters_without_embedding(self, make_fuser, apollo_tasks, embedder):
        fuser = make_fuser(structured(HIGH, RECENT))
        calls_before = len(embedder.calls)

        result = fuser.search("high priority tasks due since Aug 10", NOW)

        assert [r.id for r in result.results] == [apollo_tasks["apollo"], apollo_tasks["groceries"]]
        assert all(r.similarity is None for r in result.results)
        assert result.results[0].record.title == "Apollo"
        assert len(embedder.calls) == calls_before

    def test_capped_at_fifty(self, make_fuser, store):
        for i in range(60):
            store.put(RecordKind.TASK, Task(title=f"task {i}", priority="High"))

        results = make_fuser(structured(HIGH)).hybrid_search("all high", NOW)

        assert len(results) == 50
        assert [r.id for r in results] == sorted(r.id for r in results)

    def test_invalid_clauses_dropped_and_reported(self, make_fuser, apollo_tasks):
        bad = {"field": "password", "operator": "=", "value": "x"}

        result = make_fuser(structured(HIGH, bad)).search("q", NOW)

        assert result.dropped_count == 1
        assert len(result.results) == 3


class TestSemantic:
    """Semantic queries: filters ignored, ranked by similarity."""

    def test_classifier_failure_searches_raw_query(self, make_fuser, apollo_tasks, embedder):
        fuser = make_fuser(error=ConnectionError("offline"))

        result = fuser.search("Apollo", NOW)

        assert result.intent.type is QueryType.SEMANTIC
        assert embedder.calls[-1] == "Apollo"
        assert result.results[0].id == apollo_tasks["apollo"]
        assert result.results[0].similarity == pytest.approx(1.0, abs=1e-5)

    def test_filters_ignored(self, make_fuser, apollo_tasks):
        reply = {"type": "semantic", "filters": [HIGH], "search_terms": "Apollo"}

        ids = [r.id for r in make_fuser(reply).hybrid_search("Apollo", NOW)]

        assert apollo_tasks["low"] in ids

    def test_empty_query_returns_nothing(self, make_fuser, apollo_tasks, embedder):
        calls_before = len(embedder.calls)

        assert make_fuser(structured(HIGH)).hybrid_search("", NOW) == []
        assert len(embedder.calls) == calls_before

    def test_embedding_failure_is_unavailable(self, make_fuser, apollo_tasks, embedder):
        embedder.fail = True

        with pytest.raises(SearchUnavailable):
            make_fuser(error=TimeoutError()).search("Apollo", NOW)

    def test_notes_searched_by_kind(self, make_fuser, indexed_store, apollo_tasks):
        note = indexed_store.put(RecordKind.NOTE, Note(title="Apollo notes", content="minutes"))

        results = make_fuser(error=TimeoutError()).hybrid_search("Apollo", NOW, kind=RecordKind.NOTE)

        assert [(r.id, r.kind) for r in results] == [(note.id, RecordKind.NOTE)]


class TestHybrid:
    """Hybrid queries: filters pick candidates, similarity ranks them."""

    def test_apollo_scenario(self, make_fuser, apollo_tasks):
        result = make_fuser(hybrid("Apollo", HIGH, RECENT)).search(
            "show my high-priority tasks about Apollo which ended in last 5 days", NOW
        )

        ids = [r.id for r in result.results]
        assert ids[0] == apollo_tasks["apollo"]
        assert set(ids) <= {apollo_tasks["apollo"], apollo_tasks["groceries"]}
        assert result.results[0].similarity == pytest.approx(1.0, abs=1e-5)

    def test_no_candidates_means_no_results(self, make_fuser, apollo_tasks, embedder):
        nothing = {"field": "dueDate", "operator": ">", "value": "2030-01-01T00:00:00.000Z"}
        calls_before = len(embedder.calls)

        result = make_fuser(hybrid("Apollo", nothing)).search("Apollo in 2030", NOW)

        assert result.results == []
        assert len(embedder.calls) == calls_before

    def test_missing_terms_use_query(self, make_fuser, apollo_tasks, embedder):
        make_fuser(hybrid(None, HIGH)).search("Apollo", NOW)

        assert embedder.calls[-1] == "Apollo"


class TestStoreFailure:
    def test_store_error_propagates(self, make_fuser, indexed_store, monkeypatch):
        def broken(*args, **kwargs):
            raise StoreError("disk I/O error")

        monkeypatch.setattr(indexed_store, "filter", broken)

        with pytest.raises(StoreError):
            make_fuser(structured(HIGH)).search("q", NOW)
