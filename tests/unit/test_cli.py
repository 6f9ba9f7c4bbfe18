"""
Unit tests for the command line interface.
Components are swapped for test doubles; no model or API is contacted.
"""

import json

import pytest
from typer.testing import CliRunner

from taskflow import cli
from taskflow.core.models import RecordKind, Task
from taskflow.search.classifier import QueryClassifier
from taskflow.search.fuser import ResultFuser

runner = CliRunner()


@pytest.fixture
def wired(monkeypatch, indexed_store, embedder, make_oracle):
    """Point the CLI at the temporary store, fake embedder and a scripted oracle."""
    oracle = make_oracle({"type": "semantic", "filters": [], "search_terms": None})
    monkeypatch.setattr(cli, "get_store", lambda: indexed_store)
    monkeypatch.setattr(
        cli, "get_fuser", lambda: ResultFuser(indexed_store, QueryClassifier(oracle), embedder)
    )
    return oracle


class TestParseDue:
    """Tests for due date parsing."""

    def test_iso_date(self):
        assert cli.parse_due("2025-08-10") == "2025-08-10T00:00:00.000Z"

    def test_relative_words(self):
        assert cli.parse_due("today").endswith("T00:00:00.000Z")
        assert cli.parse_due("Tomorrow") > cli.parse_due("today")

    def test_unparseable(self):
        assert cli.parse_due("someday") is None


class TestCommands:
    """Tests for the add / note / search / reindex commands."""

    def test_add_task(self, wired, indexed_store):
        result = runner.invoke(cli.app, ["add", "Apollo review", "-p", "High", "-d", "2025-08-12", "-t", "apollo"])

        assert result.exit_code == 0
        task = indexed_store.get_all(RecordKind.TASK)[0]
        assert task.priority == "High"
        assert task.due_date == "2025-08-12T00:00:00.000Z"
        assert task.tags == ["apollo"]

    def test_add_rejects_bad_date(self, wired):
        result = runner.invoke(cli.app, ["add", "x", "--due", "someday"])

        assert result.exit_code == 1
        assert "Could not parse date" in result.output

    def test_search_json(self, wired, indexed_store):
        task = indexed_store.put(RecordKind.TASK, Task(title="Apollo launch"))

        result = runner.invoke(cli.app, ["search", "Apollo", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["intent"]["type"] == "semantic"
        assert payload["results"][0]["id"] == task.id

    def test_search_unknown_kind(self, wired):
        assert runner.invoke(cli.app, ["search", "x", "--kind", "goal"]).exit_code == 2

    def test_search_unavailable(self, wired, embedder):
        embedder.fail = True

        result = runner.invoke(cli.app, ["search", "Apollo"])

        assert result.exit_code == 1
        assert "Search unavailable" in result.output

    def test_note_and_reindex(self, wired, indexed_store):
        assert runner.invoke(cli.app, ["note", "Standup", "-c", "minutes"]).exit_code == 0

        result = runner.invoke(cli.app, ["reindex", "--kind", "note"])

        assert result.exit_code == 0
        assert "Notes" in result.output
        assert len(indexed_store.embeddings(RecordKind.NOTE)) == 1
