"""
Unit tests for the query classifier.
The language model is replaced by a scripted oracle; every failure mode
must fall back to a plain semantic search over the original query.
"""

from datetime import datetime, timezone

import pytest

from taskflow.errors import ClassificationError
from taskflow.search.classifier import QueryClassifier, build_prompt, parse_intent
from taskflow.search.intent import QueryIntent, QueryType

NOW = datetime(2025, 8, 15, tzinfo=timezone.utc)

APOLLO_QUERY = "show my high-priority tasks about Apollo which ended in last 5 days"
APOLLO_REPLY = {
    "type": "hybrid",
    "filters": [
        {"field": "priority", "operator": "=", "value": "High"},
        {"field": "dueDate", "operator": ">=", "value": "2025-08-10T00:00:00.000Z"},
    ],
    "search_terms": "Apollo",
}


class TestClassify:
    """Tests for QueryClassifier.classify()."""

    def test_hybrid_query(self, make_oracle):
        classifier = QueryClassifier(make_oracle(APOLLO_REPLY))

        intent = classifier.classify(APOLLO_QUERY, NOW)

        assert intent.type is QueryType.HYBRID
        assert intent.search_terms == "Apollo"
        assert [f.to_dict() for f in intent.filters] == APOLLO_REPLY["filters"]

    def test_prompt_carries_query_and_now(self, make_oracle):
        oracle = make_oracle(APOLLO_REPLY)

        QueryClassifier(oracle).classify(APOLLO_QUERY, NOW)

        assert len(oracle.prompts) == 1
        assert "2025-08-15T00:00:00.000Z" in oracle.prompts[0]
        assert APOLLO_QUERY in oracle.prompts[0]

    def test_oracle_error_falls_back(self, make_oracle):
        classifier = QueryClassifier(make_oracle(error=TimeoutError("timed out")))

        intent = classifier.classify("notes about gardening", NOW)

        assert intent == QueryIntent.semantic_default("notes about gardening")

    def test_invalid_json_falls_back(self, make_oracle):
        intent = QueryClassifier(make_oracle("definitely not json")).classify("budget", NOW)

        assert intent.type is QueryType.SEMANTIC
        assert intent.filters == []
        assert intent.search_terms == "budget"

    @pytest.mark.parametrize("reply", [
        {"type": "fuzzy", "filters": []},
        {"filters": []},
        {"type": "structured", "filters": "priority=High"},
        {"type": "structured", "filters": [{"field": "priority"}]},
        ["structured"],
    ])
    def test_schema_violations_fall_back(self, make_oracle, reply):
        intent = QueryClassifier(make_oracle(reply)).classify("budget", NOW)

        assert intent == QueryIntent.semantic_default("budget")

    def test_blank_query_skips_oracle(self, make_oracle):
        oracle = make_oracle(APOLLO_REPLY)

        intent = QueryClassifier(oracle).classify("   ", NOW)

        assert oracle.prompts == []
        assert intent.type is QueryType.SEMANTIC
        assert intent.search_terms == ""

    def test_now_defaults_to_current_time(self, make_oracle):
        oracle = make_oracle({"type": "semantic", "filters": [], "search_terms": "x"})

        QueryClassifier(oracle).classify("x")

        assert str(datetime.now(timezone.utc).year) in oracle.prompts[0]


class TestParseIntent:
    """Tests for parse_intent()."""

    def test_camel_case_search_terms(self):
        intent = parse_intent('{"type": "semantic", "filters": [], "searchTerms": "garden"}')

        assert intent.search_terms == "garden"

    def test_code_fence_stripped(self):
        intent = parse_intent('```json\n{"type": "structured", "filters": null}\n```')

        assert intent.type is QueryType.STRUCTURED
        assert intent.filters == []
        assert intent.search_terms is None

    def test_blank_search_terms_become_none(self):
        assert parse_intent('{"type": "semantic", "search_terms": "  "}').search_terms is None

    def test_unusual_filter_values_are_kept_for_the_compiler(self):
        intent = parse_intent(
            '{"type": "structured", "filters": '
            '[{"field": "password", "operator": "DROP", "value": ["a", 1]}]}'
        )

        assert intent.filters[0].field == "password"
        assert intent.filters[0].value == ["a", 1]

    def test_not_json_raises(self):
        with pytest.raises(ClassificationError):
            parse_intent("")


class TestBuildPrompt:
    """Tests for the classifier prompt."""

    def test_lists_fields_and_operators(self):
        prompt = build_prompt("anything", NOW)

        assert "dueDate" in prompt
        assert "updatedAt" in prompt
        assert "NOT IN" in prompt
        assert "LIKE" in prompt

    def test_query_is_escaped(self):
        prompt = build_prompt('say "hi"', NOW)

        assert 'Now parse: "say \\"hi\\""' in prompt
