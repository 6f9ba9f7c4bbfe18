"""
Query classifier.

Asks a language model to turn free text into a ``QueryIntent``: the query
type, candidate filter clauses, and the leftover semantic search terms.
The model is advisory. Its reply is parsed as untrusted JSON and validated
against a schema, and any failure (network, timeout, bad JSON, bad shape)
falls back to a plain semantic search over the original query.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from taskflow.core.models import RecordKind, to_iso
from taskflow.errors import ClassificationError
from taskflow.search.intent import (
    FilterClause,
    Operator,
    QueryIntent,
    QueryType,
    allowed_fields,
)

logger = logging.getLogger(__name__)

DEFAULT_CLASSIFIER_MODEL = "gpt-4o-mini"


class ClassifierOracle(Protocol):
    """A language model that answers a prompt with text (expected to be JSON)"""

    def complete(self, prompt: str) -> str:
        ...


class OpenAIClassifierOracle:
    """
    Classifier oracle backed by the OpenAI chat completions API in JSON mode.

    Args:
        model: Chat model name
        timeout: Per-request timeout in seconds; no retries are attempted
        api_key: API key (defaults to the OPENAI_API_KEY environment variable)
    """

    def __init__(self, model: str = DEFAULT_CLASSIFIER_MODEL, timeout: float = 10.0,
                 api_key: Optional[str] = None):
        self.model = model
        self.timeout = timeout
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError as e:
                raise ClassificationError("OpenAI not installed. Run: pip install openai") from e

            api_key = self.api_key or os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise ClassificationError("OPENAI_API_KEY environment variable not set")
            self._client = OpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)
            logger.info(f"Initialized OpenAI classifier with model: {self.model}")
        return self._client

    def complete(self, prompt: str) -> str:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
            temperature=0,
        )
        return response.choices[0].message.content or ""


class _FilterPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    field: str
    operator: str
    value: Any


class _IntentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: QueryType
    filters: List[_FilterPayload] = Field(default_factory=list)
    search_terms: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("search_terms", "searchTerms")
    )

    @field_validator("filters", mode="before")
    @classmethod
    def _null_filters(cls, value):
        return [] if value is None else value


def build_prompt(query: str, now: datetime) -> str:
    """Prompt sent to the oracle; ``now`` anchors relative dates"""
    now_iso = to_iso(now)
    operators = ", ".join(op.value for op in Operator)
    task_fields = ", ".join(allowed_fields(RecordKind.TASK))
    note_fields = ", ".join(allowed_fields(RecordKind.NOTE))
    # Escaped with json.dumps so quotes in the query cannot end the string early
    quoted_query = json.dumps(query)

    return f"""You are a query parsing assistant for a task and note management app.
Return a JSON object in this format:
{{
  "type": "structured" | "semantic" | "hybrid",
  "filters": [
    {{ "field": "string", "operator": "string", "value": "string" }}
  ],
  "search_terms": "string | null"
}}

Use "structured" when the query is only exact conditions, "semantic" when it is
only a topic, and "hybrid" when it has both.

Fields MUST be one of:
  - Task: {task_fields}
  - Note: {note_fields}
Operators MUST be one of: {operators}
Priority values are Low, Medium, High.
Status values are Backlog, To Do, In Progress, Review, Waiting, Done.
For IN and NOT IN the value is a JSON list.
Dates MUST be full ISO 8601 (YYYY-MM-DDTHH:MM:SS.sssZ).
The current datetime is "{now_iso}"; use it to resolve relative dates (e.g. "last 5 days").

Example:
Input: "show my high-priority tasks about Apollo which ended in last 5 days"
(current datetime "2025-08-15T00:00:00.000Z")
Output:
{{
  "type": "hybrid",
  "filters": [
    {{ "field": "priority", "operator": "=", "value": "High" }},
    {{ "field": "dueDate", "operator": ">=", "value": "2025-08-10T00:00:00.000Z" }}
  ],
  "search_terms": "Apollo"
}}

Now parse: {quoted_query}
"""


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_intent(text: str) -> QueryIntent:
    """
    Parse and validate the oracle's reply.

    Raises:
        ClassificationError: If the reply is not JSON or does not match the schema
    """
    try:
        data = json.loads(_strip_code_fence(text or ""))
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Classifier reply is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise ClassificationError("Classifier reply is not a JSON object")

    try:
        payload = _IntentPayload.model_validate(data)
    except ValidationError as e:
        raise ClassificationError(f"Classifier reply does not match schema: {e}") from e

    search_terms = (payload.search_terms or "").strip() or None
    return QueryIntent(
        type=payload.type,
        filters=[FilterClause(f.field, f.operator, f.value) for f in payload.filters],
        search_terms=search_terms,
    )


class QueryClassifier:
    """
    Classifies free-text queries; never raises.

    Args:
        oracle: Language model used to propose the intent
    """

    def __init__(self, oracle: ClassifierOracle):
        self.oracle = oracle

    def classify(self, query: str, now: Optional[datetime] = None) -> QueryIntent:
        query = query or ""
        if not query.strip():
            return QueryIntent.semantic_default(query.strip())

        if now is None:
            now = datetime.now(timezone.utc)

        try:
            reply = self.oracle.complete(build_prompt(query, now))
            intent = parse_intent(reply)
        except Exception as e:
            # Includes ClassificationError, timeouts and transport errors
            logger.warning(f"Query classification failed, using semantic search: {e}")
            return QueryIntent.semantic_default(query)

        logger.debug(f"Classified {query!r} as {intent.type.value} with {len(intent.filters)} filters")
        return intent
