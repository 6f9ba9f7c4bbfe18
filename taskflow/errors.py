"""
Error taxonomy for TaskFlow search.

Non-fatal errors (classification, invalid predicates) are recovered inside
the search pipeline and never reach callers. Fatal errors (embedding, store)
surface as ``SearchUnavailable`` or ``StoreError`` so callers can tell
"no matches" apart from "search failed".
"""


class TaskflowError(Exception):
    """Base class for all TaskFlow errors."""


class ClassificationError(TaskflowError):
    """The query classifier oracle failed or returned unusable output."""


class InvalidPredicateError(TaskflowError):
    """A filter clause failed whitelist or value validation."""

    def __init__(self, field, operator, reason: str):
        self.field = field
        self.operator = operator
        self.reason = reason
        super().__init__(f"{field!r} {operator!r}: {reason}")


class EmbeddingError(TaskflowError):
    """The embedding model could not be loaded or could not embed text."""


class SearchUnavailable(TaskflowError):
    """Ranking cannot proceed because no query vector could be computed."""


class StoreError(TaskflowError):
    """The record store failed to read or write."""


class RecordNotFoundError(TaskflowError):
    """No record exists with the requested identifier."""

    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"Record with id {record_id} not found in {kind}")
