"""
Query intent and predicate types.

A ``QueryIntent`` is what the classifier produces: a query type, the raw
filter clauses proposed by the language model, and optional search terms.
Raw clauses are untrusted; only the predicate compiler turns them into
typed ``Comparison`` / ``Membership`` predicates whose field and operator
come from the fixed enums below.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from taskflow.core.models import RecordKind


class QueryType(str, Enum):
    STRUCTURED = "structured"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class Operator(str, Enum):
    EQ = "="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    LIKE = "LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"

    @property
    def is_membership(self) -> bool:
        return self in (Operator.IN, Operator.NOT_IN)

    @classmethod
    def parse(cls, text: Any) -> Optional['Operator']:
        """Match operator text case-insensitively, collapsing whitespace"""
        if not isinstance(text, str):
            return None
        normalized = " ".join(text.split()).upper()
        for op in cls:
            if op.value == normalized:
                return op
        return None


# API field name -> column name, per record kind. Field names are the ones
# the classifier is told about; columns are what the SQL actually names.
FIELD_COLUMNS: Dict[RecordKind, Dict[str, str]] = {
    RecordKind.TASK: {
        "title": "title",
        "description": "description",
        "status": "status",
        "priority": "priority",
        "dueDate": "due_date",
        "createdAt": "created_at",
        "tags": "tags",
    },
    RecordKind.NOTE: {
        "title": "title",
        "content": "content",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
        "tags": "tags",
    },
}

DATE_FIELDS: FrozenSet[str] = frozenset({"dueDate", "createdAt", "updatedAt"})


def allowed_fields(kind: RecordKind) -> List[str]:
    return list(FIELD_COLUMNS[kind])


Scalar = Union[str, int, float]


@dataclass(frozen=True)
class Comparison:
    """``column <op> ?`` for =, >, <, >=, <= and LIKE"""
    field: str
    operator: Operator
    value: Scalar


@dataclass(frozen=True)
class Membership:
    """``column IN (?, ...)`` / ``column NOT IN (?, ...)``"""
    field: str
    operator: Operator
    values: Tuple[Scalar, ...]


Predicate = Union[Comparison, Membership]


@dataclass
class FilterClause:
    """A filter exactly as proposed by the classifier; not yet validated"""
    field: Any
    operator: Any
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass
class QueryIntent:
    type: QueryType
    filters: List[FilterClause] = field(default_factory=list)
    search_terms: Optional[str] = None

    @classmethod
    def semantic_default(cls, query: str) -> 'QueryIntent':
        """Safe fallback: pure semantic search over the raw query"""
        return cls(type=QueryType.SEMANTIC, filters=[], search_terms=query)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "filters": [f.to_dict() for f in self.filters],
            "search_terms": self.search_terms,
        }
