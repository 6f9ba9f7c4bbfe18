"""
Predicate compiler.

Turns the classifier's untrusted filter clauses into typed predicates and
then into a parameterised SQL fragment. Column names come only from
``FIELD_COLUMNS`` and operator text only from ``Operator``; every value is
bound as a ``?`` parameter. A bad clause is dropped with a diagnostic, the
rest of the query still runs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from taskflow.core.models import RecordKind, to_iso
from taskflow.errors import InvalidPredicateError
from taskflow.search.intent import (
    DATE_FIELDS,
    FIELD_COLUMNS,
    Comparison,
    FilterClause,
    Membership,
    Operator,
    Predicate,
    Scalar,
)

logger = logging.getLogger(__name__)

TAGS_FIELD = "tags"


@dataclass(frozen=True)
class CompiledFilter:
    """WHERE fragment plus its bound parameters; empty ``where`` means no restriction"""
    where: str = ""
    params: Tuple[Any, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.where


@dataclass
class CompileResult:
    kind: RecordKind
    predicates: List[Predicate] = field(default_factory=list)
    dropped: List[InvalidPredicateError] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    def to_sql(self) -> CompiledFilter:
        columns = FIELD_COLUMNS[self.kind]
        fragments: List[str] = []
        params: List[Any] = []

        for predicate in self.predicates:
            column = columns[predicate.field]
            if isinstance(predicate, Membership):
                placeholders = ", ".join("?" for _ in predicate.values)
                if predicate.field == TAGS_FIELD:
                    exists = "NOT EXISTS" if predicate.operator is Operator.NOT_IN else "EXISTS"
                    fragments.append(
                        f"{exists} (SELECT 1 FROM json_each({column}) "
                        f"WHERE json_each.value IN ({placeholders}))"
                    )
                else:
                    fragments.append(f"{column} {predicate.operator.value} ({placeholders})")
                params.extend(predicate.values)
            elif predicate.field == TAGS_FIELD and predicate.operator is Operator.EQ:
                # tags are a JSON list; equality means "has this tag"
                fragments.append(
                    f"EXISTS (SELECT 1 FROM json_each({column}) WHERE json_each.value = ?)"
                )
                params.append(predicate.value)
            else:
                fragments.append(f"{column} {predicate.operator.value} ?")
                params.append(predicate.value)

        return CompiledFilter(where=" AND ".join(fragments), params=tuple(params))


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


class PredicateCompiler:
    """
    Validates filter clauses against the whitelist for one record kind.

    Example:
        result = PredicateCompiler(RecordKind.TASK).compile(intent.filters)
        compiled = result.to_sql()
        rows = db.execute(f"SELECT id FROM tasks WHERE {compiled.where}", compiled.params)
    """

    def __init__(self, kind: RecordKind):
        self.kind = kind
        self._fields = {name.lower(): name for name in FIELD_COLUMNS[kind]}

    def compile(self, filters: Iterable[FilterClause]) -> CompileResult:
        result = CompileResult(kind=self.kind)
        for clause in filters:
            try:
                result.predicates.append(self.validate(clause))
            except InvalidPredicateError as e:
                logger.warning(f"Dropping filter clause for {self.kind.label}: {e}")
                result.dropped.append(e)
        return result

    def validate(self, clause: FilterClause) -> Predicate:
        """
        Build a typed predicate from one raw clause.

        Raises:
            InvalidPredicateError: If the field, operator or value is not acceptable
        """
        field_name = self._resolve_field(clause.field)
        if field_name is None:
            raise InvalidPredicateError(
                clause.field, clause.operator,
                f"field is not searchable on {self.kind.label}",
            )

        operator = Operator.parse(clause.operator)
        if operator is None:
            raise InvalidPredicateError(clause.field, clause.operator, "operator is not allowed")

        if operator.is_membership:
            values = self._membership_values(clause, field_name)
            return Membership(field=field_name, operator=operator, values=values)

        if field_name == TAGS_FIELD and operator not in (Operator.EQ, Operator.LIKE):
            raise InvalidPredicateError(
                clause.field, clause.operator, "tags only support =, LIKE, IN and NOT IN"
            )

        value = self._scalar_value(clause, field_name, operator)
        return Comparison(field=field_name, operator=operator, value=value)

    def _resolve_field(self, name: Any) -> Optional[str]:
        if not isinstance(name, str):
            return None
        return self._fields.get(name.strip().lower())

    def _scalar_value(self, clause: FilterClause, field_name: str, operator: Operator) -> Scalar:
        value = clause.value
        if not _is_scalar(value):
            raise InvalidPredicateError(clause.field, clause.operator, "value must be a string or number")
        if field_name in DATE_FIELDS and operator is not Operator.LIKE:
            return self._date_value(clause, value)
        return value

    def _membership_values(self, clause: FilterClause, field_name: str) -> Tuple[Scalar, ...]:
        raw = clause.value
        if isinstance(raw, str):
            raw = [part.strip() for part in raw.split(",") if part.strip()]
        if not isinstance(raw, Sequence) or isinstance(raw, str) or not raw:
            raise InvalidPredicateError(clause.field, clause.operator, "value must be a non-empty list")
        if not all(_is_scalar(v) for v in raw):
            raise InvalidPredicateError(clause.field, clause.operator, "list values must be strings or numbers")
        if field_name in DATE_FIELDS:
            return tuple(self._date_value(clause, v) for v in raw)
        return tuple(raw)

    @staticmethod
    def _date_value(clause: FilterClause, value: Scalar) -> str:
        if not isinstance(value, str) or not value.strip():
            raise InvalidPredicateError(clause.field, clause.operator, "date value must be an ISO-8601 string")
        try:
            return to_iso(value)
        except (ValueError, OverflowError) as e:
            raise InvalidPredicateError(
                clause.field, clause.operator, f"date value is not ISO-8601: {value!r}"
            ) from e
