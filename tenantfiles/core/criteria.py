"""Criteria filter expressions.

A filter is written as a flat boolean expression, for example::

    name = 'John' & age > 25 | status != 'INACTIVE'

``&`` joins with AND, ``|`` joins with OR. Parentheses are accepted but do
not change evaluation; clauses are folded strictly left to right. The first
criterion always carries the OR combiner.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from tenantfiles.core.exceptions import EmptyCriteriaFilterError, WrongCriteriaFilterError


class CriteriaOperator(str, Enum):
    EQ = "="
    NE = "!="
    LI = "~"
    NL = "!~"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="


class CriteriaCombiner(str, Enum):
    AND = "&"
    OR = "|"


@dataclass(frozen=True)
class QueryCriteria:
    name: str
    operator: CriteriaOperator
    value: str
    combiner: CriteriaCombiner = CriteriaCombiner.OR


_CONDITION_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(!=|!~|<=|>=|=|~|<|>)\s*(.*?)\s*$")
_WHERE_RE = re.compile(r"^\s*where\s+", re.IGNORECASE)


def _split_conditions(expression: str) -> list[tuple[CriteriaCombiner, str]]:
    parts: list[tuple[CriteriaCombiner, str]] = []
    combiner = CriteriaCombiner.OR
    current: list[str] = []
    quote: str | None = None

    for char in expression:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
            current.append(char)
        elif char in ("(", ")"):
            continue
        elif char in ("&", "|"):
            parts.append((combiner, "".join(current)))
            combiner = CriteriaCombiner(char)
            current = []
        else:
            current.append(char)

    parts.append((combiner, "".join(current)))
    return [(c, text) for c, text in parts if text.strip()]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_criteria(expression: str | None) -> list[QueryCriteria]:
    """Parse a criteria expression into an ordered list of criteria.

    Args:
        expression: Filter expression

    Returns:
        Criteria in the order they appear

    Raises:
        EmptyCriteriaFilterError: If the expression is blank
        WrongCriteriaFilterError: If a condition cannot be parsed
    """
    if not expression or not expression.strip():
        raise EmptyCriteriaFilterError("Criteria filter is empty")

    expression = _WHERE_RE.sub("", expression, count=1)
    criteria: list[QueryCriteria] = []
    for combiner, text in _split_conditions(expression):
        match = _CONDITION_RE.match(text)
        if not match:
            raise WrongCriteriaFilterError(f"Invalid criteria condition: {text.strip()}")
        name, symbol, raw_value = match.groups()
        criteria.append(
            QueryCriteria(
                name=name,
                operator=CriteriaOperator(symbol),
                value=_unquote(raw_value),
                combiner=combiner,
            )
        )

    if not criteria:
        raise EmptyCriteriaFilterError("Criteria filter is empty")
    return criteria


def _coerce(column, value: str) -> Any:
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if python_type is bool:
        return value.strip().lower() in ("true", "1", "yes")
    if python_type is int:
        return int(value)
    if python_type is float:
        return float(value)
    if python_type is datetime:
        return datetime.fromisoformat(value)
    if python_type is date:
        return date.fromisoformat(value)
    return value


def _clause(column, criterion: QueryCriteria) -> ColumnElement[bool]:
    operator = criterion.operator
    if operator is CriteriaOperator.LI:
        return column.like(f"%{criterion.value}%")
    if operator is CriteriaOperator.NL:
        return column.not_like(f"%{criterion.value}%")

    value = _coerce(column, criterion.value)
    if operator is CriteriaOperator.EQ:
        return column == value
    if operator is CriteriaOperator.NE:
        return column != value
    if operator is CriteriaOperator.LT:
        return column < value
    if operator is CriteriaOperator.LE:
        return column <= value
    if operator is CriteriaOperator.GT:
        return column > value
    return column >= value


def build_criteria_clause(
    model: type,
    criteria: list[QueryCriteria],
    allowed: set[str] | frozenset[str],
) -> ColumnElement[bool]:
    """Fold criteria into a single SQLAlchemy boolean clause.

    Raises:
        EmptyCriteriaFilterError: If no criteria are given
        WrongCriteriaFilterError: If a criterion targets a non-filterable field
    """
    if not criteria:
        raise EmptyCriteriaFilterError("Criteria filter is empty")

    expression: ColumnElement[bool] | None = None
    for criterion in criteria:
        if criterion.name not in allowed:
            raise WrongCriteriaFilterError(f"Unknown criteria field: {criterion.name}")
        try:
            clause = _clause(getattr(model, criterion.name), criterion)
        except ValueError as exc:
            raise WrongCriteriaFilterError(
                f"Invalid value for {criterion.name}: {criterion.value}"
            ) from exc

        if expression is None:
            expression = clause
        elif criterion.combiner is CriteriaCombiner.AND:
            expression = and_(expression, clause)
        else:
            expression = or_(expression, clause)

    return expression
