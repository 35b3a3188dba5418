"""Boolean predicate trees over a mapped model.

Filters are built as plain data (``And``, ``Or``, ``Eq`` ...) and compiled
to a SQLAlchemy clause at the last moment, so the visibility rule, caller
filters and the tag condition can be combined without string building.
"""

import operator
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy import and_, false, not_, or_, text, true
from sqlalchemy.orm import RelationshipProperty
from sqlalchemy.sql.elements import ColumnElement

from fieldrec.core.errors import InvalidField


class Predicate:
    def __and__(self, other: "Predicate") -> "And":
        return And(self, other)

    def __or__(self, other: "Predicate") -> "Or":
        return Or(self, other)

    def __invert__(self) -> "Not":
        return Not(self)


@dataclass(frozen=True)
class Eq(Predicate):
    field: str
    value: Any


@dataclass(frozen=True)
class In(Predicate):
    field: str
    values: frozenset

    def __init__(self, field: str, values):
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", frozenset(values))


@dataclass(frozen=True)
class Compare(Predicate):
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class And(Predicate):
    children: tuple

    def __init__(self, *children: Predicate):
        object.__setattr__(self, "children", tuple(children))


@dataclass(frozen=True)
class Or(Predicate):
    children: tuple

    def __init__(self, *children: Predicate):
        object.__setattr__(self, "children", tuple(children))


@dataclass(frozen=True)
class Not(Predicate):
    child: Predicate


@dataclass(frozen=True)
class HasRelated(Predicate):
    """True when at least one row of ``relation`` references the record."""

    relation: str


@dataclass(frozen=True)
class Raw(Predicate):
    sql: str


OPERATORS: Mapping[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}


def column_for(model, field: str):
    mapper = model.__mapper__
    if field not in mapper.column_attrs:
        raise InvalidField([field], mapper.column_attrs.keys())
    return getattr(model, field)


def _relationship_for(model, relation: str):
    prop = model.__mapper__.relationships.get(relation)
    if not isinstance(prop, RelationshipProperty):
        raise InvalidField([relation], model.__mapper__.relationships.keys())
    return getattr(model, relation)


def compile_predicate(pred: Predicate, model) -> ColumnElement:
    if isinstance(pred, Eq):
        column = column_for(model, pred.field)
        if pred.value is None:
            return column.is_(None)
        return column == pred.value
    if isinstance(pred, In):
        return column_for(model, pred.field).in_(sorted(pred.values, key=repr))
    if isinstance(pred, Compare):
        if pred.op not in OPERATORS:
            raise ValueError(f"Unknown operator {pred.op!r}")
        return OPERATORS[pred.op](column_for(model, pred.field), pred.value)
    if isinstance(pred, And):
        if not pred.children:
            return true()
        return and_(*(compile_predicate(c, model) for c in pred.children))
    if isinstance(pred, Or):
        if not pred.children:
            return false()
        return or_(*(compile_predicate(c, model) for c in pred.children))
    if isinstance(pred, Not):
        return not_(compile_predicate(pred.child, model))
    if isinstance(pred, HasRelated):
        return _relationship_for(model, pred.relation).any()
    if isinstance(pred, Raw):
        return text(pred.sql)
    raise TypeError(f"Not a predicate: {pred!r}")


def from_filter(where: "Predicate | Mapping[str, Any] | None") -> Predicate:
    """Turn a caller filter into a predicate.

    Mappings become a conjunction; list, tuple and set values mean
    membership, anything else equality.
    """
    if where is None:
        return And()
    if isinstance(where, Predicate):
        return where
    parts = []
    for field, value in where.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            parts.append(In(field, value))
        else:
            parts.append(Eq(field, value))
    return And(*parts)


def validate_order(model, order: Sequence[Sequence[str]]) -> list:
    clauses = []
    for field, direction in order:
        column = column_for(model, field)
        direction = direction.upper()
        if direction == "ASC":
            clauses.append(column.asc())
        elif direction == "DESC":
            clauses.append(column.desc())
        else:
            raise ValueError(f"Unknown sort direction {direction!r}")
    return clauses
