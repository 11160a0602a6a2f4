"""Record query model.

A `RecordQuery` selects records of one kind by their columns. Its predicate is
a tree of `Parameter` comparisons combined by `AND`/`OR` nodes, nested to any
depth. Document stores only execute conjunctive filters, so predicates are
normalized to disjunctive normal form (`QueryPredicate.to_dnf`) before they
are compiled into native filters.

Example:
    >>> q = any_of(eq("status", "open"), all_of(gt("size", 10), lt("size", 20)))
    >>> q.to_dnf().operator
    <LogicalOperator.OR: 'or'>
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operator(str, Enum):
    """Comparison operator of a query parameter."""

    EQ = "eq"
    GT = "gt"
    LT = "lt"
    GE = "ge"
    LE = "le"


class LogicalOperator(str, Enum):
    """How the parts of a predicate node are combined."""

    AND = "and"
    OR = "or"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class Parameter:
    """A single ``column <operator> value`` comparison."""

    column: str
    operator: Operator
    value: Any

    def __post_init__(self) -> None:
        if not self.column:
            raise ValueError("column must be non-empty.")

    def test(self, columns: Mapping[str, Any]) -> bool:
        """Evaluate this comparison against a record's columns.

        A missing column or incomparable value types never match.
        """
        if self.column not in columns:
            return False
        actual = columns[self.column]
        try:
            match self.operator:
                case Operator.EQ:
                    return bool(actual == self.value)
                case Operator.GT:
                    return bool(actual > self.value)
                case Operator.LT:
                    return bool(actual < self.value)
                case Operator.GE:
                    return bool(actual >= self.value)
                case Operator.LE:
                    return bool(actual <= self.value)
        except TypeError:
            return False
        return False


@dataclass(frozen=True, slots=True)
class QueryPredicate:
    """A node of the predicate tree.

    The node combines its own `parameters` and its `children` with its
    `operator`. A node without parameters whose children are all empty is
    itself empty and matches every record.
    """

    operator: LogicalOperator = LogicalOperator.AND
    parameters: tuple[Parameter, ...] = ()
    children: tuple[QueryPredicate, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.parameters and all(c.is_empty for c in self.children)

    def test(self, columns: Mapping[str, Any]) -> bool:
        """Evaluate the predicate against a record's columns."""
        if self.is_empty:
            return True
        parts = [p.test(columns) for p in self.parameters]
        parts += [c.test(columns) for c in self.children if not c.is_empty]
        if self.operator is LogicalOperator.AND:
            return all(parts)
        return any(parts)

    def to_dnf(self) -> QueryPredicate:
        """Return an equivalent predicate in disjunctive normal form.

        The result is one of:

        - an empty predicate;
        - a single `AND` node holding parameters only;
        - an `OR` node whose children are parameter-only `AND` nodes. When the
          original top-level node is an `OR`, its own parameters stay on the
          result node.

        Empty sub-predicates are pruned.
        """
        if self.is_empty:
            return QueryPredicate()

        if self.operator is LogicalOperator.OR:
            groups = list(
                itertools.chain.from_iterable(
                    _groups(c) for c in self.children if not c.is_empty
                )
            )
            if not self.parameters and len(groups) == 1:
                return _and_node(groups[0])
            return QueryPredicate(
                operator=LogicalOperator.OR,
                parameters=self.parameters,
                children=tuple(_and_node(g) for g in groups),
            )

        groups = _groups(self)
        if len(groups) == 1:
            return _and_node(groups[0])
        return QueryPredicate(
            operator=LogicalOperator.OR,
            children=tuple(_and_node(g) for g in groups),
        )


def _and_node(group: tuple[Parameter, ...]) -> QueryPredicate:
    return QueryPredicate(operator=LogicalOperator.AND, parameters=group)


def _groups(node: QueryPredicate) -> list[tuple[Parameter, ...]]:
    """Expand a non-empty node into a list of conjunctive parameter groups."""
    children = [c for c in node.children if not c.is_empty]
    if node.operator is LogicalOperator.OR:
        groups: list[tuple[Parameter, ...]] = [(p,) for p in node.parameters]
        for child in children:
            groups.extend(_groups(child))
        return groups

    groups = [node.parameters]
    for child in children:
        groups = [left + right for left in groups for right in _groups(child)]
    return groups


# --------------------------------------------------------------------------- #
# Builders
# --------------------------------------------------------------------------- #


def eq(column: str, value: Any) -> Parameter:
    return Parameter(column, Operator.EQ, value)


def gt(column: str, value: Any) -> Parameter:
    return Parameter(column, Operator.GT, value)


def lt(column: str, value: Any) -> Parameter:
    return Parameter(column, Operator.LT, value)


def ge(column: str, value: Any) -> Parameter:
    return Parameter(column, Operator.GE, value)


def le(column: str, value: Any) -> Parameter:
    return Parameter(column, Operator.LE, value)


def _node(
    operator: LogicalOperator, items: Iterable[Parameter | QueryPredicate]
) -> QueryPredicate:
    params: list[Parameter] = []
    children: list[QueryPredicate] = []
    for item in items:
        match item:
            case Parameter():
                params.append(item)
            case QueryPredicate():
                children.append(item)
            case _:
                raise TypeError(f"Unsupported predicate part: {item!r}")
    return QueryPredicate(operator, tuple(params), tuple(children))


def all_of(*items: Parameter | QueryPredicate) -> QueryPredicate:
    """Conjunction of parameters and sub-predicates."""
    return _node(LogicalOperator.AND, items)


def any_of(*items: Parameter | QueryPredicate) -> QueryPredicate:
    """Disjunction of parameters and sub-predicates."""
    return _node(LogicalOperator.OR, items)


# --------------------------------------------------------------------------- #
# Query
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class SortBy:
    column: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True, slots=True)
class RecordQuery:
    """Selection of records by predicate, with optional ordering and limit."""

    predicate: QueryPredicate = QueryPredicate()
    sort_by: tuple[SortBy, ...] = ()
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit cannot be negative")
