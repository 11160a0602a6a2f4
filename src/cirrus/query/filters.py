"""Compilation of record predicates into native document store filters.

A document store query takes at most one filter, and that filter can only
AND property comparisons together. An arbitrary AND/OR predicate is thus
compiled into *several* conjunctive filters: running one query per filter
and taking the union of the results yields exactly the records matched by
the predicate.

Rules, applied to the predicate in disjunctive normal form:

- empty predicate: no filters (match everything);
- top-level ``AND``: one `CompositeFilter` of its parameters, in order;
- top-level ``OR``: one `PropertyFilter` per parameter attached to the node
  itself, then one `CompositeFilter` per child group.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from cirrus.domain.query import LogicalOperator, Operator, Parameter, QueryPredicate
from cirrus.interfaces.document_store import (
    CompositeFilter,
    Filter,
    FilterOperator,
    PropertyFilter,
)
from cirrus.interfaces.errors import UnsupportedOperatorError
from cirrus.query.columns import ColumnMapping

NATIVE_OPERATORS: Mapping[Operator, FilterOperator] = {
    Operator.EQ: FilterOperator.EQUAL,
    Operator.GT: FilterOperator.GREATER_THAN,
    Operator.LT: FilterOperator.LESS_THAN,
    Operator.GE: FilterOperator.GREATER_THAN_OR_EQUAL,
    Operator.LE: FilterOperator.LESS_THAN_OR_EQUAL,
}


class PredicateCompiler:
    """Compile predicates with a given column mapping and operator table."""

    def __init__(
        self,
        mapping: ColumnMapping,
        operators: Mapping[Operator, FilterOperator] = NATIVE_OPERATORS,
    ):
        self.mapping = mapping
        self.operators = operators

    def compile(self, predicate: QueryPredicate) -> tuple[Filter, ...]:
        dnf = predicate.to_dnf()
        if dnf.is_empty:
            return ()
        if dnf.operator is LogicalOperator.AND:
            return (self.conjunction(dnf.parameters),)

        singles = tuple(self._property_filter(p) for p in dnf.parameters)
        groups = tuple(self.conjunction(child.parameters) for child in dnf.children)
        return singles + groups

    def conjunction(self, parameters: Sequence[Parameter]) -> CompositeFilter:
        if not parameters:
            raise ValueError("A conjunctive filter needs at least one parameter.")
        first, *rest = (self._property_filter(p) for p in parameters)
        return CompositeFilter.and_(first, *rest)

    def _property_filter(self, parameter: Parameter) -> PropertyFilter:
        try:
            operator = self.operators[parameter.operator]
        except KeyError as e:
            raise UnsupportedOperatorError(parameter.operator, parameter.column) from e
        return PropertyFilter(
            name=parameter.column,
            operator=operator,
            value=self.mapping.apply(parameter.value),
        )


def compile_predicate(
    predicate: QueryPredicate, mapping: ColumnMapping | None = None
) -> tuple[Filter, ...]:
    """Compile ``predicate`` into the conjunctive filters whose union it matches.

    Raises:
        UnsupportedOperatorError: if a parameter operator has no native filter.
        UnmappedColumnTypeError: if a parameter value has no column mapping.
    """
    return PredicateCompiler(mapping or ColumnMapping()).compile(predicate)
