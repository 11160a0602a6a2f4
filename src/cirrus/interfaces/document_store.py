"""Document store interfaces for CIRRUS.

This module defines the port CIRRUS storages talk to: a schemaless, remote
document store organised in namespaces and kinds. It is modelled on the
capabilities such stores commonly offer, and nothing more:

- key-based get/put/delete of entities (a key is ``(namespace, kind, name)``);
- query-by-kind with **one** conjunctive filter, ordering and a limit;
- cursor-based continuation for partial result pages;
- transactions with commit/rollback.

Layering & dependency rules:
- Lives under `cirrus.interfaces`. Do NOT import from adapters, storage or bootstrap.

Contract overview
-----------------
Reads:
- `get(key)` returns `None` for a missing entity.
- `get_many(keys)` returns one slot per key, **in the same order**, `None` for misses.
- `run(query)` returns at most `query.limit` entities starting after
  `query.start_cursor`, plus the cursor after the last returned entity and a
  `more_results` flag telling whether the scan could continue.

Writes:
- `put` and `put_many` upsert (last write wins); `delete` ignores missing keys.
- Stores may cap the number of keys/entities accepted per call and raise
  `InvalidRequestError` when a call exceeds the cap. Callers are expected to chunk.

Errors:
- `InvalidRequestError`: the request is malformed or exceeds a per-call ceiling.
- `StoreUnavailableError`: operational/connection errors.
"""

from __future__ import annotations

import abc
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

# --- Exceptions to standardize adapter behavior ---


class DocumentStoreError(Exception):
    """Base class for document store adapter errors."""


class InvalidRequestError(DocumentStoreError):
    """The request was rejected by the store (bad shape, too many items, ...)."""


class StoreUnavailableError(DocumentStoreError):
    """Operational/timeout/connection errors."""


# --- Keys & entities ---

NAMESPACE_KIND = "__namespace__"
RESERVED_KIND_PREFIX = "__"


@dataclass(frozen=True, slots=True, order=True)
class Key:
    """Address of a single entity in the store."""

    namespace: str
    kind: str
    name: str

    def __post_init__(self) -> None:
        if not self.kind.strip():
            raise ValueError("kind must be non-empty.")
        if not self.name:
            raise ValueError("name must be non-empty.")


@dataclass(frozen=True, slots=True)
class Entity:
    """A keyed bag of native property values.

    Native values are `str`, `int`, `float`, `bool`, `bytes`, tz-aware
    `datetime` and `None`.
    """

    key: Key
    properties: Mapping[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        """Return a property value, or `default` if it is not set."""
        return self.properties.get(name, default)


# --- Ordering of native values ---


def value_rank(value: Any) -> int:
    """Rank of a native value's type in the cross-type ordering.

    Values of different types order as ``None < bool < number < str < bytes <
    datetime``; unknown types sort last.
    """
    match value:
        case None:
            return 0
        case bool():
            return 1
        case int() | float():
            return 2
        case str():
            return 3
        case bytes():
            return 4
        case datetime():
            return 5
        case _:
            return 6


# --- Filters ---


class FilterOperator(str, Enum):
    """Comparison operators understood natively by the store."""

    EQUAL = "="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN_OR_EQUAL = "<="


@dataclass(frozen=True, slots=True)
class PropertyFilter:
    """A single ``property <op> value`` comparison."""

    name: str
    operator: FilterOperator
    value: Any


@dataclass(frozen=True, slots=True)
class CompositeFilter:
    """Conjunction of property filters; the only composite the store supports."""

    filters: tuple[PropertyFilter, ...]

    @classmethod
    def and_(cls, first: PropertyFilter, *others: PropertyFilter) -> CompositeFilter:
        """Build the conjunction of ``first`` and ``others`` in this order."""
        return cls(filters=(first, *others))


Filter = PropertyFilter | CompositeFilter


def eq(name: str, value: Any) -> PropertyFilter:
    """``name == value``"""
    return PropertyFilter(name, FilterOperator.EQUAL, value)


def gt(name: str, value: Any) -> PropertyFilter:
    """``name > value``"""
    return PropertyFilter(name, FilterOperator.GREATER_THAN, value)


def lt(name: str, value: Any) -> PropertyFilter:
    """``name < value``"""
    return PropertyFilter(name, FilterOperator.LESS_THAN, value)


def ge(name: str, value: Any) -> PropertyFilter:
    """``name >= value``"""
    return PropertyFilter(name, FilterOperator.GREATER_THAN_OR_EQUAL, value)


def le(name: str, value: Any) -> PropertyFilter:
    """``name <= value``"""
    return PropertyFilter(name, FilterOperator.LESS_THAN_OR_EQUAL, value)


# --- Queries ---


class Direction(str, Enum):
    """Sort direction."""

    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass(frozen=True, slots=True)
class OrderBy:
    """Ordering on a single property."""

    name: str
    direction: Direction = Direction.ASCENDING

    @classmethod
    def asc(cls, name: str) -> OrderBy:
        """Ascending order on ``name``."""
        return cls(name, Direction.ASCENDING)

    @classmethod
    def desc(cls, name: str) -> OrderBy:
        """Descending order on ``name``."""
        return cls(name, Direction.DESCENDING)


@dataclass(frozen=True, slots=True)
class Query:
    """A query over one kind in one namespace.

    Attributes:
        kind: The kind to scan.
        namespace: The namespace to scan.
        filter: At most one (conjunctive) filter.
        order_by: Orderings, applied in sequence; ties fall back to key order.
        limit: Maximum number of entities per `run` call, or None.
        start_cursor: Continue after the position this cursor marks.
        keys_only: Return entities without properties.
    """

    kind: str
    namespace: str = ""
    filter: Filter | None = None
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None
    start_cursor: str | None = None
    keys_only: bool = False

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit cannot be negative")

    def with_cursor(self, cursor: str | None) -> Query:
        """Return a copy of this query which continues at ``cursor``."""
        return replace(self, start_cursor=cursor)

    def with_namespace(self, namespace: str) -> Query:
        """Return a copy of this query bound to ``namespace``."""
        return replace(self, namespace=namespace)

    def with_limit(self, limit: int | None) -> Query:
        return replace(self, limit=limit)


@dataclass(frozen=True, slots=True)
class QueryResults:
    """A single page of query results."""

    entities: Sequence[Entity]
    cursor_after: str | None
    more_results: bool

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)


# --- Store interface ---


class DocumentReaderWriter(abc.ABC):
    """Operations shared by the store itself and its transactions."""

    @abc.abstractmethod
    def get(self, key: Key) -> Entity | None:
        """Return the entity stored under ``key``, or None."""

    @abc.abstractmethod
    def get_many(self, keys: Sequence[Key]) -> list[Entity | None]:
        """Return one slot per key, in the order of ``keys``.

        Raises:
            InvalidRequestError: if more keys are requested than the store accepts per call.
        """

    @abc.abstractmethod
    def put(self, entity: Entity) -> None:
        """Create or overwrite a single entity."""

    @abc.abstractmethod
    def put_many(self, entities: Sequence[Entity]) -> None:
        """Create or overwrite several entities.

        Raises:
            InvalidRequestError: if more entities are passed than the store accepts per call.
        """

    @abc.abstractmethod
    def delete(self, *keys: Key) -> None:
        """Delete entities by key; missing keys are ignored."""

    @abc.abstractmethod
    def run(self, query: Query) -> QueryResults:
        """Execute a query and return one page of results."""


class DocumentTransaction(DocumentReaderWriter):
    """A transaction against the document store."""

    @abc.abstractmethod
    def commit(self) -> None:
        """Apply all staged mutations atomically."""

    @abc.abstractmethod
    def rollback(self) -> None:
        """Discard all staged mutations."""

    @property
    @abc.abstractmethod
    def is_active(self) -> bool:
        """Whether the transaction can still be committed or rolled back."""


class DocumentStore(DocumentReaderWriter):
    """An abstract base class for a document store."""

    max_keys_per_read: int | None = None
    max_entities_per_write: int | None = None

    @abc.abstractmethod
    def new_transaction(self) -> DocumentTransaction:
        """Start a new transaction."""

    @abc.abstractmethod
    def namespaces(self) -> Iterable[str]:
        """Yield every non-default namespace which holds at least one entity."""

    def close(self) -> None:  # noqa: B027
        """Release any resources held by the store. No-op by default."""
