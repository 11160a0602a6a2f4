"""Query semantics shared by the document store adapters.

Both the in-memory and the SQL store evaluate filters, ordering and cursors
in Python so they behave identically:

- a property filter never matches an entity lacking the property, nor a
  value of an incomparable type;
- values of different types order as ``None < bool < number < str < bytes
  < datetime``;
- an entity lacking a property used for ordering is left out of the results;
- ties are broken by key order;
- a cursor encodes the offset of the next entity in the ordered result,
  and optionally the id of the result snapshot it was cut from.
"""

from __future__ import annotations

import base64
import binascii
import functools
from collections.abc import Iterable, Sequence
from typing import Any

from cirrus.interfaces.document_store import (
    CompositeFilter,
    Direction,
    Entity,
    Filter,
    FilterOperator,
    InvalidRequestError,
    OrderBy,
    PropertyFilter,
    Query,
    QueryResults,
    value_rank,
)

CURSOR_PREFIX = "offset:"
SNAPSHOT_SEPARATOR = "@"


# --------------------------------------------------------------------------- #
# Filtering
# --------------------------------------------------------------------------- #


def compare_values(left: Any, right: Any) -> int:
    """Three-way comparison of two native values across types."""
    left_rank, right_rank = value_rank(left), value_rank(right)
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1
    if left == right:
        return 0
    return -1 if left < right else 1


def _test(prop: PropertyFilter, entity: Entity) -> bool:
    if prop.name not in entity.properties:
        return False
    actual = entity.properties[prop.name]
    if value_rank(actual) != value_rank(prop.value):
        return False
    if actual is None:
        return prop.operator in {
            FilterOperator.EQUAL,
            FilterOperator.GREATER_THAN_OR_EQUAL,
            FilterOperator.LESS_THAN_OR_EQUAL,
        }
    result = compare_values(actual, prop.value)
    match prop.operator:
        case FilterOperator.EQUAL:
            return result == 0
        case FilterOperator.GREATER_THAN:
            return result > 0
        case FilterOperator.LESS_THAN:
            return result < 0
        case FilterOperator.GREATER_THAN_OR_EQUAL:
            return result >= 0
        case FilterOperator.LESS_THAN_OR_EQUAL:
            return result <= 0
    return False


def matches(entity: Entity, flt: Filter | None) -> bool:
    """Whether ``entity`` satisfies ``flt`` (None matches everything)."""
    match flt:
        case None:
            return True
        case PropertyFilter():
            return _test(flt, entity)
        case CompositeFilter():
            return all(_test(f, entity) for f in flt.filters)
    raise InvalidRequestError(f"Unsupported filter: {flt!r}")


# --------------------------------------------------------------------------- #
# Ordering
# --------------------------------------------------------------------------- #


def sort_entities(entities: Iterable[Entity], order_by: Sequence[OrderBy]) -> list[Entity]:
    """Order entities by ``order_by`` then by key; drop entities missing an ordered property."""
    eligible = [e for e in entities if all(o.name in e.properties for o in order_by)]

    def cmp(a: Entity, b: Entity) -> int:
        for order in order_by:
            result = compare_values(a.properties[order.name], b.properties[order.name])
            if result:
                return -result if order.direction is Direction.DESCENDING else result
        if a.key == b.key:
            return 0
        return -1 if a.key < b.key else 1

    return sorted(eligible, key=functools.cmp_to_key(cmp))


# --------------------------------------------------------------------------- #
# Cursors
# --------------------------------------------------------------------------- #


def encode_cursor(offset: int, snapshot: str | None = None) -> str:
    """Cursor for ``offset``, optionally naming the result snapshot it belongs to."""
    raw = f"{CURSOR_PREFIX}{offset}"
    if snapshot:
        raw = f"{raw}{SNAPSHOT_SEPARATOR}{snapshot}"
    return base64.urlsafe_b64encode(raw.encode("ascii")).decode("ascii")


def parse_cursor(cursor: str | None) -> tuple[int, str | None]:
    """Return the offset and snapshot id a cursor marks (``(0, None)`` for no cursor).

    Raises:
        InvalidRequestError: if the cursor is malformed.
    """
    if not cursor:
        return 0, None
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("ascii")
    except (binascii.Error, UnicodeError) as e:
        raise InvalidRequestError(f"Malformed cursor: {cursor!r}") from e
    offset, _, snapshot = raw.removeprefix(CURSOR_PREFIX).partition(SNAPSHOT_SEPARATOR)
    if not raw.startswith(CURSOR_PREFIX) or not offset.isdigit():
        raise InvalidRequestError(f"Malformed cursor: {cursor!r}")
    return int(offset), snapshot or None


def decode_cursor(cursor: str | None) -> int:
    """Return the offset a cursor marks (0 for no cursor).

    Raises:
        InvalidRequestError: if the cursor is malformed.
    """
    return parse_cursor(cursor)[0]


# --------------------------------------------------------------------------- #
# Query execution
# --------------------------------------------------------------------------- #


def select_entities(candidates: Iterable[Entity], query: Query) -> list[Entity]:
    """Entities of ``candidates`` matching the query's filter, in query order."""
    return sort_entities(
        (e for e in candidates if matches(e, query.filter)), query.order_by
    )


def page_results(
    selected: Sequence[Entity],
    query: Query,
    page_size: int | None = None,
    snapshot: str | None = None,
) -> QueryResults:
    """Cut the page starting at the query's cursor out of ``selected``.

    ``snapshot`` is carried in the returned cursor while more results remain.
    """
    offset = decode_cursor(query.start_cursor)

    sizes = [n for n in (query.limit, page_size) if n is not None]
    end = offset + min(sizes) if sizes else len(selected)
    page = list(selected[offset:end])
    if query.keys_only:
        page = [Entity(key=e.key) for e in page]

    next_offset = offset + len(page)
    more_results = next_offset < len(selected)
    return QueryResults(
        entities=page,
        cursor_after=encode_cursor(next_offset, snapshot if more_results else None),
        more_results=more_results,
    )


def run_query(
    candidates: Iterable[Entity], query: Query, page_size: int | None = None
) -> QueryResults:
    """Filter, order and page ``candidates`` of the query's kind and namespace."""
    return page_results(select_entities(candidates, query), query, page_size)
