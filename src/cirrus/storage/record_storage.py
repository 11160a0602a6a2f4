"""Record storage on top of a document store.

Each record becomes one entity of the storage's kind, named after the
record id. The entity holds the payload under the ``payload`` property and
one property per record column, converted by `ColumnMapping`.

Queries
-------
A `RecordQuery` predicate is compiled into conjunctive filters (see
`cirrus.query.filters`):

- zero or one filter: ordering and limit are pushed into the store query,
  and records stream lazily page by page;
- several filters: one store query per filter without limit; results are
  de-duplicated by key (first occurrence wins), then sorted and limited in
  memory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from cirrus.domain.query import RecordQuery, SortBy, SortDirection
from cirrus.domain.records import Record
from cirrus.interfaces.document_store import (
    Direction,
    Entity,
    Filter,
    OrderBy,
    Query,
    value_rank,
)
from cirrus.interfaces.errors import ConfigurationError
from cirrus.interfaces.storage import RecordStorage
from cirrus.query.columns import ColumnMapping
from cirrus.query.filters import PredicateCompiler
from cirrus.storage.base import AbstractDocumentStorage

if TYPE_CHECKING:
    from cirrus.storage.kinds import Kind
    from cirrus.storage.wrapper import DocumentStoreWrapper

logger = logging.getLogger(__name__)

PAYLOAD_PROPERTY = "payload"


def _order_by(sort_by: Sequence[SortBy]) -> tuple[OrderBy, ...]:
    return tuple(
        OrderBy(
            s.column,
            Direction.DESCENDING
            if s.direction is SortDirection.DESC
            else Direction.ASCENDING,
        )
        for s in sort_by
    )


def _sort_value(value: Any) -> tuple[int, Any]:
    return (value_rank(value), value)


def sort_in_memory(entities: list[Entity], sort_by: Sequence[SortBy]) -> list[Entity]:
    """Stable multi-column sort; entities missing a sort column are dropped."""
    result = [e for e in entities if all(s.column in e.properties for s in sort_by)]
    for s in reversed(sort_by):
        result.sort(
            key=lambda e, col=s.column: _sort_value(e.properties[col]),
            reverse=s.direction is SortDirection.DESC,
        )
    return result


class DocumentRecordStorage(AbstractDocumentStorage, RecordStorage):
    """`RecordStorage` backed by a document store kind.

    Args:
        wrapper: Gateway to the document store.
        kind: Kind holding the records.
        column_mapping: Converts column values to native store values.
        tx_enabled: Run every operation in its own transaction.
    """

    def __init__(
        self,
        wrapper: DocumentStoreWrapper,
        kind: Kind,
        column_mapping: ColumnMapping | None = None,
        tx_enabled: bool = False,
    ):
        super().__init__(wrapper, kind, tx_enabled)
        self.column_mapping = column_mapping or ColumnMapping()
        self._compiler = PredicateCompiler(self.column_mapping)

    # --------------------------------------------------------------------- #
    # Mapping
    # --------------------------------------------------------------------- #

    def _to_properties(self, record: Record) -> dict[str, Any]:
        if PAYLOAD_PROPERTY in record.columns:
            raise ConfigurationError(
                f"Column name '{PAYLOAD_PROPERTY}' is reserved for the record payload."
            )
        properties = self.column_mapping.apply_all(record.columns)
        properties[PAYLOAD_PROPERTY] = record.payload
        return properties

    @staticmethod
    def _to_record(entity: Entity | None) -> Record | None:
        if entity is None:
            return None
        columns = {k: v for k, v in entity.properties.items() if k != PAYLOAD_PROPERTY}
        return Record(
            id=entity.key.name,
            payload=entity.properties.get(PAYLOAD_PROPERTY, b""),
            columns=columns,
        )

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def read(self, record_id: str) -> Record | None:
        return self._read(
            lambda target: self._to_record(
                target.read(target.key_for(self.kind, record_id))
            )
        )

    def read_all(self, record_ids: Iterable[str]) -> list[Record | None]:
        ids = list(record_ids)

        def operation(target):
            keys = [target.key_for(self.kind, i) for i in ids]
            return [self._to_record(e) for e in target.read_many(keys)]

        return self._read(operation)

    def write(self, record_id: str | Record, record: Record | None = None) -> None:
        if isinstance(record_id, Record):
            if record is not None:
                raise TypeError("write() takes either a record or an id and a record")
            record_id, record = record_id.id, record_id
        elif record is None:
            raise TypeError(f"write() missing the record for id '{record_id}'")
        name = record_id
        properties = self._to_properties(record)
        self._write(
            lambda target: target.create_or_update(
                Entity(target.key_for(self.kind, name), properties)
            )
        )

    def write_all(self, records: Iterable[Record]) -> None:
        prepared = [(r.id, self._to_properties(r)) for r in records]

        def operation(target):
            target.create_or_update_all(
                Entity(target.key_for(self.kind, name), properties)
                for name, properties in prepared
            )

        self._write(operation)

    def delete(self, record_id: str) -> bool:
        self._write(lambda target: target.delete([target.key_for(self.kind, record_id)]))
        return True

    def delete_all(self, record_ids: Iterable[str]) -> bool:
        ids = list(record_ids)
        self._write(
            lambda target: target.delete(target.key_for(self.kind, i) for i in ids)
        )
        return True

    def index(self, query: RecordQuery | None = None) -> Iterator[str]:
        if query is not None:
            return (record.id for record in self.read_all_records(query))
        scan = Query(kind=self.kind.value, keys_only=True)
        entities = self._read(lambda target: target.read_query(scan))
        return (e.key.name for e in entities)

    def read_all_records(self, query: RecordQuery | None = None) -> Iterator[Record]:
        query = query or RecordQuery()
        filters = self._compiler.compile(query.predicate)
        order_by = _order_by(query.sort_by)

        if len(filters) <= 1:
            native = Query(
                kind=self.kind.value,
                filter=filters[0] if filters else None,
                order_by=order_by,
                limit=query.limit,
            )
            entities = self._read(lambda target: target.read_query(native))
            return (self._to_record(e) for e in entities)

        return iter(self._read_union(filters, order_by, query))

    def _read_union(
        self,
        filters: Sequence[Filter],
        order_by: tuple[OrderBy, ...],
        query: RecordQuery,
    ) -> list[Record]:
        logger.debug(
            "Query on kind '%s' compiled to %d filters; merging in memory",
            self.kind,
            len(filters),
        )

        def operation(target):
            seen: dict[str, Entity] = {}
            for flt in filters:
                native = Query(kind=self.kind.value, filter=flt, order_by=order_by)
                for entity in target.read_query(native):
                    seen.setdefault(entity.key.name, entity)
            return list(seen.values())

        merged = sort_in_memory(self._read(operation), query.sort_by)
        if query.limit is not None:
            merged = merged[: query.limit]
        return [self._to_record(e) for e in merged]
