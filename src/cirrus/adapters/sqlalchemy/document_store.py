"""SQLAlchemy-backed DocumentStore adapter for CIRRUS.

Stores every entity as one row of the ``entities`` table (see
`cirrus.adapters.sqlalchemy.schema`) on PostgreSQL or SQLite. Writes are
dialect-specific upserts keyed by ``(namespace, kind, name)``.

Query filters, ordering and cursors are evaluated in Python by
`cirrus.adapters.evaluation`, so results match the in-memory store exactly.
SQL narrows the candidates by namespace, kind and any string equality filter
(through JSON path extraction). The ordered result of a query is computed
once and kept as a snapshot; later pages are cut from it by cursor, so a
paged scan loads each matching row once.

Exceptions:
    Maps SQLAlchemy errors to document store exceptions:
    `DataError`/`IntegrityError` become `InvalidRequestError`, any other
    `DBAPIError` becomes `StoreUnavailableError`.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict, defaultdict
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError

from cirrus.adapters import evaluation
from cirrus.adapters.db.dialects import DialectName
from cirrus.adapters.sqlalchemy.codec import decode_properties, encode_properties
from cirrus.adapters.sqlalchemy.schema import entities as entity_table
from cirrus.interfaces.document_store import (
    CompositeFilter,
    DocumentStore,
    DocumentTransaction,
    Entity,
    Filter,
    FilterOperator,
    InvalidRequestError,
    Key,
    PropertyFilter,
    Query,
    QueryResults,
    StoreUnavailableError,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_KEYS_PER_READ = 1000
MAX_ENTITIES_PER_WRITE = 500
MAX_SNAPSHOTS = 32

KEY_COLUMNS = ("namespace", "kind", "name")


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except (IntegrityError, DataError) as e:
        raise InvalidRequestError(str(e.orig or e)) from e
    except DBAPIError as e:  # OperationalError, InterfaceError, etc.
        raise StoreUnavailableError(str(e)) from e


def _check_ceiling(count: int, ceiling: int | None, what: str) -> None:
    if ceiling is not None and count > ceiling:
        raise InvalidRequestError(
            f"Too many {what} in a single call: {count} (max {ceiling})."
        )


def _group_names(keys: Iterable[Key]) -> dict[tuple[str, str], list[str]]:
    groups: dict[tuple[str, str], list[str]] = defaultdict(list)
    for key in keys:
        groups[(key.namespace, key.kind)].append(key.name)
    return groups


def _string_equalities(flt: Filter | None) -> list[ColumnElement[bool]]:
    """SQL conditions for the string equality parts of ``flt``.

    They only narrow the candidates; `evaluation.matches` still decides.
    """
    match flt:
        case PropertyFilter():
            parts: Sequence[PropertyFilter] = (flt,)
        case CompositeFilter():
            parts = flt.filters
        case _:
            parts = ()
    return [
        entity_table.c.properties[p.name].as_string() == p.value
        for p in parts
        if p.operator is FilterOperator.EQUAL and isinstance(p.value, str)
    ]


class _QuerySnapshots:
    """Ordered query results, kept while later pages remain to be read.

    A snapshot is found through the id carried in the cursor and is only
    reused for the same query (ignoring cursor and limit). The least recently
    used snapshots are dropped beyond ``capacity``; a cursor whose snapshot
    is gone runs the query again and continues at its offset.
    """

    def __init__(self, capacity: int = MAX_SNAPSHOTS):
        self.capacity = capacity
        self._results: OrderedDict[str, tuple[Query, list[Entity]]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._results)

    def run(
        self,
        query: Query,
        load: Callable[[], list[Entity]],
        page_size: int | None,
    ) -> QueryResults:
        shape = replace(query, start_cursor=None, limit=None)
        _, snapshot_id = evaluation.parse_cursor(query.start_cursor)
        selected = self._get(snapshot_id, shape)
        if selected is None:
            selected = evaluation.select_entities(load(), query)
            snapshot_id = uuid.uuid4().hex
        results = evaluation.page_results(selected, query, page_size, snapshot_id)
        with self._lock:
            if results.more_results:
                self._results[snapshot_id] = (shape, selected)
                self._results.move_to_end(snapshot_id)
                while len(self._results) > self.capacity:
                    self._results.popitem(last=False)
            else:
                self._results.pop(snapshot_id, None)
        return results

    def _get(self, snapshot_id: str | None, shape: Query) -> list[Entity] | None:
        if snapshot_id is None:
            return None
        with self._lock:
            entry = self._results.get(snapshot_id)
        if entry is None or entry[0] != shape:
            logger.debug("Query snapshot %s is gone; running the query again", snapshot_id)
            return None
        return entry[1]


class _EntityTable:
    """Statements against the ``entities`` table on a given connection."""

    def __init__(self, connection: Connection):
        self.connection = connection
        self.dialect = DialectName.from_sqlalchemy(connection)

    def get_many(self, keys: Sequence[Key]) -> list[Entity | None]:
        found: dict[Key, Entity] = {}
        for (namespace, kind), names in _group_names(keys).items():
            stmt = select(entity_table.c.name, entity_table.c.properties).where(
                entity_table.c.namespace == namespace,
                entity_table.c.kind == kind,
                entity_table.c.name.in_(names),
            )
            for row in self.connection.execute(stmt).mappings():
                key = Key(namespace, kind, row["name"])
                found[key] = Entity(key, decode_properties(row["properties"]))
        return [found.get(k) for k in keys]

    def upsert(self, batch: Sequence[Entity]) -> None:
        if not batch:
            return
        # last write wins inside a single batch as well
        rows = {
            e.key: {
                "namespace": e.key.namespace,
                "kind": e.key.kind,
                "name": e.key.name,
                "properties": encode_properties(e.properties),
            }
            for e in batch
        }
        self.connection.execute(
            self.dialect.upsert(
                entity_table,
                list(rows.values()),
                key_columns=KEY_COLUMNS,
                update={"properties": "properties", "updated_at": func.now()},
            )
        )

    def delete(self, keys: Iterable[Key]) -> None:
        for (namespace, kind), names in _group_names(keys).items():
            self.connection.execute(
                delete(entity_table).where(
                    entity_table.c.namespace == namespace,
                    entity_table.c.kind == kind,
                    entity_table.c.name.in_(names),
                )
            )

    def candidates(self, query: Query) -> list[Entity]:
        stmt = select(entity_table.c.name, entity_table.c.properties).where(
            entity_table.c.namespace == query.namespace,
            entity_table.c.kind == query.kind,
            *_string_equalities(query.filter),
        )
        return [
            Entity(
                Key(query.namespace, query.kind, row["name"]),
                decode_properties(row["properties"]),
            )
            for row in self.connection.execute(stmt).mappings()
        ]

    def namespaces(self) -> list[str]:
        stmt = (
            select(distinct(entity_table.c.namespace))
            .where(entity_table.c.namespace != "")
            .order_by(entity_table.c.namespace)
        )
        return list(self.connection.execute(stmt).scalars())


class SqlAlchemyDocumentStore(DocumentStore):
    """SQLAlchemy-backed DocumentStore.

    - Uses the canonical `entities` table (see adapters.sqlalchemy.schema).
    - Each non-transactional call runs in its own short database transaction.
    - `new_transaction()` holds a dedicated connection until commit or rollback.

    Args:
        engine: Engine for a PostgreSQL or SQLite database with the schema created.
        max_keys_per_read: Ceiling for `get_many`; None disables it.
        max_entities_per_write: Ceiling for `put_many` and `delete`; None disables it.
        page_size: Maximum entities per `run` call; None returns everything up to the limit.
    """

    def __init__(
        self,
        engine: Engine,
        max_keys_per_read: int | None = MAX_KEYS_PER_READ,
        max_entities_per_write: int | None = MAX_ENTITIES_PER_WRITE,
        page_size: int | None = None,
    ):
        self.engine = engine
        self.max_keys_per_read = max_keys_per_read
        self.max_entities_per_write = max_entities_per_write
        self.page_size = page_size
        self.dialect = DialectName.from_sqlalchemy(engine)
        self.snapshots = _QuerySnapshots()

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def get(self, key: Key) -> Entity | None:
        return self.get_many([key])[0]

    def get_many(self, keys: Sequence[Key]) -> list[Entity | None]:
        _check_ceiling(len(keys), self.max_keys_per_read, "keys")
        return self._execute(lambda table: table.get_many(keys))

    def put(self, entity: Entity) -> None:
        self.put_many([entity])

    def put_many(self, entities: Sequence[Entity]) -> None:
        _check_ceiling(len(entities), self.max_entities_per_write, "entities")
        self._execute(lambda table: table.upsert(entities))

    def delete(self, *keys: Key) -> None:
        _check_ceiling(len(keys), self.max_entities_per_write, "keys")
        self._execute(lambda table: table.delete(keys))

    def run(self, query: Query) -> QueryResults:
        return self.snapshots.run(
            query,
            lambda: self._execute(lambda table: table.candidates(query)),
            self.page_size,
        )

    def new_transaction(self) -> DocumentTransaction:
        with _translate_errors():
            connection = self.engine.connect()
            connection.begin()
        logger.debug("Started %s transaction", self.dialect.value)
        return SqlAlchemyTransaction(self, connection)

    def namespaces(self) -> Iterable[str]:
        return self._execute(lambda table: table.namespaces())

    def close(self) -> None:
        self.engine.dispose()

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _execute(self, operation: Callable[[_EntityTable], T]) -> T:
        with _translate_errors(), self.engine.begin() as connection:
            return operation(_EntityTable(connection))


class SqlAlchemyTransaction(DocumentTransaction):
    """A database transaction on a dedicated connection.

    Reads inside the transaction see its own uncommitted writes.
    """

    def __init__(self, store: SqlAlchemyDocumentStore, connection: Connection):
        self._store = store
        self.connection = connection
        self._table = _EntityTable(connection)
        self._snapshots = _QuerySnapshots()
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    def _check_active(self) -> None:
        if not self._active:
            raise InvalidRequestError("Transaction is no longer active.")

    def get(self, key: Key) -> Entity | None:
        return self.get_many([key])[0]

    def get_many(self, keys: Sequence[Key]) -> list[Entity | None]:
        self._check_active()
        _check_ceiling(len(keys), self._store.max_keys_per_read, "keys")
        with _translate_errors():
            return self._table.get_many(keys)

    def put(self, entity: Entity) -> None:
        self.put_many([entity])

    def put_many(self, entities: Sequence[Entity]) -> None:
        self._check_active()
        _check_ceiling(len(entities), self._store.max_entities_per_write, "entities")
        with _translate_errors():
            self._table.upsert(entities)

    def delete(self, *keys: Key) -> None:
        self._check_active()
        _check_ceiling(len(keys), self._store.max_entities_per_write, "keys")
        with _translate_errors():
            self._table.delete(keys)

    def run(self, query: Query) -> QueryResults:
        self._check_active()
        return self._snapshots.run(query, lambda: self._candidates(query), self._store.page_size)

    def _candidates(self, query: Query) -> list[Entity]:
        with _translate_errors():
            return self._table.candidates(query)

    def commit(self) -> None:
        self._check_active()
        self._active = False
        try:
            with _translate_errors():
                self.connection.commit()
        finally:
            self.connection.close()

    def rollback(self) -> None:
        self._check_active()
        self._active = False
        try:
            with _translate_errors():
                self.connection.rollback()
        finally:
            self.connection.close()
