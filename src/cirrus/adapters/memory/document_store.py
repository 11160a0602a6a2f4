"""In memory document store implementation.

All entities are stored in memory and lost when the instance is discarded.
Use for unit tests, prototyping, or single-process deployments where
durability is not required.

The store enforces the same per-call ceilings as a remote document store
(1000 keys per read, 500 entities per write by default) and returns query
results in pages, so callers exercise their chunking and cursor logic.
Transactions stage their writes and read committed state.

This implementation passes all contract tests for the DocumentStore interface.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence

from cirrus.adapters import evaluation
from cirrus.interfaces.document_store import (
    DocumentStore,
    DocumentTransaction,
    Entity,
    InvalidRequestError,
    Key,
    Query,
    QueryResults,
)

MAX_KEYS_PER_READ = 1000
MAX_ENTITIES_PER_WRITE = 500


def _check_ceiling(count: int, ceiling: int | None, what: str) -> None:
    if ceiling is not None and count > ceiling:
        raise InvalidRequestError(
            f"Too many {what} in a single call: {count} (max {ceiling})."
        )


class InMemoryDocumentStore(DocumentStore):
    """In-memory DocumentStore for testing and non-durable use cases.

    Args:
        max_keys_per_read: Ceiling for `get_many`; None disables it.
        max_entities_per_write: Ceiling for `put_many` and `delete`; None disables it.
        page_size: Maximum entities per `run` call; None returns everything up to the limit.
    """

    def __init__(
        self,
        max_keys_per_read: int | None = MAX_KEYS_PER_READ,
        max_entities_per_write: int | None = MAX_ENTITIES_PER_WRITE,
        page_size: int | None = None,
    ):
        self.max_keys_per_read = max_keys_per_read
        self.max_entities_per_write = max_entities_per_write
        self.page_size = page_size
        self._entities: dict[Key, Entity] = {}
        self._lock = threading.RLock()

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def get(self, key: Key) -> Entity | None:
        return self._entities.get(key)

    def get_many(self, keys: Sequence[Key]) -> list[Entity | None]:
        _check_ceiling(len(keys), self.max_keys_per_read, "keys")
        return [self._entities.get(k) for k in keys]

    def put(self, entity: Entity) -> None:
        self.put_many([entity])

    def put_many(self, entities: Sequence[Entity]) -> None:
        _check_ceiling(len(entities), self.max_entities_per_write, "entities")
        with self._lock:
            for entity in entities:
                self._entities[entity.key] = Entity(entity.key, dict(entity.properties))

    def delete(self, *keys: Key) -> None:
        _check_ceiling(len(keys), self.max_entities_per_write, "keys")
        with self._lock:
            for key in keys:
                self._entities.pop(key, None)

    def run(self, query: Query) -> QueryResults:
        with self._lock:
            candidates = [
                e
                for k, e in self._entities.items()
                if k.kind == query.kind and k.namespace == query.namespace
            ]
        return evaluation.run_query(candidates, query, self.page_size)

    def new_transaction(self) -> DocumentTransaction:
        return InMemoryTransaction(self)

    def namespaces(self) -> Iterable[str]:
        with self._lock:
            found = {k.namespace for k in self._entities if k.namespace}
        return sorted(found)

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _apply(self, puts: dict[Key, Entity], deletes: set[Key]) -> None:
        with self._lock:
            for key in deletes:
                self._entities.pop(key, None)
            self._entities.update(puts)


class InMemoryTransaction(DocumentTransaction):
    """Staged mutations applied to the store on commit.

    Reads inside the transaction see the committed state of the store.
    """

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store
        self._puts: dict[Key, Entity] = {}
        self._deletes: set[Key] = set()
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    def _check_active(self) -> None:
        if not self._active:
            raise InvalidRequestError("Transaction is no longer active.")

    def get(self, key: Key) -> Entity | None:
        self._check_active()
        return self._store.get(key)

    def get_many(self, keys: Sequence[Key]) -> list[Entity | None]:
        self._check_active()
        return self._store.get_many(keys)

    def put(self, entity: Entity) -> None:
        self.put_many([entity])

    def put_many(self, entities: Sequence[Entity]) -> None:
        self._check_active()
        _check_ceiling(len(entities), self._store.max_entities_per_write, "entities")
        for entity in entities:
            self._deletes.discard(entity.key)
            self._puts[entity.key] = Entity(entity.key, dict(entity.properties))

    def delete(self, *keys: Key) -> None:
        self._check_active()
        _check_ceiling(len(keys), self._store.max_entities_per_write, "keys")
        for key in keys:
            self._puts.pop(key, None)
            self._deletes.add(key)

    def run(self, query: Query) -> QueryResults:
        self._check_active()
        return self._store.run(query)

    def commit(self) -> None:
        self._check_active()
        self._store._apply(self._puts, self._deletes)  # pylint: disable=protected-access
        self._active = False

    def rollback(self) -> None:
        self._check_active()
        self._puts.clear()
        self._deletes.clear()
        self._active = False
