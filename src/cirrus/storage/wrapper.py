"""Namespace-aware access to the document store.

`DocumentStoreWrapper` is the single gateway storages use to talk to the
store. It

- resolves the namespace at call time and builds keys in it;
- splits bulk reads and writes into chunks the store accepts (1000 keys per
  read, 500 entities per write), preserving input order;
- follows query cursors lazily;
- routes operations to the coordinator's active transaction, if any;
- records the namespaces it writes to in the namespace index.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Iterator
from typing import TypeVar

from cirrus.interfaces.document_store import (
    DocumentReaderWriter,
    DocumentStore,
    DocumentStoreError,
    Entity,
    Key,
    Query,
)
from cirrus.interfaces.errors import TransactionError
from cirrus.storage.kinds import KeyFactories, Kind
from cirrus.storage.pagination import iterate_pages, iterate_query
from cirrus.storage.transactions import TransactionCoordinator, TransactionHandle
from cirrus.tenant.index import NamespaceIndex
from cirrus.tenant.namespace import Namespace
from cirrus.tenant.resolver import NamespaceResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_KEYS_PER_READ = 1000
MAX_ENTITIES_PER_WRITE = 500


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    iterator = iter(items)
    while chunk := list(itertools.islice(iterator, size)):
        yield chunk


def _ceiling(store_limit: int | None, default: int) -> int:
    return default if store_limit is None else min(store_limit, default)


class DocumentStoreWrapper:
    """Namespace-aware, chunking gateway to a `DocumentStore`.

    Args:
        store: The document store.
        resolver: Resolves the namespace of each operation.
        key_factories: Key factory cache shared by the storages of one factory.
        index: Namespace index updated on every write.
    """

    def __init__(
        self,
        store: DocumentStore,
        resolver: NamespaceResolver,
        key_factories: KeyFactories | None = None,
        index: NamespaceIndex | None = None,
    ):
        self.store = store
        self.resolver = resolver
        self._keys = key_factories if key_factories is not None else KeyFactories()
        self._index = index
        self.coordinator = TransactionCoordinator(store)
        self.read_ceiling = _ceiling(store.max_keys_per_read, MAX_KEYS_PER_READ)
        self.write_ceiling = _ceiling(store.max_entities_per_write, MAX_ENTITIES_PER_WRITE)

    # --------------------------------------------------------------------- #
    # Namespaces & keys
    # --------------------------------------------------------------------- #

    def namespace(self) -> Namespace:
        """The namespace for the current call (see `NamespaceResolver.resolve`)."""
        namespace = self.resolver.resolve()
        logger.debug("Using namespace '%s'", namespace)
        return namespace

    def key_for(self, kind: Kind, name: str, namespace: Namespace | None = None) -> Key:
        namespace = namespace if namespace is not None else self.namespace()
        return self._keys.get(kind, namespace).new_key(name)

    def _keep(self, keys: Iterable[Key]) -> None:
        if self._index is None:
            return
        for value in {k.namespace for k in keys}:
            self._index.keep(Namespace(value))

    def _actor(self, actor: DocumentReaderWriter | None) -> DocumentReaderWriter:
        return actor if actor is not None else self.coordinator.actor

    # --------------------------------------------------------------------- #
    # Reads
    # --------------------------------------------------------------------- #

    def read(self, key: Key, actor: DocumentReaderWriter | None = None) -> Entity | None:
        return self._actor(actor).get(key)

    def read_many(
        self, keys: Iterable[Key], actor: DocumentReaderWriter | None = None
    ) -> list[Entity | None]:
        """Read entities in chunks; the result is ordered like ``keys``."""
        target = self._actor(actor)
        keys = list(keys)
        if len(keys) > self.read_ceiling:
            logger.debug(
                "Reading %d keys in chunks of %d", len(keys), self.read_ceiling
            )
        found: list[Entity | None] = []
        for chunk in chunked(keys, self.read_ceiling):
            found.extend(target.get_many(chunk))
        return found

    def read_query(
        self,
        query: Query,
        actor: DocumentReaderWriter | None = None,
        namespace: Namespace | None = None,
    ) -> Iterator[Entity]:
        """Run ``query`` in the current namespace, following cursors lazily.

        The namespace is resolved when this method is called, not when the
        iterator is consumed. Inside the coordinator's transaction the
        results are materialized, so they stay readable after commit.
        """
        namespace = namespace if namespace is not None else self.namespace()
        target = self._actor(actor)
        entities = iterate_query(target.run, query.with_namespace(namespace.value))
        if actor is None and self.coordinator.is_active:
            return iter(list(entities))
        return entities

    def read_pages(
        self,
        query: Query,
        batch_size: int,
        actor: DocumentReaderWriter | None = None,
    ) -> Iterator[list[Entity]]:
        """Run ``query`` in the current namespace, one page of ``batch_size`` per round-trip.

        Pages are fetched lazily, so they must be consumed before the
        transaction they were started in ends.
        """
        bound = query.with_namespace(self.namespace().value)
        return iterate_pages(self._actor(actor).run, bound, batch_size)

    # --------------------------------------------------------------------- #
    # Writes
    # --------------------------------------------------------------------- #

    def create_or_update(
        self, entity: Entity, actor: DocumentReaderWriter | None = None
    ) -> None:
        self._actor(actor).put(entity)
        self._keep([entity.key])

    def create_or_update_all(
        self, entities: Iterable[Entity], actor: DocumentReaderWriter | None = None
    ) -> None:
        """Write entities in chunks, in input order."""
        target = self._actor(actor)
        entities = list(entities)
        if len(entities) > self.write_ceiling:
            logger.debug(
                "Writing %d entities in chunks of %d",
                len(entities),
                self.write_ceiling,
            )
        for chunk in chunked(entities, self.write_ceiling):
            target.put_many(chunk)
        self._keep(e.key for e in entities)

    def delete(
        self, keys: Iterable[Key], actor: DocumentReaderWriter | None = None
    ) -> None:
        target = self._actor(actor)
        for chunk in chunked(keys, self.write_ceiling):
            target.delete(*chunk)

    # --------------------------------------------------------------------- #
    # Transactions
    # --------------------------------------------------------------------- #

    @property
    def is_transaction_active(self) -> bool:
        return self.coordinator.is_active

    def start_transaction(self) -> None:
        self.coordinator.begin()

    def commit_transaction(self) -> None:
        self.coordinator.commit()

    def rollback_transaction(self) -> None:
        self.coordinator.rollback()

    def new_transaction(self) -> TransactionHandle:
        """Open an independent transaction in the current namespace."""
        namespace = self.namespace()
        try:
            tx = self.store.new_transaction()
        except DocumentStoreError as e:
            raise TransactionError(
                "Error starting a transaction.", operation="begin"
            ) from e
        return TransactionHandle(self, tx, namespace)
