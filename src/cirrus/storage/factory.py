"""Factory of document-backed storages.

A `DocumentStorageFactory` owns everything its storages share:

- the `DocumentStoreWrapper` (and thus the transaction coordinator);
- the key factory cache;
- the namespace index used for tenant validation and enumeration.

Caches are scoped to the factory instance, so two factories never share
state.
"""

from __future__ import annotations

import logging

from cirrus.interfaces.document_store import DocumentStore
from cirrus.interfaces.errors import StorageClosedError
from cirrus.query.columns import ColumnMapping
from cirrus.storage.aggregate_storage import DocumentAggregateStorage
from cirrus.storage.base import AbstractDocumentStorage
from cirrus.storage.kinds import KeyFactories, Kind
from cirrus.storage.record_storage import DocumentRecordStorage
from cirrus.storage.transactions import TransactionCoordinator
from cirrus.storage.wrapper import DocumentStoreWrapper
from cirrus.tenant.index import NamespaceIndex
from cirrus.tenant.resolver import NamespaceResolver

logger = logging.getLogger(__name__)


class DocumentStorageFactory:
    """Create record and aggregate storages on one document store.

    Args:
        store: The document store.
        resolver: Tenant to namespace resolution; bound to this factory's index.
        column_mapping: Column conversions used by record storages.
        tx_enabled: Run every storage operation in its own transaction.
    """

    def __init__(
        self,
        store: DocumentStore,
        resolver: NamespaceResolver | None = None,
        column_mapping: ColumnMapping | None = None,
        tx_enabled: bool = False,
    ):
        resolver = resolver or NamespaceResolver()
        self.store = store
        self.column_mapping = column_mapping or ColumnMapping()
        self.tx_enabled = tx_enabled
        self._index = NamespaceIndex(store.namespaces, resolver.restore)
        self.resolver = resolver.bound_to(self._index)
        self.wrapper = DocumentStoreWrapper(
            store, self.resolver, KeyFactories(), self._index
        )
        self._storages: list[AbstractDocumentStorage] = []
        self._closed = False

    @property
    def tenant_index(self) -> NamespaceIndex:
        return self._index

    @property
    def coordinator(self) -> TransactionCoordinator:
        """Explicit transaction shared by every storage of this factory."""
        return self.wrapper.coordinator

    @property
    def is_closed(self) -> bool:
        return self._closed

    def create_record_storage(self, kind: str | Kind) -> DocumentRecordStorage:
        self._check_not_closed()
        storage = DocumentRecordStorage(
            self.wrapper, Kind.of(kind), self.column_mapping, self.tx_enabled
        )
        self._storages.append(storage)
        logger.debug("Created record storage for kind '%s'", storage.kind)
        return storage

    def create_aggregate_storage(self, kind: str | Kind) -> DocumentAggregateStorage:
        self._check_not_closed()
        storage = DocumentAggregateStorage(self.wrapper, Kind.of(kind), self.tx_enabled)
        self._storages.append(storage)
        logger.debug("Created aggregate storage for kind '%s'", storage.kind)
        return storage

    def close(self) -> None:
        """Close every storage created by this factory. Idempotent."""
        if self._closed:
            return
        for storage in self._storages:
            storage.close()
        if self.wrapper.is_transaction_active:
            self.wrapper.rollback_transaction()
        self._closed = True
        logger.debug("Storage factory closed (%d storages)", len(self._storages))

    def _check_not_closed(self) -> None:
        if self._closed:
            raise StorageClosedError(type(self).__name__)

    def __enter__(self) -> DocumentStorageFactory:
        return self

    def __exit__(self, *args) -> None:
        self.close()
