"""Transactions over the document store.

Two flavors exist:

- `TransactionCoordinator`: one explicit transaction at a time, shared by all
  storages of a factory. While it is active every operation is routed to it.
- `TransactionHandle`: an independent transaction bound to the namespace
  resolved when it was opened. Storages use one handle per operation when
  transactional operations are enabled.

Both roll back on context-manager exit if the transaction is still active,
so the underlying resources are released on every exit path.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from cirrus.interfaces.document_store import (
    DocumentReaderWriter,
    DocumentStore,
    DocumentStoreError,
    DocumentTransaction,
    Entity,
    Key,
    Query,
)
from cirrus.interfaces.errors import TransactionError, TransactionStateError

if TYPE_CHECKING:
    from cirrus.storage.kinds import Kind
    from cirrus.storage.wrapper import DocumentStoreWrapper
    from cirrus.tenant.namespace import Namespace

logger = logging.getLogger(__name__)


class TxState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


def _finish(tx: DocumentTransaction, commit: bool) -> None:
    action = "commit" if commit else "rollback"
    try:
        if commit:
            tx.commit()
        else:
            tx.rollback()
    except DocumentStoreError as e:
        logger.error("Transaction %s failed: %s", action, e)
        raise TransactionError(
            f"Error during transaction {action}.", operation=action
        ) from e


class TransactionCoordinator:
    """Owns at most one active transaction against a document store.

    Idle -> Active (`begin`) -> Idle (`commit` or `rollback`).
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._tx: DocumentTransaction | None = None

    @property
    def state(self) -> TxState:
        return TxState.ACTIVE if self._tx is not None else TxState.IDLE

    @property
    def is_active(self) -> bool:
        return self._tx is not None

    @property
    def actor(self) -> DocumentReaderWriter:
        """The active transaction, or the store itself when idle."""
        return self._tx if self._tx is not None else self.store

    def begin(self) -> DocumentTransaction:
        """Start a transaction.

        Raises:
            TransactionStateError: if a transaction is already active.
        """
        if self._tx is not None:
            raise TransactionStateError(
                "Cannot begin: a transaction is already active.", operation="begin"
            )
        try:
            self._tx = self.store.new_transaction()
        except DocumentStoreError as e:
            raise TransactionError(
                "Error starting a transaction.", operation="begin"
            ) from e
        logger.debug("Transaction started")
        return self._tx

    def commit(self) -> None:
        """Commit the active transaction.

        Raises:
            TransactionStateError: if no transaction is active.
            TransactionError: if the store fails to commit.
        """
        tx = self._take("commit")
        _finish(tx, commit=True)
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """Roll back the active transaction.

        Raises:
            TransactionStateError: if no transaction is active.
            TransactionError: if the store fails to roll back.
        """
        tx = self._take("rollback")
        _finish(tx, commit=False)
        logger.debug("Transaction rolled back")

    def _take(self, action: str) -> DocumentTransaction:
        if self._tx is None:
            raise TransactionStateError(
                f"Cannot {action}: no transaction is active.", operation=action
            )
        tx, self._tx = self._tx, None
        return tx

    def __enter__(self) -> TransactionCoordinator:
        self.begin()
        return self

    def __exit__(self, *args) -> None:
        if self.is_active:
            self.rollback()


class TransactionHandle:
    """A transaction bound to one namespace, with the wrapper's operations.

    Query results are materialized, since the transaction may be closed
    before a lazy iterator would be consumed.
    """

    def __init__(
        self,
        wrapper: DocumentStoreWrapper,
        tx: DocumentTransaction,
        namespace: Namespace,
    ):
        self._wrapper = wrapper
        self._tx = tx
        self.namespace = namespace

    @property
    def is_active(self) -> bool:
        return self._tx.is_active

    # --- operations ---

    def key_for(self, kind: Kind, name: str) -> Key:
        return self._wrapper.key_for(kind, name, namespace=self.namespace)

    def read(self, key: Key) -> Entity | None:
        return self._wrapper.read(key, actor=self._tx)

    def read_many(self, keys: Iterable[Key]) -> list[Entity | None]:
        return self._wrapper.read_many(keys, actor=self._tx)

    def create_or_update(self, entity: Entity) -> None:
        self._wrapper.create_or_update(entity, actor=self._tx)

    def create_or_update_all(self, entities: Iterable[Entity]) -> None:
        self._wrapper.create_or_update_all(entities, actor=self._tx)

    def delete(self, keys: Iterable[Key]) -> None:
        self._wrapper.delete(keys, actor=self._tx)

    def read_query(self, query: Query) -> Iterator[Entity]:
        entities = list(
            self._wrapper.read_query(query, actor=self._tx, namespace=self.namespace)
        )
        return iter(entities)

    # --- completion ---

    def commit(self) -> None:
        _finish(self._tx, commit=True)

    def rollback(self) -> None:
        _finish(self._tx, commit=False)

    def __enter__(self) -> TransactionHandle:
        return self

    def __exit__(self, *args) -> None:
        if self._tx.is_active:
            self.rollback()
