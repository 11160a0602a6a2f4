"""Shared lifecycle and transaction policy of the document storages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from cirrus.interfaces.errors import StorageClosedError, TransactionError

if TYPE_CHECKING:
    from cirrus.storage.kinds import Kind
    from cirrus.storage.transactions import TransactionHandle
    from cirrus.storage.wrapper import DocumentStoreWrapper

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Either the wrapper itself or a per-operation transaction handle.
Operation = Callable[["DocumentStoreWrapper | TransactionHandle"], T]

READ_OPERATION = "ReadOperation"
WRITE_OPERATION = "WriteOperation"


class AbstractDocumentStorage:
    """Base of the record and aggregate storages.

    When ``tx_enabled`` is set, each read and write runs in its own
    transaction. A failing operation is rolled back and re-raised as a
    `TransactionError` naming the operation kind. If the factory's
    coordinator already holds an active transaction, operations join it
    instead. Faults raised while resolving the namespace, such as a missing
    tenant scope, propagate unwrapped.
    """

    def __init__(self, wrapper: DocumentStoreWrapper, kind: Kind, tx_enabled: bool = False):
        self._wrapper = wrapper
        self.kind = kind
        self.tx_enabled = tx_enabled
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            logger.debug("Closing storage for kind '%s'", self.kind)
        self._closed = True

    def _check_not_closed(self) -> None:
        if self._closed:
            raise StorageClosedError(str(self.kind))

    def _read(self, operation: Operation[T]) -> T:
        return self._perform(operation, READ_OPERATION)

    def _write(self, operation: Operation[T]) -> T:
        return self._perform(operation, WRITE_OPERATION)

    def _perform(self, operation: Operation[T], name: str) -> T:
        self._check_not_closed()
        if not self.tx_enabled or self._wrapper.is_transaction_active:
            return operation(self._wrapper)

        with self._wrapper.new_transaction() as tx:
            try:
                result = operation(tx)
                tx.commit()
            except Exception as e:
                logger.error(
                    "%s on kind '%s' failed and was rolled back: %s", name, self.kind, e
                )
                raise TransactionError(
                    f"Error executing `{name}` transactionally.", operation=name
                ) from e
            return result
