"""Storage fault taxonomy for CIRRUS.

All faults raised by the storage layer derive from `StorageError` so callers
can catch the whole family at once. "Not found" is never an exception here:
reads return `None` (or an empty iterator) instead.

Hierarchy:

- `StorageError`
  - `ConfigurationError`: bad namespace/converter setup, unmapped column type.
    - `UnmappedColumnTypeError`
    - `TenantContextError`
    - `NamespaceNotFoundError`
  - `UnsupportedOperatorError`: predicate operator has no native filter.
  - `TransactionError`: transactional operation, commit or rollback failed.
    - `TransactionStateError`: coordinator used in the wrong state.
  - `StorageClosedError`: operation attempted after `close()`.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base class for CIRRUS storage errors."""


# --- Configuration ---


class ConfigurationError(StorageError):
    """The storage, namespace or converter setup is invalid."""


class UnmappedColumnTypeError(ConfigurationError):
    """No column mapping is registered for a value type.

    Attributes:
        value_type (type): The type which could not be mapped.
    """

    def __init__(self, value_type: type):
        super().__init__(
            f"No column mapping registered for type '{value_type.__name__}'."
        )
        self.value_type = value_type


class TenantContextError(ConfigurationError):
    """A multitenant operation was attempted outside of a tenant scope."""


class NamespaceNotFoundError(ConfigurationError):
    """The namespace is not present in the document store.

    Attributes:
        namespace (str): The namespace that could not be found.
    """

    def __init__(self, namespace: str):
        super().__init__(f"Namespace '{namespace}' does not exist in the store.")
        self.namespace = namespace


# --- Queries ---


class UnsupportedOperatorError(StorageError):
    """A query parameter uses an operator without a native filter equivalent.

    Attributes:
        operator (object): The offending operator.
        column (str): The column the parameter targets.
    """

    def __init__(self, operator: object, column: str):
        super().__init__(
            f"Operator {operator!r} on column '{column}' is not supported by the store."
        )
        self.operator = operator
        self.column = column


# --- Transactions ---


class TransactionError(StorageError):
    """A transactional operation failed and was rolled back.

    Attributes:
        operation (str): The kind of operation, e.g. ``"WriteOperation"``.
    """

    def __init__(self, message: str, operation: str = "Transaction"):
        super().__init__(message)
        self.operation = operation


class TransactionStateError(TransactionError):
    """The transaction coordinator was used in an invalid state."""


# --- Lifecycle ---


class StorageClosedError(StorageError):
    """The storage has been closed and cannot serve operations.

    Attributes:
        storage_name (str): The name of the closed storage.
    """

    def __init__(self, storage_name: str):
        super().__init__(f"Storage '{storage_name}' is closed.")
        self.storage_name = storage_name
