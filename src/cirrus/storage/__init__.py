"""Record and aggregate storages on top of a document store."""

from cirrus.storage.aggregate_storage import DocumentAggregateStorage
from cirrus.storage.factory import DocumentStorageFactory
from cirrus.storage.record_storage import DocumentRecordStorage

__all__ = [
    "DocumentAggregateStorage",
    "DocumentRecordStorage",
    "DocumentStorageFactory",
]
