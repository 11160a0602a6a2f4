"""Fixtures for storage integration tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from cirrus.interfaces.document_store import DocumentStore
from cirrus.storage.aggregate_storage import DocumentAggregateStorage
from cirrus.storage.factory import DocumentStorageFactory
from cirrus.storage.record_storage import DocumentRecordStorage

# pylint: disable=redefined-outer-name


@pytest.fixture
def storage_factory(document_store: DocumentStore) -> Iterator[DocumentStorageFactory]:
    """Single-tenant factory over every store backend."""
    with DocumentStorageFactory(document_store) as factory:
        yield factory


@pytest.fixture
def record_storage(storage_factory: DocumentStorageFactory) -> DocumentRecordStorage:
    return storage_factory.create_record_storage("Task")


@pytest.fixture
def aggregate_storage(storage_factory: DocumentStorageFactory) -> DocumentAggregateStorage:
    return storage_factory.create_aggregate_storage("Project")
