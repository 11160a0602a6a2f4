"""Integration tests for per-operation and coordinated transactions."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from cirrus.adapters.memory import InMemoryDocumentStore
from cirrus.adapters.memory.document_store import InMemoryTransaction
from cirrus.domain.records import Record
from cirrus.interfaces.document_store import (
    DocumentStore,
    DocumentTransaction,
    Entity,
    Key,
    Query,
    StoreUnavailableError,
)
from cirrus.interfaces.errors import (
    TenantContextError,
    TransactionError,
    TransactionStateError,
)
from cirrus.storage.factory import DocumentStorageFactory
from cirrus.tenant.context import tenant_scope
from cirrus.tenant.resolver import NamespaceResolver
from cirrus.tenant.tenant_id import TenantId

# pylint: disable=redefined-outer-name


class FlakyTransaction(InMemoryTransaction):
    def __init__(self, store: FlakyStore):
        super().__init__(store)
        self._flaky = store

    def get(self, key: Key) -> Entity | None:
        if self._flaky.fail_reads:
            raise StoreUnavailableError("read failed")
        return super().get(key)

    def put_many(self, entities: Sequence[Entity]) -> None:
        if self._flaky.puts_before_failure == 0:
            raise StoreUnavailableError("write failed")
        self._flaky.puts_before_failure -= 1
        super().put_many(entities)


class FlakyStore(InMemoryDocumentStore):
    """Store whose transactions fail after a number of successful writes."""

    def __init__(self, puts_before_failure: int = -1, fail_reads: bool = False):
        super().__init__()
        self.puts_before_failure = puts_before_failure
        self.fail_reads = fail_reads

    def new_transaction(self) -> DocumentTransaction:
        return FlakyTransaction(self)


@pytest.fixture
def tx_factory(document_store: DocumentStore):
    with DocumentStorageFactory(document_store, tx_enabled=True) as factory:
        yield factory


class TestPerOperationTransactions:
    @staticmethod
    def test_operations_commit(tx_factory: DocumentStorageFactory, make_record, make_event):
        records = tx_factory.create_record_storage("Task")
        aggregates = tx_factory.create_aggregate_storage("Project")

        records.write_all([make_record("a", size=1), make_record("b", size=2)])
        records.delete("b")
        aggregates.write_record("agg1", make_event(1))
        aggregates.write_event_count_after_last_snapshot("agg1", 1)

        assert records.read("a") == make_record("a", size=1)
        assert records.read("b") is None
        assert [r.id for r in records.read_all_records()] == ["a"]
        assert list(aggregates.index()) == ["agg1"]
        assert aggregates.read_event_count_after_last_snapshot("agg1") == 1

    @staticmethod
    def test_failed_write_is_rolled_back(make_record):
        store = FlakyStore(puts_before_failure=1)
        records = DocumentStorageFactory(store, tx_enabled=True).create_record_storage("Task")
        batch = [Record(f"r{i:04d}", b"p") for i in range(600)]

        with pytest.raises(TransactionError) as excinfo:
            records.write_all(batch)

        assert excinfo.value.operation == "WriteOperation"
        assert isinstance(excinfo.value.__cause__, StoreUnavailableError)
        assert list(records.index()) == []
        assert store.puts_before_failure == 0

        store.puts_before_failure = -1
        records.write(make_record("ok"))
        assert list(records.index()) == ["ok"]

    @staticmethod
    def test_failed_read_is_wrapped():
        store = FlakyStore(fail_reads=True)
        records = DocumentStorageFactory(store, tx_enabled=True).create_record_storage("Task")

        with pytest.raises(TransactionError) as excinfo:
            records.read("a1")

        assert excinfo.value.operation == "ReadOperation"

    @staticmethod
    def test_missing_tenant_is_not_a_transaction_error(make_record):
        factory = DocumentStorageFactory(
            InMemoryDocumentStore(),
            NamespaceResolver(multitenant=True),
            tx_enabled=True,
        )
        tasks = factory.create_record_storage("Task")

        with pytest.raises(TenantContextError):
            tasks.read("a1")
        with pytest.raises(TenantContextError):
            tasks.write(make_record("a1"))

        with tenant_scope(TenantId.domain("acme.com")):
            tasks.write(make_record("a1"))
            assert tasks.read("a1") == make_record("a1")

    @staticmethod
    def test_operations_bypass_transactions_when_disabled():
        store = FlakyStore(fail_reads=True)
        records = DocumentStorageFactory(store).create_record_storage("Task")

        assert records.read("a1") is None


class TestCoordinatedTransactions:
    @staticmethod
    def test_commit_publishes_every_write(storage_factory: DocumentStorageFactory, make_record):
        tasks = storage_factory.create_record_storage("Task")
        notes = storage_factory.create_record_storage("Note")

        storage_factory.coordinator.begin()
        tasks.write(make_record("t1"))
        notes.write(make_record("n1"))
        storage_factory.coordinator.commit()

        assert tasks.read("t1") is not None
        assert notes.read("n1") is not None

    @staticmethod
    def test_rollback_discards_every_write(storage_factory: DocumentStorageFactory, make_record):
        tasks = storage_factory.create_record_storage("Task")
        aggregates = storage_factory.create_aggregate_storage("Project")

        with storage_factory.coordinator:
            tasks.write(make_record("t1"))
            aggregates.write_event_count_after_last_snapshot("agg1", 2)
            storage_factory.coordinator.rollback()

        assert tasks.read("t1") is None
        assert aggregates.read_event_count_after_last_snapshot("agg1") == 0

    @staticmethod
    def test_context_exit_rolls_back_on_error(storage_factory: DocumentStorageFactory, make_record):
        tasks = storage_factory.create_record_storage("Task")

        with pytest.raises(RuntimeError):
            with storage_factory.coordinator:
                tasks.write(make_record("t1"))
                raise RuntimeError("boom")

        assert not storage_factory.coordinator.is_active
        assert tasks.read("t1") is None

    @staticmethod
    def test_query_results_outlive_commit(storage_factory: DocumentStorageFactory, make_record):
        tasks = storage_factory.create_record_storage("Task")
        tasks.write_all([make_record("t1"), make_record("t2")])

        with storage_factory.coordinator:
            ids = tasks.index()
            records = tasks.read_all_records()
            storage_factory.coordinator.commit()

        assert list(ids) == ["t1", "t2"]
        assert [r.id for r in records] == ["t1", "t2"]

    @staticmethod
    def test_operations_join_active_transaction(make_record):
        store = InMemoryDocumentStore()
        factory = DocumentStorageFactory(store, tx_enabled=True)
        tasks = factory.create_record_storage("Task")

        factory.coordinator.begin()
        tasks.write(make_record("t1"))
        assert list(store.run(Query(kind="Task")).entities) == []
        factory.coordinator.commit()

        assert [e.key.name for e in store.run(Query(kind="Task")).entities] == ["t1"]

    @staticmethod
    def test_begin_twice_is_rejected(storage_factory: DocumentStorageFactory):
        storage_factory.coordinator.begin()
        with pytest.raises(TransactionStateError):
            storage_factory.coordinator.begin()
        storage_factory.coordinator.rollback()

    @staticmethod
    def test_commit_without_transaction_is_rejected(storage_factory: DocumentStorageFactory):
        with pytest.raises(TransactionStateError):
            storage_factory.coordinator.commit()
