"""Test the bootstrap function."""

import logging
import os
from logging.handlers import MemoryHandler
from unittest import mock

import pytest
from rich.logging import RichHandler

from cirrus.adapters.memory import InMemoryDocumentStore
from cirrus.adapters.sqlalchemy import SqlAlchemyDocumentStore
from cirrus.bootstrap import StorageContainer, bootstrap
from cirrus.bootstrap.bootstrap import build_resolver, build_store
from cirrus.config import Settings
from cirrus.domain.records import Record
from cirrus.interfaces.errors import ConfigurationError, TransactionError
from cirrus.tenant.context import tenant_scope
from cirrus.tenant.namespace import Namespace
from cirrus.tenant.tenant_id import TenantId

# pylint: disable=redefined-outer-name
# pylint: disable=unused-argument
# pylint: disable=magic-value-comparison


@pytest.fixture()
def db_url(tmp_path) -> str:
    return f"sqlite+pysqlite:///{tmp_path / 'cirrus.db'}"


@pytest.fixture()
def setenvvar(monkeypatch, db_url):
    """Fixture to set environment variables for tests."""
    with mock.patch.dict(os.environ, clear=False):
        envvars = {
            "CIRRUS_DB_URL": db_url,
            "CIRRUS_MULTITENANT": "true",
            "CIRRUS_NAMESPACE_PREFIX": "app",
        }
        for k, v in envvars.items():
            monkeypatch.setenv(k, v)
        yield


@pytest.fixture()
def restore_root_logging():
    """Put back the root logger's handlers and level after the test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestBuildStore:
    """Tests for the build_store function."""

    @staticmethod
    def test_in_memory_without_url():
        assert isinstance(build_store(Settings()), InMemoryDocumentStore)

    @staticmethod
    def test_sql_store_with_url(db_url):
        store = build_store(Settings(db_url=db_url))
        try:
            assert isinstance(store, SqlAlchemyDocumentStore)
            assert list(store.namespaces()) == []
        finally:
            store.close()


class TestBuildResolver:
    """Tests for the build_resolver function."""

    @staticmethod
    def test_single_tenant_namespace():
        resolver = build_resolver(Settings(namespace="shared"))
        assert resolver.resolve() == Namespace("shared")

    @staticmethod
    def test_prefixed_multitenant():
        resolver = build_resolver(Settings(multitenant=True, namespace_prefix="app"))
        tenant = TenantId.email("bob@example.com")
        assert resolver.resolve(tenant) == Namespace("app.Ebob-at-example.com")
        assert resolver.restore(resolver.resolve(tenant)) == tenant

    @staticmethod
    def test_unknown_converter_is_rejected():
        with pytest.raises(ConfigurationError):
            build_resolver(Settings(namespace_converter="nope"))


class TestBootstrap:
    """Tests for the bootstrap function."""

    @staticmethod
    def test_defaults_to_in_memory_store(monkeypatch):
        monkeypatch.delenv("CIRRUS_DB_URL", raising=False)
        monkeypatch.delenv("CIRRUS_MULTITENANT", raising=False)
        container = bootstrap()
        try:
            assert isinstance(container, StorageContainer)
            assert isinstance(container.store, InMemoryDocumentStore)
            assert not container.resolver.multitenant
        finally:
            container.close()

    @staticmethod
    def test_reads_settings_from_environment(setenvvar, db_url):
        container = bootstrap()
        try:
            assert container.settings.db_url == db_url
            assert isinstance(container.store, SqlAlchemyDocumentStore)
            assert container.resolver.multitenant
            assert container.resolver.converter.prefix == "app"
        finally:
            container.close()

    @staticmethod
    def test_storages_are_usable_end_to_end(setenvvar):
        container = bootstrap()
        tenant = TenantId.domain("acme.com")
        try:
            tasks = container.factory.create_record_storage("Task")
            with tenant_scope(tenant):
                tasks.write(Record("a1", b"payload", {"size": 1}))
                assert tasks.read("a1") == Record("a1", b"payload", {"size": 1})

            assert container.factory.tenant_index.all_tenants() == {tenant}
            assert list(container.store.namespaces()) == ["app.Dacme.com"]
        finally:
            container.close()

    @staticmethod
    def test_data_survives_a_restart(db_url):
        settings = Settings(db_url=db_url)
        first = bootstrap(settings)
        first.factory.create_record_storage("Task").write(Record("a1", b"kept"))
        first.close()

        second = bootstrap(settings)
        try:
            assert second.factory.create_record_storage("Task").read("a1").payload == b"kept"
        finally:
            second.close()

    @staticmethod
    def test_tx_enabled_setting_reaches_storages():
        container = bootstrap(Settings(tx_enabled=True))
        try:
            storage = container.factory.create_record_storage("Task")
            assert storage.tx_enabled
            with mock.patch.object(
                container.store, "new_transaction", side_effect=RuntimeError("down")
            ):
                with pytest.raises(TransactionError):
                    storage.read("a1")
        finally:
            container.close()

    @staticmethod
    def test_close_closes_factory():
        container = bootstrap(Settings())
        container.close()
        assert container.factory.is_closed

    @staticmethod
    def test_setup_logging(restore_root_logging, tmp_path):
        log_path = tmp_path / "cirrus.log"
        container = bootstrap(
            Settings(log_level=logging.INFO, log_path=log_path), setup_logging=True
        )
        try:
            handlers = logging.getLogger().handlers
            assert any(isinstance(h, RichHandler) for h in handlers)
            assert any(isinstance(h, MemoryHandler) for h in handlers)
            assert logging.getLogger("sqlalchemy").level == logging.WARNING
        finally:
            container.close()

    @staticmethod
    def test_logging_left_alone_by_default(restore_root_logging):
        before = logging.getLogger().handlers[:]
        container = bootstrap(Settings())
        container.close()
        assert logging.getLogger().handlers == before
