"""Wire settings, document store, namespace resolver and storage factory."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cirrus.adapters.db.engine import make_engine
from cirrus.adapters.memory import InMemoryDocumentStore
from cirrus.adapters.sqlalchemy import SqlAlchemyDocumentStore
from cirrus.adapters.sqlalchemy.schema import create_schema
from cirrus.config import Settings
from cirrus.interfaces.document_store import DocumentStore
from cirrus.logging import configure_logging
from cirrus.query.columns import ColumnMapping
from cirrus.storage.factory import DocumentStorageFactory
from cirrus.tenant.converters import converter_factory
from cirrus.tenant.resolver import NamespaceResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageContainer:
    """A class to hold the wired storage stack."""

    settings: Settings
    store: DocumentStore
    resolver: NamespaceResolver
    factory: DocumentStorageFactory

    def close(self) -> None:
        self.factory.close()
        self.store.close()


def build_store(settings: Settings) -> DocumentStore:
    """Build the SQL store for ``settings.db_url``, or an in-memory store if unset."""
    if settings.db_url is None:
        logger.debug("No database URL configured; using the in-memory store")
        return InMemoryDocumentStore()
    engine = make_engine(settings.db_url)
    create_schema(engine)
    return SqlAlchemyDocumentStore(engine)


def build_resolver(settings: Settings) -> NamespaceResolver:
    """Build the namespace resolver from the converter settings.

    Raises:
        ConfigurationError: if the converter name is unknown.
    """
    factory = converter_factory(settings.namespace_converter, settings.namespace_prefix)
    return NamespaceResolver(
        multitenant=settings.multitenant,
        converter=factory(settings.multitenant),
        namespace=settings.namespace,
    )


def bootstrap(
    settings: Settings | None = None,
    *,
    column_mapping: ColumnMapping | None = None,
    setup_logging: bool = False,
) -> StorageContainer:
    """Build the storage stack.

    Args:
        settings: Settings to use; read from the environment when omitted.
        column_mapping: Custom column conversions for record storages.
        setup_logging: Configure root logging from the settings.
    """
    settings = settings or Settings.from_env()
    if setup_logging:
        configure_logging(
            level=settings.log_level,
            logger_levels=settings.logger_levels,
            log_path=settings.log_path,
        )

    store = build_store(settings)
    resolver = build_resolver(settings)
    factory = DocumentStorageFactory(
        store,
        resolver,
        column_mapping=column_mapping,
        tx_enabled=settings.tx_enabled,
    )
    logger.info(
        "Storage ready: store=%s, multitenant=%s, tx_enabled=%s",
        type(store).__name__,
        settings.multitenant,
        settings.tx_enabled,
    )
    return StorageContainer(
        settings=settings, store=store, resolver=factory.resolver, factory=factory
    )
