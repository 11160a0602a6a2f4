"""Document store schema.

Defines the ``entities`` table used by the SQL document store. Each row is a
single entity addressed by ``(namespace, kind, name)``; its properties are a
JSON object (see `cirrus.adapters.sqlalchemy.codec`).

Constraints (enforced here):

| Constraint                       | Purpose                         |
|----------------------------------|---------------------------------|
| PRIMARY KEY(namespace, kind, name) | one entity per key, upsert target |
| CHECK(length(kind) > 0)          | kinds are non-empty              |
| CHECK(length(name) > 0)          | names are non-empty              |
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    text,
)

from cirrus.adapters.db.sa_types import PORTABLE_JSON, UTCDateTime

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

__all__ = ["entities", "create_schema", "metadata"]

# ix_<table>_<table_col...>, ck_<table>_<name>, pk_<table>
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_N_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "pk": "pk_%(table_name)s",
    }
)

entities = Table(
    "entities",
    metadata,
    Column(
        "namespace",
        String(500),
        nullable=False,
        server_default="",
        comment="Tenant namespace; the empty string is the default namespace.",
    ),
    Column(
        "kind",
        String(500),
        nullable=False,
        comment="Entity kind (one per record type or side table).",
    ),
    Column(
        "name",
        String(1500),
        nullable=False,
        comment="Entity name, unique within namespace and kind.",
    ),
    Column(
        "properties",
        PORTABLE_JSON,
        nullable=False,
        comment="Entity properties (JSON object, tagged for non-JSON types).",
    ),
    Column(
        "updated_at",
        UTCDateTime(),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Server-assigned UTC timestamp of the last write.",
    ),
    PrimaryKeyConstraint("namespace", "kind", "name"),
    CheckConstraint("length(kind) > 0", name="non_empty_kind"),
    CheckConstraint("length(name) > 0", name="non_empty_name"),
    Index(None, "namespace", "kind"),
    comment="Schemaless entities. One row per document store key.",
)


def create_schema(engine: Engine) -> None:
    """Create the ``entities`` table if it does not exist yet."""
    metadata.create_all(engine, tables=[entities], checkfirst=True)
