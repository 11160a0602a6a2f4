"""SQL dialects understood by the SQL document store.

Both supported backends offer ``INSERT ... ON CONFLICT DO UPDATE``, but
through different SQLAlchemy constructs. `DialectName.upsert` hides that
difference from the adapter.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.sql.dml import Insert

_ALIASES = {
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "pg": "postgresql",
    "sqlite": "sqlite",
}


class UnsupportedDialect(Exception):
    """The backend is neither PostgreSQL nor SQLite."""


class DialectName(str, Enum):
    """Backends of the SQL document store, by SQLAlchemy dialect name."""

    POSTGRES = "postgresql"
    SQLITE = "sqlite"

    @classmethod
    def from_string(cls, dialect_str: str | None) -> DialectName:
        """Parse a dialect or URL scheme such as ``"postgresql+psycopg"``.

        Raises:
            UnsupportedDialect: for anything but a PostgreSQL or SQLite name.
        """
        base = (dialect_str or "").strip().lower().partition("+")[0]
        if (name := _ALIASES.get(base)) is None:
            raise UnsupportedDialect(f"Unsupported dialect: {dialect_str!r}")
        return cls(name)

    @classmethod
    def from_sqlalchemy(cls, obj: Engine | Connection) -> DialectName:
        """Dialect of an engine or connection.

        Raises:
            UnsupportedDialect: if ``obj`` has no ``dialect.name`` or names another backend.
        """
        name = getattr(getattr(obj, "dialect", None), "name", None)
        if name is None:
            raise UnsupportedDialect(
                f"Object {type(obj).__name__} does not expose .dialect.name"
            )
        return cls.from_string(name)

    def upsert(
        self,
        table: Table,
        rows: Sequence[Mapping[str, Any]],
        key_columns: Sequence[str],
        update: Mapping[str, Any],
    ) -> Insert:
        """Multi-row insert which updates the conflicting row instead of failing.

        Args:
            table: Target table.
            rows: Values of the rows to write.
            key_columns: Columns of the conflict target (the primary key).
            update: Column assignments on conflict. A value naming a column
                of ``table`` (as a string) takes the incoming row's value.
        """
        insert = pg_insert if self is DialectName.POSTGRES else sqlite_insert
        stmt = insert(table).values(list(rows))
        set_ = {
            column: stmt.excluded[value] if isinstance(value, str) else value
            for column, value in update.items()
        }
        return stmt.on_conflict_do_update(
            index_elements=[table.c[name] for name in key_columns], set_=set_
        )
