"""Column types of the ``entities`` table.

- `PORTABLE_JSON`: entity properties; ``JSONB`` on PostgreSQL, ``JSON``
  (text) elsewhere.
- `UTCDateTime`: aware UTC timestamps on every backend. SQLite has no time
  zone support, so values are bound there as naive UTC wall time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import DateTime, TypeDecorator

from cirrus.adapters.db.dialects import DialectName

if TYPE_CHECKING:
    from sqlalchemy.engine.interfaces import Dialect

__all__ = ["PORTABLE_JSON", "UTCDateTime", "as_utc"]


PORTABLE_JSON = JSON(none_as_null=True).with_variant(
    JSONB(none_as_null=True), DialectName.POSTGRES.value
)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _binds_naive(dialect: Dialect) -> bool:
    return dialect.name == DialectName.SQLITE.value


class UTCDateTime(TypeDecorator[datetime]):  # pylint: disable=too-many-ancestors
    """Timezone-aware UTC datetime column."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> Any:
        if value is None:
            return None
        value = as_utc(value)
        return value.replace(tzinfo=None) if _binds_naive(dialect) else value

    def process_literal_param(self, value: datetime | None, dialect: Dialect) -> Any:
        return self.process_bind_param(value, dialect)

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        # SQLite may hand back raw strings for server defaults
        return as_utc(value) if isinstance(value, datetime) else value

    @property
    def python_type(self) -> type[datetime]:
        return datetime
