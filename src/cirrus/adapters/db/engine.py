"""Engine factory for the SQL document store.

SQLite engines are tuned on every new connection:

| PRAGMA               | Value    | Effect                                     |
|----------------------|----------|--------------------------------------------|
| ``journal_mode``     | ``WAL``  | readers do not block the single writer     |
| ``synchronous``      | ``NORMAL`` | fsync at checkpoints only                |
| ``temp_store``       | ``MEMORY`` | temp tables and indices in memory        |
| ``busy_timeout``     | 5000 ms  | wait for the write lock instead of failing |

An in-memory SQLite database lives as long as its connection, so such URLs
get a single shared connection (`StaticPool`); otherwise every transaction
handle would see its own empty database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlite3 import Connection as SQLiteConnection

    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

SQLITE_NAMES = {"sqlite", "sqlite+pysqlite"}
SQLITE_BUSY_TIMEOUT_MS = 5000

_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
    f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS};",
)


def is_sqlite(url: str | URL) -> bool:
    """Return True if the given SQLAlchemy URL or string corresponds to SQLite."""
    return make_url(str(url)).get_backend_name() in SQLITE_NAMES


def is_sqlite_memory(url: str | URL) -> bool:
    """Return True for ``sqlite://`` and ``sqlite:///:memory:`` URLs."""
    u = make_url(str(url))
    return is_sqlite(u) and u.database in (None, "", ":memory:")


def _apply_sqlite_pragmas(dbapi_conn: SQLiteConnection, conn_record) -> None:  # pylint: disable=unused-argument
    cur = dbapi_conn.cursor()
    try:
        for pragma in _SQLITE_PRAGMAS:
            cur.execute(pragma)
    finally:
        cur.close()


def make_engine(url: str | URL, *, echo: bool = False) -> Engine:
    """Create an Engine for the SQL document store.

    Args:
        url: Database connection URL (str or :class:`URL`).
        echo: If True, log SQL statements.
    """
    kwargs: dict[str, Any] = {"echo": echo}
    if is_sqlite_memory(url):
        kwargs.update(
            poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    elif not is_sqlite(url):
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)
    if is_sqlite(url):
        event.listen(engine, "connect", _apply_sqlite_pragmas)

    logger.debug("Created %s engine for %s", engine.dialect.name, engine.url)
    return engine
