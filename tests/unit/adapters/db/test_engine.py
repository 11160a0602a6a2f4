"""Unit tests for the database engine helpers.

These tests cover:
- Detection of SQLite vs. non-SQLite URLs.
- Creation of a SQLite engine for a given URL.
- Application of SQLite PRAGMAs on connect.
- Sharing one connection for in-memory SQLite databases.
"""

from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.engine import make_url

from cirrus.adapters.db.engine import is_sqlite, is_sqlite_memory, make_engine

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def test_is_sqlite_true_for_sqlite_url():
    """is_sqlite() should return True for SQLite URLs."""
    assert is_sqlite("sqlite:///:memory:")
    assert is_sqlite(make_url("sqlite+pysqlite:///file.db"))


def test_is_sqlite_false_for_postgres_url():
    """is_sqlite() should return False for non-SQLite URLs (e.g., Postgres)."""
    assert not is_sqlite("postgresql://u:p@localhost/db")
    assert not is_sqlite(make_url("postgresql+psycopg://u:p@localhost/db"))


def test_make_engine_creates_sqlite(sqlite_engine_file: "Engine"):
    """make_engine() should create a working SQLite engine from a given URL."""
    engine = sqlite_engine_file  # engine is created in fixture using make_engine()
    assert engine.url.database is not None
    assert engine.url.database.endswith("test.db")


def test_sqlite_pragmas_applied(sqlite_engine_file: "Engine"):
    """SQLite engines created by make_engine() should apply expected PRAGMAs."""
    engine = sqlite_engine_file
    with engine.connect() as cxn:
        jm = cxn.exec_driver_sql("PRAGMA journal_mode;").scalar()
        sync = cxn.exec_driver_sql("PRAGMA synchronous;").scalar()
        tmp = cxn.exec_driver_sql("PRAGMA temp_store;").scalar()
    assert jm is not None
    assert jm.lower() in {"wal", "memory"}
    assert sync in {1, 2}
    assert tmp in {1, 2}


def test_is_sqlite_memory():
    assert is_sqlite_memory("sqlite://")
    assert is_sqlite_memory("sqlite+pysqlite:///:memory:")
    assert not is_sqlite_memory("sqlite:///file.db")
    assert not is_sqlite_memory("postgresql://u:p@localhost/db")


def test_busy_timeout_applied(sqlite_engine_file: "Engine"):
    with sqlite_engine_file.connect() as cxn:
        assert cxn.exec_driver_sql("PRAGMA busy_timeout;").scalar() == 5000


def test_memory_database_is_shared_between_connections():
    """Tables created on one connection are visible on the next one."""
    engine = make_engine("sqlite://")
    try:
        with engine.begin() as cxn:
            cxn.execute(text("CREATE TABLE t (x INTEGER)"))
            cxn.execute(text("INSERT INTO t VALUES (1)"))
        with engine.connect() as cxn:
            assert cxn.execute(text("SELECT x FROM t")).scalar() == 1
    finally:
        engine.dispose()
