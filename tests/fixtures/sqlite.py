"""sqlite-specific fixtures"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import URL

from cirrus.adapters.db.engine import make_engine
from cirrus.adapters.sqlalchemy.schema import create_schema

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_engine_file(tmp_path: Path) -> Iterator[Engine]:
    """File-backed SQLite engine with the ``entities`` table (per test).

    A temp *file* (not :memory:) is used so the dedicated connection of a
    transaction is isolated from other connections, as on a server.

    Yields:
        Engine: SQLAlchemy engine pointing at a temp file DB.
    """
    url = str(URL.create("sqlite+pysqlite", database=str(tmp_path / "test.db")))
    test_engine = make_engine(url)
    create_schema(test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()
