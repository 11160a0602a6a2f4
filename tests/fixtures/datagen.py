"""Fixtures for generating test data."""

import datetime
import itertools
from collections.abc import Callable
from typing import Any

import pytest

from cirrus.domain.records import Event, Record, Snapshot

# pylint: disable=redefined-outer-name

_counter = itertools.count(1)  # for event_id()

BASE_TIME = datetime.datetime(2025, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)


def event_id() -> str:
    """Return a unique, zero-padded event id."""
    return f"evt-{next(_counter):08d}"


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Factory fixture: build a `Record`.

    Example:
        make_record("r1", status="open", size=3)

    Columns are passed as keyword arguments; the payload defaults to the id
    encoded as UTF-8.
    """

    def _make_record(
        record_id: str, payload: bytes | None = None, **columns: Any
    ) -> Record:
        return Record(
            id=record_id,
            payload=payload if payload is not None else record_id.encode(),
            columns=columns,
        )

    return _make_record


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory fixture: build an `Event` at ``BASE_TIME + version`` minutes."""

    def _make_event(version: int, **overrides: Any) -> Event:
        fields: dict[str, Any] = {
            "id": event_id(),
            "version": version,
            "timestamp": BASE_TIME + datetime.timedelta(minutes=version),
            "payload": f"event-{version}".encode(),
        }
        fields.update(overrides)
        return Event(**fields)

    return _make_event


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory fixture: build a `Snapshot` at ``BASE_TIME + version`` minutes."""

    def _make_snapshot(version: int, **overrides: Any) -> Snapshot:
        fields: dict[str, Any] = {
            "version": version,
            "timestamp": BASE_TIME + datetime.timedelta(minutes=version),
            "payload": f"snapshot-{version}".encode(),
        }
        fields.update(overrides)
        return Snapshot(**fields)

    return _make_snapshot
