"""Unit tests for records and aggregate event records."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from cirrus.domain.records import Event, LifecycleFlags, Record, Snapshot


class TestRecord:
    """Records and their columns."""

    @staticmethod
    def test_from_payload_derives_sha256_id() -> None:
        record = Record.from_payload(b"hello", {"n": 1})
        assert record.id == hashlib.sha256(b"hello").hexdigest()
        assert dict(record.columns) == {"n": 1}

    @staticmethod
    def test_from_payload_is_deterministic() -> None:
        assert Record.from_payload(b"x").id == Record.from_payload(bytearray(b"x")).id

    @staticmethod
    def test_columns_are_read_only_copies() -> None:
        columns = {"n": 1}
        record = Record("r1", b"", columns)
        columns["n"] = 2
        assert record.columns["n"] == 1
        with pytest.raises(TypeError):
            record.columns["n"] = 3  # type: ignore[index]

    @staticmethod
    def test_equality_and_hash() -> None:
        left = Record("r1", b"p", {"n": 1})
        right = Record("r1", bytearray(b"p"), {"n": 1})
        assert left == right
        assert hash(left) == hash(right)
        assert left != Record("r1", b"p", {"n": 2})

    @staticmethod
    def test_empty_id_is_rejected() -> None:
        with pytest.raises(ValueError):
            Record("", b"")

    @staticmethod
    def test_payload_must_be_bytes() -> None:
        with pytest.raises(TypeError):
            Record("r1", "text")  # type: ignore[arg-type]


class TestEventAndSnapshot:
    """Aggregate history records."""

    @staticmethod
    def test_naive_timestamp_is_utc() -> None:
        event = Event("e1", 1, datetime(2025, 1, 1, 12), b"")
        assert event.timestamp == datetime(2025, 1, 1, 12, tzinfo=timezone.utc)

    @staticmethod
    def test_aware_timestamp_is_converted_to_utc() -> None:
        ts = datetime(2025, 1, 1, 5, tzinfo=timezone(timedelta(hours=-7)))
        snapshot = Snapshot(2, ts, b"")
        assert snapshot.timestamp.tzinfo == timezone.utc
        assert snapshot.timestamp.hour == 12

    @staticmethod
    @pytest.mark.parametrize("version", [0, -1])
    def test_version_starts_at_one(version: int) -> None:
        now = datetime.now(timezone.utc)
        with pytest.raises(ValueError):
            Event("e1", version, now, b"")
        with pytest.raises(ValueError):
            Snapshot(version, now, b"")

    @staticmethod
    def test_event_id_is_required() -> None:
        with pytest.raises(ValueError):
            Event("", 1, datetime.now(timezone.utc), b"")


class TestLifecycleFlags:
    """Lifecycle status."""

    @staticmethod
    def test_defaults_are_unset() -> None:
        assert not LifecycleFlags().any_set

    @staticmethod
    @pytest.mark.parametrize(
        "flags", [LifecycleFlags(archived=True), LifecycleFlags(deleted=True)]
    )
    def test_any_set(flags: LifecycleFlags) -> None:
        assert flags.any_set
