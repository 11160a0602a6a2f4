"""Records and aggregate event records.

A `Record` is an opaque payload with an identifier and a set of typed
columns. The payload is the source of truth; the columns are a projection
used only for filtering and sorting.

An aggregate's history is a sequence of `Event` and `Snapshot` records.
Both are immutable once written.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any


def _ensure_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class Record:
    """A stored record.

    Attributes:
        id: Unique identifier of the record within its kind.
        payload: Serialized record contents.
        columns: Typed projection of the payload, keyed by column name.
    """

    id: str
    payload: bytes
    columns: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id must be non-empty.")
        if not isinstance(self.payload, (bytes, bytearray, memoryview)):
            raise TypeError("payload must be bytes.")
        object.__setattr__(self, "payload", bytes(self.payload))
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))

    @classmethod
    def from_payload(
        cls, payload: bytes, columns: Mapping[str, Any] | None = None
    ) -> Record:
        """Build a record whose id is derived from its payload (SHA-256 hex digest)."""
        return cls(
            id=hashlib.sha256(bytes(payload)).hexdigest(),
            payload=payload,
            columns=columns or {},
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return (
            self.id == other.id
            and self.payload == other.payload
            and dict(self.columns) == dict(other.columns)
        )

    def __hash__(self) -> int:
        return hash((self.id, self.payload))


@dataclass(frozen=True, slots=True)
class Event:
    """A single event in an aggregate's history."""

    id: str
    version: int
    timestamp: datetime
    payload: bytes

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id must be non-empty.")
        if self.version < 1:
            raise ValueError("version must be >= 1")
        object.__setattr__(self, "timestamp", _ensure_utc(self.timestamp))
        object.__setattr__(self, "payload", bytes(self.payload))


@dataclass(frozen=True, slots=True)
class Snapshot:
    """The state of an aggregate at a given version."""

    version: int
    timestamp: datetime
    payload: bytes

    def __post_init__(self) -> None:
        if self.version < 1:
            raise ValueError("version must be >= 1")
        object.__setattr__(self, "timestamp", _ensure_utc(self.timestamp))
        object.__setattr__(self, "payload", bytes(self.payload))


AggregateEventRecord = Event | Snapshot


@dataclass(frozen=True, slots=True)
class LifecycleFlags:
    """Lifecycle status of an aggregate. Absent flags mean both are False."""

    archived: bool = False
    deleted: bool = False

    @property
    def any_set(self) -> bool:
        return self.archived or self.deleted
