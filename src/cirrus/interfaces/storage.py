"""Record and aggregate storage interfaces.

These are the storage SPI consumed by the event-sourcing framework. Both
storages resolve their namespace at call time, return None for missing
data, and raise `cirrus.interfaces.errors.StorageError` subclasses on faults.
"""

from __future__ import annotations

import abc
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cirrus.domain.query import RecordQuery
    from cirrus.domain.records import AggregateEventRecord, LifecycleFlags, Record


class Closeable(abc.ABC):
    """Storage lifecycle."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the storage. Any later operation raises `StorageClosedError`."""

    @property
    @abc.abstractmethod
    def is_closed(self) -> bool: ...

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class RecordStorage(Closeable):
    """Keyed CRUD over records of one kind."""

    @abc.abstractmethod
    def read(self, record_id: str) -> Record | None:
        """Return the record stored under ``record_id``, or None."""

    @abc.abstractmethod
    def read_all(self, record_ids: Iterable[str]) -> list[Record | None]:
        """Return one slot per id, in the order of ``record_ids``; None for misses."""

    @abc.abstractmethod
    def write(self, record_id: str | Record, record: Record | None = None) -> None:
        """Create or overwrite ``record`` under ``record_id``.

        ``write(record)`` is shorthand for ``write(record.id, record)``.
        """

    @abc.abstractmethod
    def write_all(self, records: Iterable[Record]) -> None:
        """Create or overwrite several records."""

    @abc.abstractmethod
    def delete(self, record_id: str) -> bool:
        """Delete a record. Always returns True."""

    @abc.abstractmethod
    def delete_all(self, record_ids: Iterable[str]) -> bool:
        """Delete several records. Always returns True."""

    @abc.abstractmethod
    def index(self, query: RecordQuery | None = None) -> Iterator[str]:
        """Ids of all records, or of the records matching ``query``."""

    @abc.abstractmethod
    def read_all_records(self, query: RecordQuery | None = None) -> Iterator[Record]:
        """Records matching ``query`` (all records when omitted)."""


class AggregateStorage(Closeable):
    """Append-only event and snapshot log of the aggregates of one kind."""

    @abc.abstractmethod
    def write_record(self, aggregate_id: str, record: AggregateEventRecord) -> None:
        """Append an event or store a snapshot."""

    @abc.abstractmethod
    def history_backward(
        self, aggregate_id: str, batch_size: int
    ) -> Iterator[AggregateEventRecord]:
        """Events and snapshots from newest to oldest, fetched ``batch_size`` at a time.

        Raises:
            ValueError: if ``batch_size`` is less than 1.
        """

    @abc.abstractmethod
    def read_event_count_after_last_snapshot(self, aggregate_id: str) -> int: ...

    @abc.abstractmethod
    def write_event_count_after_last_snapshot(
        self, aggregate_id: str, count: int
    ) -> None: ...

    @abc.abstractmethod
    def read_lifecycle_flags(self, aggregate_id: str) -> LifecycleFlags | None:
        """Return the flags, or None unless at least one flag is set."""

    @abc.abstractmethod
    def write_lifecycle_flags(self, aggregate_id: str, flags: LifecycleFlags) -> None: ...

    @abc.abstractmethod
    def index(self) -> Iterator[str]:
        """Distinct ids of the aggregates with at least one stored record."""
