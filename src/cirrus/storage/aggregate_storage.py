"""Aggregate event storage on top of a document store.

Layout, for an aggregate kind ``K``:

- kind ``K``: one entity per event, named after the event id, plus one
  snapshot entity per aggregate named ``"SNAPSHOT" + aggregate_id`` (a newer
  snapshot overwrites the previous one). Every entity carries the
  ``aggregate_id``, ``created``, ``version`` and ``snapshot`` properties used
  to filter and order the history.
- kind ``K.EventCount``: the number of events since the last snapshot, named
  ``"EVENTS_AFTER_SNAPSHOT_" + aggregate_id``.
- kind ``K.LifecycleFlags``: the ``archived``/``deleted`` flags, with the same
  naming.

History is read newest first: by version, then creation time, with a
snapshot placed before an event of the same version and time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from cirrus.domain.records import AggregateEventRecord, Event, LifecycleFlags, Snapshot
from cirrus.interfaces.document_store import Entity, OrderBy, Query, eq
from cirrus.interfaces.storage import AggregateStorage
from cirrus.storage.base import AbstractDocumentStorage

if TYPE_CHECKING:
    from cirrus.storage.kinds import Kind
    from cirrus.storage.wrapper import DocumentStoreWrapper

logger = logging.getLogger(__name__)

SNAPSHOT_KEY_PREFIX = "SNAPSHOT"
EVENTS_AFTER_SNAPSHOT_PREFIX = "EVENTS_AFTER_SNAPSHOT_"
EVENT_COUNT_SUFFIX = "EventCount"
LIFECYCLE_FLAGS_SUFFIX = "LifecycleFlags"

AGGREGATE_ID = "aggregate_id"
CREATED = "created"
VERSION = "version"
SNAPSHOT = "snapshot"
EVENT_ID = "event_id"
PAYLOAD = "payload"
COUNT = "count"
ARCHIVED = "archived"
DELETED = "deleted"

HISTORY_ORDER = (OrderBy.desc(VERSION), OrderBy.desc(CREATED), OrderBy.desc(SNAPSHOT))


class DocumentAggregateStorage(AbstractDocumentStorage, AggregateStorage):
    """`AggregateStorage` backed by three document store kinds."""

    def __init__(
        self, wrapper: DocumentStoreWrapper, kind: Kind, tx_enabled: bool = False
    ):
        super().__init__(wrapper, kind, tx_enabled)
        self.event_count_kind = kind.child(EVENT_COUNT_SUFFIX)
        self.lifecycle_kind = kind.child(LIFECYCLE_FLAGS_SUFFIX)

    # --------------------------------------------------------------------- #
    # Mapping
    # --------------------------------------------------------------------- #

    @staticmethod
    def _properties(aggregate_id: str, record: AggregateEventRecord) -> dict:
        properties = {
            AGGREGATE_ID: aggregate_id,
            CREATED: record.timestamp,
            VERSION: record.version,
            SNAPSHOT: isinstance(record, Snapshot),
            PAYLOAD: record.payload,
        }
        if isinstance(record, Event):
            properties[EVENT_ID] = record.id
        return properties

    @staticmethod
    def _to_record(entity: Entity) -> AggregateEventRecord:
        props = entity.properties
        if props[SNAPSHOT]:
            return Snapshot(
                version=props[VERSION], timestamp=props[CREATED], payload=props[PAYLOAD]
            )
        return Event(
            id=props.get(EVENT_ID, entity.key.name),
            version=props[VERSION],
            timestamp=props[CREATED],
            payload=props[PAYLOAD],
        )

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def write_record(self, aggregate_id: str, record: AggregateEventRecord) -> None:
        match record:
            case Event():
                name = record.id
            case Snapshot():
                name = SNAPSHOT_KEY_PREFIX + aggregate_id
            case _:
                raise TypeError(f"Unsupported aggregate record: {record!r}")
        properties = self._properties(aggregate_id, record)
        logger.debug(
            "Writing %s v%d of aggregate '%s'",
            type(record).__name__,
            record.version,
            aggregate_id,
        )
        self._write(
            lambda target: target.create_or_update(
                Entity(target.key_for(self.kind, name), properties)
            )
        )

    def history_backward(
        self, aggregate_id: str, batch_size: int
    ) -> Iterator[AggregateEventRecord]:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._check_not_closed()
        query = Query(
            kind=self.kind.value,
            filter=eq(AGGREGATE_ID, aggregate_id),
            order_by=HISTORY_ORDER,
        )
        pages = self._wrapper.read_pages(query, batch_size)
        return (self._to_record(e) for page in pages for e in page)

    def read_event_count_after_last_snapshot(self, aggregate_id: str) -> int:
        entity = self._read(
            lambda target: target.read(
                target.key_for(self.event_count_kind, self._side_name(aggregate_id))
            )
        )
        return int(entity.get(COUNT, 0)) if entity is not None else 0

    def write_event_count_after_last_snapshot(self, aggregate_id: str, count: int) -> None:
        if count < 0:
            raise ValueError("count must be >= 0")
        self._write(
            lambda target: target.create_or_update(
                Entity(
                    target.key_for(self.event_count_kind, self._side_name(aggregate_id)),
                    {COUNT: count},
                )
            )
        )

    def read_lifecycle_flags(self, aggregate_id: str) -> LifecycleFlags | None:
        entity = self._read(
            lambda target: target.read(
                target.key_for(self.lifecycle_kind, self._side_name(aggregate_id))
            )
        )
        if entity is None:
            return None
        flags = LifecycleFlags(
            archived=bool(entity.get(ARCHIVED, False)),
            deleted=bool(entity.get(DELETED, False)),
        )
        return flags if flags.any_set else None

    def write_lifecycle_flags(self, aggregate_id: str, flags: LifecycleFlags) -> None:
        self._write(
            lambda target: target.create_or_update(
                Entity(
                    target.key_for(self.lifecycle_kind, self._side_name(aggregate_id)),
                    {ARCHIVED: flags.archived, DELETED: flags.deleted},
                )
            )
        )

    def index(self) -> Iterator[str]:
        query = Query(kind=self.kind.value)
        entities = self._read(lambda target: target.read_query(query))
        return self._distinct_ids(entities)

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    @staticmethod
    def _side_name(aggregate_id: str) -> str:
        return EVENTS_AFTER_SNAPSHOT_PREFIX + aggregate_id

    @staticmethod
    def _distinct_ids(entities: Iterator[Entity]) -> Iterator[str]:
        seen: set[str] = set()
        for entity in entities:
            aggregate_id = entity.get(AGGREGATE_ID)
            if aggregate_id is None or aggregate_id in seen:
                continue
            seen.add(aggregate_id)
            yield aggregate_id
