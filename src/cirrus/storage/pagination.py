"""Sequential iteration over paged query results.

Document stores return query results one page at a time together with a
cursor. These helpers follow the cursors until the scan is exhausted or the
requested number of entities has been produced. Round-trips are strictly
sequential.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from cirrus.interfaces.document_store import Entity, Query, QueryResults

logger = logging.getLogger(__name__)

Runner = Callable[[Query], QueryResults]


def iterate_query(run: Runner, query: Query) -> Iterator[Entity]:
    """Yield every entity matched by ``query``, at most ``query.limit`` in total."""
    total = query.limit
    emitted = 0
    current = query
    while True:
        if total is not None:
            remaining = total - emitted
            if remaining <= 0:
                return
            current = current.with_limit(remaining)
        page = run(current)
        for entity in page.entities:
            emitted += 1
            yield entity
        if not page.more_results or not page.entities:
            return
        logger.debug("Continuing %s query after %d entities", query.kind, emitted)
        current = current.with_cursor(page.cursor_after)


def iterate_pages(run: Runner, query: Query, batch_size: int) -> Iterator[list[Entity]]:
    """Iterate over the results of ``query`` in pages of at most ``batch_size`` entities.

    Raises:
        ValueError: if ``batch_size`` is less than 1.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return _pages(run, query.with_limit(batch_size))


def _pages(run: Runner, current: Query) -> Iterator[list[Entity]]:
    while True:
        page = run(current)
        if page.entities:
            yield list(page.entities)
        if not page.more_results or not page.entities:
            return
        current = current.with_cursor(page.cursor_after)
