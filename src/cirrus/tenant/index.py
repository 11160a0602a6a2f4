"""Index of namespaces observed in the document store."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from cirrus.tenant.namespace import Namespace
from cirrus.tenant.tenant_id import TenantId

logger = logging.getLogger(__name__)


class NamespaceIndex:
    """Append-only cache of the namespaces known to exist in the store.

    - The default namespace always exists.
    - A lookup miss triggers exactly one refresh from the store; a second
      miss is final for that lookup.
    - Namespaces written by this process are recorded with `keep` without a
      round-trip.
    - Entries are never evicted.

    Args:
        fetch: Returns the namespaces currently present in the store.
        restore: Maps a namespace back to a tenant, or None for non-tenant namespaces.
    """

    def __init__(
        self,
        fetch: Callable[[], Iterable[str]],
        restore: Callable[[Namespace], TenantId | None],
    ):
        self._fetch = fetch
        self._restore = restore
        self._known: dict[str, Namespace] = {}
        self._lock = threading.Lock()

    def keep(self, namespace: Namespace) -> None:
        """Record a namespace as existing."""
        if not namespace.is_default:
            self._known.setdefault(namespace.value, namespace)

    def contains(self, namespace: Namespace) -> bool:
        if namespace.is_default or namespace.value in self._known:
            return True
        self.refresh()
        return namespace.value in self._known

    def refresh(self) -> None:
        """Pull the namespaces currently present in the store."""
        with self._lock:
            fetched = 0
            for value in self._fetch():
                if value:
                    self._known.setdefault(value, Namespace(value))
                    fetched += 1
        logger.debug("Namespace index refreshed: %d namespace(s) in store", fetched)

    def all(self) -> frozenset[Namespace]:
        """Every known namespace, after a refresh. Excludes the default namespace."""
        self.refresh()
        return frozenset(self._known.values())

    def all_tenants(self) -> set[TenantId]:
        """Tenants of every known namespace; namespaces which are not tenants are skipped."""
        tenants: set[TenantId] = set()
        for namespace in self.all():
            if (tenant := self._restore(namespace)) is not None:
                tenants.add(tenant)
        return tenants

    def __len__(self) -> int:
        return len(self._known)
