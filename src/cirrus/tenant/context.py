"""Ambient tenant for the current execution context.

Multitenant storages resolve their namespace from the tenant set here at
call time::

    with tenant_scope(TenantId.email("owner@example.com")):
        storage.write(record)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from cirrus.interfaces.errors import TenantContextError
from cirrus.tenant.tenant_id import TenantId

_current: ContextVar[TenantId | None] = ContextVar("cirrus_tenant", default=None)


@contextmanager
def tenant_scope(tenant: TenantId) -> Iterator[TenantId]:
    """Make ``tenant`` the ambient tenant for the duration of the block."""
    token = _current.set(tenant)
    try:
        yield tenant
    finally:
        _current.reset(token)


def current_tenant() -> TenantId:
    """Return the ambient tenant.

    Raises:
        TenantContextError: if no tenant scope is active.
    """
    if (tenant := _current.get()) is None:
        raise TenantContextError(
            "No tenant is set for the current context in multitenant mode."
        )
    return tenant
