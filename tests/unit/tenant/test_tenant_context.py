"""Unit tests for the ambient tenant context."""

from __future__ import annotations

import contextvars

import pytest

from cirrus.interfaces.errors import ConfigurationError, TenantContextError
from cirrus.tenant.context import current_tenant, tenant_scope
from cirrus.tenant.tenant_id import TenantId


def tenant_or_none() -> TenantId | None:
    try:
        return current_tenant()
    except TenantContextError:
        return None


def test_no_tenant_outside_scope():
    assert tenant_or_none() is None
    with pytest.raises(TenantContextError):
        current_tenant()


def test_tenant_context_error_is_a_configuration_error():
    assert issubclass(TenantContextError, ConfigurationError)


def test_scope_sets_and_restores():
    outer, inner = TenantId.of("outer"), TenantId.of("inner")
    with tenant_scope(outer):
        with tenant_scope(inner) as active:
            assert active == inner
            assert current_tenant() == inner
        assert current_tenant() == outer
    assert tenant_or_none() is None


def test_scope_is_restored_on_error():
    with pytest.raises(RuntimeError):
        with tenant_scope(TenantId.of("t")):
            raise RuntimeError("boom")
    assert tenant_or_none() is None


def test_scope_does_not_leak_into_other_contexts():
    with tenant_scope(TenantId.of("t")):
        other = contextvars.Context()
        assert other.run(tenant_or_none) is None
