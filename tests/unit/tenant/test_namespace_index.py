"""Unit tests for `NamespaceIndex`."""

from __future__ import annotations

import pytest

from cirrus.tenant.converters import MULTITENANT, prefixed
from cirrus.tenant.index import NamespaceIndex
from cirrus.tenant.namespace import DEFAULT, Namespace, unescape
from cirrus.tenant.tenant_id import TenantId

# pylint: disable=redefined-outer-name


class CountingFetch:
    """Namespace source recording how often it is scanned."""

    def __init__(self, *namespaces: str):
        self.namespaces = list(namespaces)
        self.calls = 0

    def __call__(self) -> list[str]:
        self.calls += 1
        return list(self.namespaces)


@pytest.fixture
def fetch() -> CountingFetch:
    return CountingFetch("Vacme")


@pytest.fixture
def index(fetch: CountingFetch) -> NamespaceIndex:
    return NamespaceIndex(fetch, lambda ns: MULTITENANT.decode(unescape(ns.value)))


def test_default_namespace_needs_no_fetch(index: NamespaceIndex, fetch: CountingFetch):
    assert index.contains(DEFAULT)
    assert fetch.calls == 0


def test_miss_refreshes_once(index: NamespaceIndex, fetch: CountingFetch):
    assert index.contains(Namespace("Vacme"))
    assert fetch.calls == 1

    # cached now
    assert index.contains(Namespace("Vacme"))
    assert fetch.calls == 1


def test_second_miss_is_final(index: NamespaceIndex, fetch: CountingFetch):
    assert not index.contains(Namespace("Vnope"))
    assert fetch.calls == 1


def test_refresh_picks_up_new_namespaces(index: NamespaceIndex, fetch: CountingFetch):
    assert not index.contains(Namespace("Vlate"))
    fetch.namespaces.append("Vlate")
    assert index.contains(Namespace("Vlate"))


def test_keep_records_without_fetch(index: NamespaceIndex, fetch: CountingFetch):
    index.keep(Namespace("Vmine"))
    index.keep(DEFAULT)

    assert index.contains(Namespace("Vmine"))
    assert fetch.calls == 0
    assert len(index) == 1


def test_entries_are_never_evicted(index: NamespaceIndex, fetch: CountingFetch):
    index.refresh()
    fetch.namespaces.clear()
    index.refresh()
    assert Namespace("Vacme") in index.all()


def test_all_excludes_default_and_empty(fetch: CountingFetch, index: NamespaceIndex):
    fetch.namespaces.extend(["", "Vother"])
    assert index.all() == frozenset({Namespace("Vacme"), Namespace("Vother")})


def test_all_tenants_restores_and_skips_non_tenants():
    converter = prefixed("app", MULTITENANT)
    index = NamespaceIndex(
        lambda: ["app.Vacme", "app.Etenant-at-example.com", "foreign.Vx"],
        lambda ns: converter.decode(unescape(ns.value)),
    )
    assert index.all_tenants() == {
        TenantId.of("acme"),
        TenantId.email("tenant@example.com"),
    }
