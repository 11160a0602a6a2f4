"""Tenants and the mapping between tenants and physical namespaces."""

from cirrus.tenant.context import current_tenant, tenant_scope
from cirrus.tenant.converters import NamespaceConverter, default_converter, prefixed
from cirrus.tenant.index import NamespaceIndex
from cirrus.tenant.namespace import Namespace
from cirrus.tenant.resolver import NamespaceResolver
from cirrus.tenant.tenant_id import TenantId, TenantKind

__all__ = [
    "Namespace",
    "NamespaceConverter",
    "NamespaceIndex",
    "NamespaceResolver",
    "TenantId",
    "TenantKind",
    "current_tenant",
    "default_converter",
    "prefixed",
    "tenant_scope",
]
