"""Resolution of tenants to namespaces and back.

In single-tenant mode every operation uses one constant namespace. In
multitenant mode the namespace is derived from the ambient tenant (see
`cirrus.tenant.context`) at call time, unless a tenant is passed explicitly.
"""

from __future__ import annotations

import logging

from cirrus.interfaces.errors import ConfigurationError, NamespaceNotFoundError
from cirrus.tenant.context import current_tenant
from cirrus.tenant.converters import NamespaceConverter, default_converter
from cirrus.tenant.index import NamespaceIndex
from cirrus.tenant.namespace import DEFAULT, Namespace, unescape
from cirrus.tenant.tenant_id import TenantId

logger = logging.getLogger(__name__)


class NamespaceResolver:
    """Map tenants to namespaces using a `NamespaceConverter`.

    Resolved namespaces are memoized for the life of the resolver.

    Args:
        multitenant: Whether namespaces come from the ambient tenant.
        converter: Converter to use; defaults to the built-in one for the mode.
        namespace: Constant namespace name used in single-tenant mode.
        index: Namespace index used by `validate`.
    """

    def __init__(
        self,
        multitenant: bool = False,
        converter: NamespaceConverter | None = None,
        namespace: str = "",
        index: NamespaceIndex | None = None,
    ):
        self.multitenant = multitenant
        self.converter = converter or default_converter(multitenant)
        self.namespace_name = namespace
        self._index = index
        self._resolved: dict[TenantId, Namespace] = {}
        self._single: Namespace | None = None

    def bound_to(self, index: NamespaceIndex) -> NamespaceResolver:
        """Return a resolver with the same configuration which validates against ``index``."""
        return NamespaceResolver(
            multitenant=self.multitenant,
            converter=self.converter,
            namespace=self.namespace_name,
            index=index,
        )

    # ----------------------------------------------------------------------- #
    # Resolution
    # ----------------------------------------------------------------------- #

    def resolve(self, tenant: TenantId | None = None) -> Namespace:
        """Return the namespace for ``tenant`` (or the ambient tenant).

        Raises:
            TenantContextError: in multitenant mode, if no tenant is given or set.
        """
        if not self.multitenant:
            return self._single_namespace()
        tenant = tenant or current_tenant()
        if (namespace := self._resolved.get(tenant)) is not None:
            return namespace
        namespace = Namespace.of(self.converter.encode(tenant))
        logger.debug("Tenant %s resolved to namespace '%s'", tenant, namespace)
        return self._resolved.setdefault(tenant, namespace)

    def _single_namespace(self) -> Namespace:
        if self._single is None:
            if self.namespace_name:
                self._single = Namespace.of(
                    self.converter.encode(TenantId.of(self.namespace_name))
                )
            else:
                self._single = DEFAULT
        return self._single

    def restore(self, namespace: Namespace) -> TenantId | None:
        """Return the tenant a namespace belongs to, or None if it is not a tenant namespace.

        Raises:
            ConfigurationError: if the namespace carries an unknown tenant type prefix.
        """
        return self.converter.decode(unescape(namespace.value))

    # ----------------------------------------------------------------------- #
    # Validation
    # ----------------------------------------------------------------------- #

    def validate(self, namespace: Namespace) -> bool:
        """Whether ``namespace`` exists in the store.

        Raises:
            ConfigurationError: if the resolver is not bound to a namespace index.
        """
        if namespace.is_default:
            return True
        if self._index is None:
            raise ConfigurationError(
                "Namespace validation requires a resolver bound to a namespace index."
            )
        return self._index.contains(namespace)

    def check_exists(self, namespace: Namespace) -> None:
        """Like `validate`, but raise instead of returning False.

        Raises:
            NamespaceNotFoundError: if the namespace does not exist.
        """
        if not self.validate(namespace):
            raise NamespaceNotFoundError(namespace.value)
