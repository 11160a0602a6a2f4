"""Reversible conversion between tenants and namespace strings.

A `NamespaceConverter` is a pair of functions plus an optional prefix:

- ``encode(tenant) -> str``
- ``decode(namespace) -> TenantId | None``; ``None`` means the string is not
  a tenant namespace (for example the default namespace, or a namespace
  owned by another application sharing the store).

Built-in converters tag each encoded tenant with a one-character type
prefix: ``D`` for domains, ``E`` for emails and ``V`` for plain values.
Converters are composed rather than subclassed; `prefixed` wraps any
converter so that several applications can share one store.

Converter factories take the ``multitenant`` flag and return a converter.
They are looked up by name from `CONVERTER_FACTORIES`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from cirrus.interfaces.errors import ConfigurationError
from cirrus.tenant.tenant_id import TenantId, TenantKind

Encoder = Callable[[TenantId], str]
Decoder = Callable[[str], "TenantId | None"]

PREFIX_SEPARATOR = "."

_KIND_TAGS: Mapping[TenantKind, str] = {
    TenantKind.DOMAIN: "D",
    TenantKind.EMAIL: "E",
    TenantKind.VALUE: "V",
}
_TAG_KINDS: Mapping[str, TenantKind] = {tag: kind for kind, tag in _KIND_TAGS.items()}


@dataclass(frozen=True, slots=True)
class NamespaceConverter:
    """Encode tenants to namespace strings and decode them back."""

    encode: Encoder
    decode: Decoder
    prefix: str | None = None


# --------------------------------------------------------------------------- #
# Built-in converters
# --------------------------------------------------------------------------- #


def _encode_tagged(tenant: TenantId) -> str:
    return _KIND_TAGS[tenant.kind] + tenant.value


def _decode_tagged(namespace: str) -> TenantId | None:
    if not namespace:
        return None
    tag, value = namespace[0], namespace[1:]
    if (kind := _TAG_KINDS.get(tag)) is None:
        raise ConfigurationError(
            f"Namespace '{namespace}' has an unknown tenant type prefix '{tag}'."
        )
    if not value:
        raise ConfigurationError(f"Namespace '{namespace}' has no tenant value.")
    return TenantId(kind, value)


def _encode_value(tenant: TenantId) -> str:
    return tenant.value


def _decode_value(namespace: str) -> TenantId | None:
    return TenantId.of(namespace) if namespace else None


MULTITENANT = NamespaceConverter(encode=_encode_tagged, decode=_decode_tagged)
SINGLE_TENANT = NamespaceConverter(encode=_encode_value, decode=_decode_value)


def default_converter(multitenant: bool) -> NamespaceConverter:
    """Return the built-in converter for the given tenancy mode."""
    return MULTITENANT if multitenant else SINGLE_TENANT


def prefixed(prefix: str, inner: NamespaceConverter) -> NamespaceConverter:
    """Wrap ``inner`` so that every namespace starts with ``prefix + "."``.

    Namespaces without the prefix decode to None and are thus ignored.
    """
    if not prefix:
        raise ConfigurationError("Namespace prefix must be non-empty.")
    head = prefix + PREFIX_SEPARATOR

    def encode(tenant: TenantId) -> str:
        return head + inner.encode(tenant)

    def decode(namespace: str) -> TenantId | None:
        if not namespace.startswith(head):
            return None
        return inner.decode(namespace[len(head) :])

    return NamespaceConverter(encode=encode, decode=decode, prefix=prefix)


# --------------------------------------------------------------------------- #
# Factories
# --------------------------------------------------------------------------- #

ConverterFactory = Callable[[bool], NamespaceConverter]

CONVERTER_FACTORIES: Mapping[str, ConverterFactory] = {
    "default": default_converter,
}


def prefixed_factory(
    prefix: str, delegate: ConverterFactory = default_converter
) -> ConverterFactory:
    """Return a factory producing ``prefixed(prefix, delegate(multitenant))``."""

    def factory(multitenant: bool) -> NamespaceConverter:
        return prefixed(prefix, delegate(multitenant))

    return factory


def converter_factory(name: str = "default", prefix: str | None = None) -> ConverterFactory:
    """Look up a converter factory by name, optionally prefixing its namespaces.

    Raises:
        ConfigurationError: if no factory is registered under ``name``.
    """
    try:
        factory = CONVERTER_FACTORIES[name]
    except KeyError as e:
        known = ", ".join(sorted(CONVERTER_FACTORIES))
        raise ConfigurationError(
            f"Unknown namespace converter '{name}'. Expected one of: {known}."
        ) from e
    return prefixed_factory(prefix, factory) if prefix else factory
