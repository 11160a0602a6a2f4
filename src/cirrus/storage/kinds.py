"""Entity kinds and cached key factories."""

from __future__ import annotations

from dataclasses import dataclass

from cirrus.interfaces.document_store import NAMESPACE_KIND, RESERVED_KIND_PREFIX, Key
from cirrus.tenant.namespace import Namespace


@dataclass(frozen=True, slots=True)
class Kind:
    """Name of a group of entities of the same type.

    Names starting with ``__`` are reserved by the store; the only one
    accepted is the special namespace kind (see `Kind.namespace`).
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value.strip():
            raise ValueError("Kind must be non-empty.")
        if self.value.startswith(RESERVED_KIND_PREFIX) and self.value != NAMESPACE_KIND:
            raise ValueError(
                f"Kind '{self.value}' must not start with '{RESERVED_KIND_PREFIX}'."
            )

    @classmethod
    def of(cls, value: str | Kind) -> Kind:
        return value if isinstance(value, Kind) else cls(value)

    @classmethod
    def namespace(cls) -> Kind:
        return cls(NAMESPACE_KIND)

    def child(self, suffix: str) -> Kind:
        """Kind of a side table of this kind, e.g. ``Task.EventCount``."""
        return Kind(f"{self.value}.{suffix}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class KeyFactory:
    """Builds keys of one kind in one namespace."""

    kind: Kind
    namespace: Namespace

    def new_key(self, name: str) -> Key:
        return Key(self.namespace.value, self.kind.value, name)


class KeyFactories:
    """Insert-if-absent cache of key factories per kind and namespace."""

    def __init__(self):
        self._factories: dict[tuple[Kind, Namespace], KeyFactory] = {}

    def get(self, kind: Kind, namespace: Namespace) -> KeyFactory:
        if (factory := self._factories.get((kind, namespace))) is not None:
            return factory
        return self._factories.setdefault((kind, namespace), KeyFactory(kind, namespace))

    def __len__(self) -> int:
        return len(self._factories)
