"""Physical namespaces."""

from __future__ import annotations

from dataclasses import dataclass

AT_SIGN = "@"
AT_ESCAPE = "-at-"


@dataclass(frozen=True, slots=True)
class Namespace:
    """A namespace string as stored in the document store.

    The empty string is the store's default namespace.
    """

    value: str = ""

    @classmethod
    def of(cls, encoded: str) -> Namespace:
        """Build a namespace from an encoded tenant, escaping ``@``."""
        return cls(escape(encoded))

    @property
    def is_default(self) -> bool:
        return self.value == ""

    def unescaped(self) -> str:
        return unescape(self.value)

    def __str__(self) -> str:
        return self.value


DEFAULT = Namespace()


def escape(value: str) -> str:
    """Replace every ``@`` with ``-at-``."""
    return value.replace(AT_SIGN, AT_ESCAPE)


def unescape(value: str) -> str:
    """Reverse `escape`."""
    return value.replace(AT_ESCAPE, AT_SIGN)
