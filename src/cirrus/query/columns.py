"""Conversion of record column values into native document store values.

The store understands a small set of native types: `str`, `int` (64-bit),
`float`, `bool`, `bytes`, UTC `datetime` and `None`. `ColumnMapping` turns
any supported Python value into one of those before it is stored or used in
a filter.

Lookup order for a value type:

1. an exact entry (custom entries given at construction win);
2. `Enum` subclasses map to the member's ordinal;
3. dataclasses map to canonical JSON text;
4. the nearest registered base class along the MRO.

Types that resolve to nothing raise `UnmappedColumnTypeError`.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from cirrus.interfaces.errors import UnmappedColumnTypeError

Converter = Callable[[Any], Any]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


@dataclass(frozen=True, slots=True)
class TypeMapping:
    """How values of one type become native store values."""

    value_type: type
    convert: Converter

    def apply(self, value: Any) -> Any:
        return self.convert(value)


# --------------------------------------------------------------------------- #
# Built-in conversions
# --------------------------------------------------------------------------- #


def _identity(value: Any) -> Any:
    return value


def _to_int64(value: int) -> int:
    value = int(value)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"Integer {value} does not fit a 64-bit column.")
    return value


def _to_bytes(value: bytes | bytearray | memoryview) -> bytes:
    return bytes(value)


def _to_ordinal(value: Enum) -> int:
    return list(type(value)).index(value)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_json(value: Any) -> str:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _to_none(_: None) -> None:
    return None


DEFAULT_CONVERTERS: Mapping[type, Converter] = {
    str: _identity,
    bool: bool,
    int: _to_int64,
    float: float,
    bytes: _to_bytes,
    bytearray: _to_bytes,
    memoryview: _to_bytes,
    Enum: _to_ordinal,
    dict: _to_json,
    datetime: _to_utc,
    type(None): _to_none,
}


class ColumnMapping:
    """Registry of column type mappings.

    Args:
        custom: Extra ``type -> converter`` entries; they override the defaults,
            also for subclasses of a registered type.
    """

    def __init__(self, custom: Mapping[type, Converter] | None = None):
        self._converters: dict[type, Converter] = dict(DEFAULT_CONVERTERS)
        self._custom: dict[type, Converter] = dict(custom or {})
        self._converters.update(self._custom)
        self._resolved: dict[type, TypeMapping] = {}

    def of(self, value_type: type) -> TypeMapping:
        """Return the mapping for ``value_type``.

        Raises:
            UnmappedColumnTypeError: if no registered type covers ``value_type``.
        """
        if (mapping := self._resolved.get(value_type)) is not None:
            return mapping
        converter = self._lookup(value_type)
        if converter is None:
            raise UnmappedColumnTypeError(value_type)
        return self._resolved.setdefault(value_type, TypeMapping(value_type, converter))

    def _lookup(self, value_type: type) -> Converter | None:
        if value_type in self._converters:
            return self._converters[value_type]
        for base in value_type.__mro__[1:]:
            if base in self._custom:
                return self._custom[base]
        if issubclass(value_type, Enum):
            return self._converters.get(Enum)
        if dataclasses.is_dataclass(value_type):
            return _to_json
        for base in value_type.__mro__[1:]:
            if base in self._converters:
                return self._converters[base]
        return None

    def apply(self, value: Any) -> Any:
        """Convert ``value`` to its native store representation."""
        return self.of(type(value)).apply(value)

    def apply_all(self, columns: Mapping[str, Any]) -> dict[str, Any]:
        return {name: self.apply(value) for name, value in columns.items()}
