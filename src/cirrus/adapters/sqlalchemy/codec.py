"""JSON encoding of native entity properties.

JSON has no bytes or datetime type, so such values are stored as single-key
tagged objects: ``{"$bytes": "<base64>"}`` and ``{"$datetime": "<ISO-8601>"}``.
Native property values are never JSON objects themselves, which keeps the
tagging unambiguous.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from cirrus.adapters.db.sa_types import as_utc
from cirrus.interfaces.document_store import InvalidRequestError

BYTES_TAG = "$bytes"
DATETIME_TAG = "$datetime"


def encode_value(value: Any) -> Any:
    match value:
        case None | bool() | int() | float() | str():
            return value
        case bytes():
            return {BYTES_TAG: base64.b64encode(value).decode("ascii")}
        case datetime():
            return {DATETIME_TAG: as_utc(value).isoformat()}
    raise InvalidRequestError(
        f"Property value of type '{type(value).__name__}' is not a native value."
    )


def decode_value(value: Any) -> Any:
    if isinstance(value, dict) and len(value) == 1:
        if BYTES_TAG in value:
            return base64.b64decode(value[BYTES_TAG])
        if DATETIME_TAG in value:
            return datetime.fromisoformat(value[DATETIME_TAG])
    return value


def encode_properties(properties: Mapping[str, Any]) -> dict[str, Any]:
    return {name: encode_value(v) for name, v in properties.items()}


def decode_properties(stored: Mapping[str, Any] | None) -> dict[str, Any]:
    return {name: decode_value(v) for name, v in (stored or {}).items()}
