"""Configuration for CIRRUS.

Settings are read from environment variables:

| Variable                      | Meaning                                          | Default   |
|-------------------------------|--------------------------------------------------|-----------|
| ``CIRRUS_DB_URL``             | SQLAlchemy URL of the SQL store; unset = memory  | unset     |
| ``CIRRUS_MULTITENANT``        | resolve namespaces from the ambient tenant       | ``false`` |
| ``CIRRUS_NAMESPACE``          | constant namespace in single-tenant mode         | ``""``    |
| ``CIRRUS_NAMESPACE_PREFIX``   | prefix shared by all namespaces of this app      | unset     |
| ``CIRRUS_NAMESPACE_CONVERTER``| name of the converter factory                    | ``default`` |
| ``CIRRUS_TX_ENABLED``         | run each storage operation in a transaction      | ``false`` |
| ``CIRRUS_LOG_LEVEL``          | console log level                                | ``WARNING`` |
| ``CIRRUS_LOGGER_LEVELS``      | ``NAME=LEVEL`` overrides, comma/space separated  | ``sqlalchemy=WARNING`` |
| ``CIRRUS_LOG_PATH``           | flight recorder file; unset disables it          | unset     |
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from cirrus.interfaces.errors import ConfigurationError
from cirrus.logging import DEFAULT_LIB_LEVELS, parse_level, parse_logger_levels

ENV_PREFIX = "CIRRUS_"  # pragma: no mutate

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def get_db_url(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the value of ``CIRRUS_DB_URL``, or None if unset or empty."""
    environ = os.environ if environ is None else environ
    if not (url := environ.get("CIRRUS_DB_URL")):
        return None
    return url


def parse_bool(name: str, value: str) -> bool:
    """Parse a boolean environment value.

    Raises:
        ConfigurationError: if the value is not a recognized boolean.
    """
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """CIRRUS runtime settings."""

    db_url: str | None = None
    multitenant: bool = False
    namespace: str = ""
    namespace_prefix: str | None = None
    namespace_converter: str = "default"
    tx_enabled: bool = False
    log_level: int = logging.WARNING
    logger_levels: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_LIB_LEVELS)
    )
    log_path: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ConfigurationError: if a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str = "") -> str:
            return env.get(ENV_PREFIX + name, default)

        log_path = get("LOG_PATH")
        return cls(
            db_url=get_db_url(env),
            multitenant=parse_bool("CIRRUS_MULTITENANT", get("MULTITENANT")),
            namespace=get("NAMESPACE"),
            namespace_prefix=get("NAMESPACE_PREFIX") or None,
            namespace_converter=get("NAMESPACE_CONVERTER") or "default",
            tx_enabled=parse_bool("CIRRUS_TX_ENABLED", get("TX_ENABLED")),
            log_level=parse_level(get("LOG_LEVEL") or "WARNING"),
            logger_levels=parse_logger_levels(get("LOGGER_LEVELS")),
            log_path=Path(log_path) if log_path else None,
        )
