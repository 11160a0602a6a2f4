"""Tenant identifiers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TenantKind(str, Enum):
    """How a tenant is identified."""

    DOMAIN = "domain"
    EMAIL = "email"
    VALUE = "value"


@dataclass(frozen=True, slots=True)
class TenantId:
    """Identity of a tenant: an internet domain, an email address or a plain value."""

    kind: TenantKind
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("tenant value must be non-empty.")

    @classmethod
    def domain(cls, name: str) -> TenantId:
        return cls(TenantKind.DOMAIN, name)

    @classmethod
    def email(cls, address: str) -> TenantId:
        return cls(TenantKind.EMAIL, address)

    @classmethod
    def of(cls, value: str) -> TenantId:
        return cls(TenantKind.VALUE, value)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"
