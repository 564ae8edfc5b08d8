"""
Client IP component models.

Trusted proxy rules are parsed once from operator configuration and never
change for the life of the process.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_FORWARDED_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)

UNKNOWN_CLIENT_IP = "0.0.0.0"


@dataclass(frozen=True)
class TrustedProxyRule:
    """
    A trusted proxy: a single address, or a subnet when prefix_length is set.

    address is the packed form (4 bytes for IPv4, 16 for IPv6).
    """

    source: str
    address: bytes
    prefix_length: int | None = None

    @property
    def is_cidr(self) -> bool:
        return self.prefix_length is not None


@dataclass(frozen=True)
class ResolveInput:
    """Input for client address resolution."""

    direct_address: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolveOutput:
    client_ip: str
    via_proxy: bool = False
    header: str | None = None  # header that supplied the address
