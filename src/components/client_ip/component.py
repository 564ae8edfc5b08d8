"""
Client IP component (ProxyResolver).

Determines the real client address of a request.

Key behaviors:
- Default answer is the transport peer address
- Forwarding headers are honored only when the peer is a trusted proxy
- Headers are scanned in a fixed priority order; first valid IP wins
- Trusted proxies are exact addresses or CIDR subnets (IPv4 and IPv6)

Invariants:
- Malformed rules, prefixes or header values never match and never raise
- Address families never cross-match
"""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Iterable, Mapping, Sequence

from .models import (
    DEFAULT_FORWARDED_HEADERS,
    UNKNOWN_CLIENT_IP,
    ResolveInput,
    ResolveOutput,
    TrustedProxyRule,
)

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def ip_to_bytes(value: str) -> bytes | None:
    """Packed address bytes, or None when value is not a valid IP."""
    try:
        return ipaddress.ip_address(value.strip()).packed
    except (ValueError, AttributeError):
        return None


def is_valid_ip(value: str) -> bool:
    return ip_to_bytes(value) is not None


def extract_first_valid_ip(value: str | None) -> str:
    """
    First syntactically valid IP in a comma-separated header value.

    Returns empty string if none.
    """
    if not value:
        return ""
    for candidate in value.split(","):
        candidate = candidate.strip()
        if candidate and is_valid_ip(candidate):
            return candidate
    return ""


def parse_trusted_proxy(value: str) -> TrustedProxyRule | None:
    """
    Parse "address" or "address/prefix" into a rule.

    Returns None for malformed entries so they can never match anything.
    """
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None

    if "/" not in value:
        packed = ip_to_bytes(value)
        if packed is None:
            return None
        return TrustedProxyRule(source=value, address=packed)

    subnet, prefix_str = value.split("/", 1)
    packed = ip_to_bytes(subnet)
    if packed is None:
        return None
    try:
        prefix_length = int(prefix_str.strip())
    except ValueError:
        return None
    if prefix_length < 0 or prefix_length > len(packed) * 8:
        return None
    return TrustedProxyRule(source=value, address=packed, prefix_length=prefix_length)


def parse_trusted_proxies(values: Iterable[str]) -> list[TrustedProxyRule]:
    rules: list[TrustedProxyRule] = []
    for value in values:
        rule = parse_trusted_proxy(value)
        if rule is None:
            logger.warning("Ignoring malformed trusted proxy entry: %r", value)
            continue
        rules.append(rule)
    return rules


def cidr_contains(address: bytes, subnet: bytes, prefix_length: int) -> bool:
    """
    Byte-wise CIDR containment.

    Compares prefix_length // 8 whole bytes, then the leading bits of the next
    byte under mask 0xFF << (8 - remainder).
    """
    if len(address) != len(subnet):
        return False
    if prefix_length < 0 or prefix_length > len(address) * 8:
        return False

    full_bytes, extra_bits = divmod(prefix_length, 8)
    if address[:full_bytes] != subnet[:full_bytes]:
        return False
    if extra_bits == 0:
        return True

    mask = (0xFF << (8 - extra_bits)) & 0xFF
    return (address[full_bytes] & mask) == (subnet[full_bytes] & mask)


def ip_matches_rule(ip: str, rule: TrustedProxyRule) -> bool:
    packed = ip_to_bytes(ip)
    if packed is None:
        return False
    if rule.prefix_length is None:
        return packed == rule.address
    return cidr_contains(packed, rule.address, rule.prefix_length)


def is_trusted_proxy(ip: str, rules: Sequence[TrustedProxyRule]) -> bool:
    return any(ip_matches_rule(ip, rule) for rule in rules)


def resolve_client_ip(
    direct_address: str,
    forwarded_values: Sequence[str | None],
    trusted_rules: Sequence[TrustedProxyRule],
) -> str:
    """
    Resolve the client address.

    Args:
        direct_address: Transport-layer peer address
        forwarded_values: Raw forwarding header values in priority order
        trusted_rules: Parsed trusted proxy allowlist

    Returns:
        Best client address; 0.0.0.0 if even the peer address is invalid
    """
    remote = extract_first_valid_ip(direct_address)
    client_ip = remote

    if remote and is_trusted_proxy(remote, trusted_rules):
        for value in forwarded_values:
            forwarded_ip = extract_first_valid_ip(value)
            if forwarded_ip:
                client_ip = forwarded_ip
                break

    return client_ip or UNKNOWN_CLIENT_IP


def _header_lookup(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


# --- Resolver (Orchestration Layer) ---


class ProxyResolver:
    """Holds the parsed allowlist and header priority for the process."""

    def __init__(
        self,
        trusted_proxies: Iterable[str] = (),
        forwarded_headers: Sequence[str] = DEFAULT_FORWARDED_HEADERS,
    ) -> None:
        self.rules = parse_trusted_proxies(trusted_proxies)
        self.forwarded_headers = tuple(forwarded_headers)

    def resolve(self, direct_address: str, headers: Mapping[str, str]) -> str:
        return self.run(ResolveInput(direct_address=direct_address, headers=dict(headers))).client_ip

    def run(self, inp: ResolveInput) -> ResolveOutput:
        remote = extract_first_valid_ip(inp.direct_address)
        if remote and is_trusted_proxy(remote, self.rules):
            for name in self.forwarded_headers:
                forwarded_ip = extract_first_valid_ip(_header_lookup(inp.headers, name))
                if forwarded_ip:
                    return ResolveOutput(client_ip=forwarded_ip, via_proxy=True, header=name)

        return ResolveOutput(client_ip=remote or UNKNOWN_CLIENT_IP)
