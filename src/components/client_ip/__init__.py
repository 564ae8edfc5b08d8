"""
Client IP component.

Trusted-proxy aware client address resolution.
"""

from src.components.client_ip.component import (
    ProxyResolver,
    cidr_contains,
    extract_first_valid_ip,
    ip_matches_rule,
    ip_to_bytes,
    is_trusted_proxy,
    is_valid_ip,
    parse_trusted_proxies,
    parse_trusted_proxy,
    resolve_client_ip,
)
from src.components.client_ip.models import (
    DEFAULT_FORWARDED_HEADERS,
    UNKNOWN_CLIENT_IP,
    ResolveInput,
    ResolveOutput,
    TrustedProxyRule,
)

__all__ = [
    "ProxyResolver",
    # Pure functions
    "cidr_contains",
    "extract_first_valid_ip",
    "ip_matches_rule",
    "ip_to_bytes",
    "is_trusted_proxy",
    "is_valid_ip",
    "parse_trusted_proxies",
    "parse_trusted_proxy",
    "resolve_client_ip",
    # Constants
    "DEFAULT_FORWARDED_HEADERS",
    "UNKNOWN_CLIENT_IP",
    # Models
    "ResolveInput",
    "ResolveOutput",
    "TrustedProxyRule",
]
