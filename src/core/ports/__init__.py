# listing-intake: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailPort,
    EmailResult,
    EmailStatus,
)
from src.core.ports.time import TimePort, unix_seconds
from src.core.ports.ttl_store import TTLStorePort

__all__ = [
    # Email
    "EmailPort",
    "EmailResult",
    "EmailStatus",
    # Time
    "TimePort",
    "unix_seconds",
    # TTL store
    "TTLStorePort",
]
