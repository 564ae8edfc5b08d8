"""
TTL Key-Value Store Interface.

Shared store with per-key expiry. Backs the submission rate limiter and the
short-lived per-user flash of the last failed submission.

Key requirements:
- Expired keys behave exactly like absent keys
- increment_with_ttl is atomic per key
- increment_with_ttl sets the TTL only when it creates the key (fixed window)
"""

from __future__ import annotations

from typing import Any, Protocol


class TTLStorePort(Protocol):
    """TTL key-value store interface."""

    def get(self, key: str) -> tuple[Any, int]:
        """
        Read a key.

        Returns:
            Tuple of (value, ttl_remaining_seconds); (None, 0) when absent or expired
        """
        ...

    def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Write a value that expires after ttl_seconds."""
        ...

    def increment_with_ttl(self, key: str, ttl_seconds: int) -> int:
        """
        Atomically increment an integer counter.

        Creates the key at 1 with a fresh TTL when absent or expired; an
        existing key keeps its original expiry.

        Returns:
            The new count
        """
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...
