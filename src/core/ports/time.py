"""
Time Adapter Interface.

All pipeline timestamps are UTC. Components take a TimePort so tests can
pin the clock instead of patching datetime.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Time source interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time (timezone-aware)."""
        ...


def unix_seconds(dt: datetime) -> int:
    """Whole unix seconds for a datetime."""
    return int(dt.timestamp())
