"""
In-memory TTL store.

Process-local implementation of TTLStorePort. A single lock guards every
operation, so increment_with_ttl is atomic for concurrent request threads.
Writes sweep out expired entries at most once per sweep interval, so keys
that are never read again do not pile up.
Multi-process deployments need a shared backend with the same contract.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Any

from src.adapters.clock import SystemClock
from src.core.ports.time import TimePort


@dataclass
class _Entry:
    value: Any
    expires_at: datetime


class InMemoryTTLStore:
    """Dictionary-backed TTL store."""

    def __init__(
        self, time_port: TimePort | None = None, sweep_interval_seconds: int = 60
    ) -> None:
        self._time = time_port if time_port is not None else SystemClock()
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()
        self._sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._next_sweep: datetime | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _drop_expired(self, now: datetime) -> int:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _maybe_sweep(self, now: datetime) -> None:
        if self._next_sweep is not None and now < self._next_sweep:
            return
        if self._next_sweep is not None:
            self._drop_expired(now)
        self._next_sweep = now + self._sweep_interval

    def _live_entry(self, key: str, now: datetime) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> tuple[Any, int]:
        with self._lock:
            now = self._time.now_utc()
            entry = self._live_entry(key, now)
            if entry is None:
                return None, 0
            remaining = math.ceil((entry.expires_at - now).total_seconds())
            return entry.value, remaining

    def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            self.delete(key)
            return
        with self._lock:
            now = self._time.now_utc()
            self._maybe_sweep(now)
            expires_at = now + timedelta(seconds=ttl_seconds)
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    def increment_with_ttl(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            now = self._time.now_utc()
            self._maybe_sweep(now)
            entry = self._live_entry(key, now)
            if entry is None:
                self._entries[key] = _Entry(
                    value=1,
                    expires_at=now + timedelta(seconds=ttl_seconds),
                )
                return 1
            entry.value = int(entry.value or 0) + 1
            return int(entry.value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired entries. Returns number removed."""
        with self._lock:
            return self._drop_expired(self._time.now_utc())
