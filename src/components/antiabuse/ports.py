"""
Anti-abuse gate ports.
"""

from __future__ import annotations

from typing import Protocol

from src.components.antiabuse.models import SpamEvent


class SpamAuditSinkPort(Protocol):
    """Receives one event per rejected submission."""

    def emit_spam_event(self, event: SpamEvent) -> None:
        ...
