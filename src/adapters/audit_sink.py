"""
Logging spam audit sink.

Writes one structured line per rejected submission to the "intake.audit"
logger and keeps the events in memory for inspection.
"""

from __future__ import annotations

import logging
from collections import deque

from src.components.antiabuse import SpamEvent

audit_logger = logging.getLogger("intake.audit")


class LoggingAuditSink:
    """Implements SpamAuditSinkPort."""

    def __init__(self, max_events: int = 1000) -> None:
        self.events: deque[SpamEvent] = deque(maxlen=max_events)

    def emit_spam_event(self, event: SpamEvent) -> None:
        self.events.append(event)
        audit_logger.warning(
            "spam_blocked stage=%s reason=%s identifier=%s ip=%s user=%s at=%s",
            event.stage.value,
            event.reason,
            event.identifier,
            event.client_ip,
            event.user_id,
            event.timestamp.isoformat(),
        )

    def recent(self, limit: int = 50) -> list[SpamEvent]:
        """Most recent events, newest first."""
        return list(reversed(self.events))[:limit]
