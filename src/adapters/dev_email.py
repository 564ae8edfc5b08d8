"""
Logging mail adapter for development and tests.

Nothing leaves the process: each message is written to the log and kept in
an outbox list so tests can inspect what the notifier produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import EmailResult, EmailStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentEmail:
    id: str
    recipient: str
    subject: str
    body_text: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """EmailPort that records messages instead of delivering them."""

    outbox: list[SentEmail] = field(default_factory=list)
    log_body: bool = True
    body_preview_length: int = 100

    def send_email(self, recipient: str, subject: str, body_text: str) -> EmailResult:
        entry = SentEmail(
            id=f"dev-{uuid4().hex[:12]}",
            recipient=recipient,
            subject=subject,
            body_text=body_text,
            logged_at=datetime.now(UTC),
        )
        self.outbox.append(entry)
        logger.info(self._describe(entry))
        return EmailResult(
            status=EmailStatus.SKIPPED,
            recipient=recipient,
            message_id=entry.id,
            error="not delivered in dev mode",
        )

    def _describe(self, entry: SentEmail) -> str:
        line = f"Outgoing mail [{entry.id}] To={entry.recipient} Subject={entry.subject}"
        if not (self.log_body and entry.body_text):
            return line
        preview = entry.body_text[: self.body_preview_length]
        if len(entry.body_text) > self.body_preview_length:
            preview += "..."
        return f"{line} Body={preview}"

    def get_last_email(self) -> SentEmail | None:
        return self.outbox[-1] if self.outbox else None

    def clear(self) -> None:
        self.outbox.clear()

    @property
    def email_count(self) -> int:
        return len(self.outbox)
