"""
Outbound mail port.

The submission notifier hands operators a plain text alert through this
interface. Delivery problems come back as a FAILED result so a broken mail
relay never turns an accepted listing into an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class EmailResult:
    """Outcome of one delivery attempt."""

    status: EmailStatus
    recipient: str
    message_id: str | None = None
    error: str | None = None

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(status=EmailStatus.FAILED, recipient=recipient, error=error)


class EmailPort(Protocol):
    def send_email(self, recipient: str, subject: str, body_text: str) -> EmailResult:
        """Deliver a plain text message. Must not raise for delivery failures."""
        ...
