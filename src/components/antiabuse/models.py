"""
Anti-abuse gate models.

Stage and reason are for logs and the audit trail only. Submitters always see
GENERIC_SPAM_MESSAGE so the rejection does not tell a bot which check fired.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from src.domain.submission import CallerIdentity, SubmissionRequest
from src.rules.models import SpamProtectionRules

GENERIC_SPAM_MESSAGE = "Submission failed. Please try again."


class SpamStage(Enum):
    HONEYPOT = "honeypot"
    TIMING = "timing"
    RATE_LIMIT = "rate_limit"
    CUSTOM = "custom"


# Extension points. A bypass predicate returning True skips every check.
# A spam check returns None to pass or a reason string to reject.
BypassPredicate = Callable[[SubmissionRequest, CallerIdentity], bool]
SpamCheck = Callable[[SubmissionRequest, CallerIdentity], "str | None"]


@dataclass(frozen=True)
class AntiAbuseConfig:
    """Gate settings, normally built from the spam_protection rules section."""

    honeypot_field: str = "website_url"
    require_token: bool = True
    min_elapsed_seconds: int = 3
    max_age_seconds: int = 86400

    @classmethod
    def from_rules(cls, rules: SpamProtectionRules) -> AntiAbuseConfig:
        return cls(
            honeypot_field=rules.honeypot_field,
            require_token=rules.require_token,
            min_elapsed_seconds=rules.min_elapsed_seconds,
            max_age_seconds=rules.max_age_seconds,
        )


@dataclass(frozen=True)
class SpamEvent:
    """Audit record for one rejected submission."""

    stage: SpamStage
    identifier: str
    timestamp: datetime
    client_ip: str
    user_id: int | None
    reason: str


# --- Input/Output ---


@dataclass(frozen=True)
class GateInput:
    request: SubmissionRequest
    identity: CallerIdentity


@dataclass(frozen=True)
class GateOutput:
    """
    Gate decision.

    stage and reason are set only when passed is False. bypassed is True when
    a bypass predicate short-circuited the checks.
    """

    passed: bool
    identifier: str
    stage: SpamStage | None = None
    reason: str | None = None
    message: str | None = None
    bypassed: bool = False
