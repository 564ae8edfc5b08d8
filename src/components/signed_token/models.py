"""
Signed token component models.

A form token carries the time the form was rendered plus an HMAC over that
time, so the server can tell how long the visitor spent on the form without
storing anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_MIN_ELAPSED_SECONDS = 3
DEFAULT_MAX_AGE_SECONDS = 86400


class TokenFailure(Enum):
    """Why a token was rejected. Internal only; never shown to submitters."""

    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    FUTURE_TIMESTAMP = "future_timestamp"
    EXPIRED = "expired"
    TOO_FAST = "too_fast"


# --- Input Models ---


@dataclass(frozen=True)
class IssueTokenInput:
    """Input for issuing a token."""

    now: int  # unix seconds


@dataclass(frozen=True)
class VerifyTokenInput:
    """Input for verifying a token."""

    token: str
    now: int  # unix seconds
    min_elapsed_seconds: int = DEFAULT_MIN_ELAPSED_SECONDS
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS


# --- Output Models ---


@dataclass(frozen=True)
class IssueTokenOutput:
    token: str
    issued_at: int


@dataclass(frozen=True)
class VerifyTokenOutput:
    """Verification result. reason is set only when is_valid is False."""

    is_valid: bool
    reason: TokenFailure | None = None
    issued_at: int | None = None
    elapsed_seconds: int | None = None


class ConfigurationError(Exception):
    """Token signing is misconfigured (e.g. empty secret)."""
