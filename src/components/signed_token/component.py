"""
SignedToken component.

Issues and verifies stateless form timing tokens.

Wire format: base64("<unix_seconds>|" + hex(HMAC-SHA256(secret, "<unix_seconds>")))

Invariants:
- Signatures are compared in constant time
- A token is valid only when min_elapsed <= now - issued_at <= max_age
- Verification never raises on attacker-controlled input
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from .models import (
    ConfigurationError,
    IssueTokenInput,
    IssueTokenOutput,
    TokenFailure,
    VerifyTokenInput,
    VerifyTokenOutput,
)

DELIMITER = "|"


def _require_secret(secret: str) -> bytes:
    if not secret:
        raise ConfigurationError("Token secret must not be empty")
    return secret.encode()


def sign(issued_at: str, secret: str) -> str:
    """Hex HMAC-SHA256 of the timestamp string."""
    return hmac.new(_require_secret(secret), issued_at.encode(), hashlib.sha256).hexdigest()


def issue_token(now: int, secret: str) -> str:
    """Produce a token stamped with the given unix time."""
    issued_at = str(int(now))
    payload = f"{issued_at}{DELIMITER}{sign(issued_at, secret)}"
    return base64.b64encode(payload.encode()).decode("ascii")


def _decode(token: str) -> str | None:
    try:
        return base64.b64decode(token.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None


def verify_token(
    token: str | None,
    now: int,
    secret: str,
    min_elapsed_seconds: int,
    max_age_seconds: int,
) -> VerifyTokenOutput:
    """
    Verify a form token.

    Checks run in order: shape, signature, timestamp range, minimum elapsed time.
    """
    expected_key = _require_secret(secret)

    if not token:
        return VerifyTokenOutput(is_valid=False, reason=TokenFailure.MALFORMED)

    decoded = _decode(token)
    if decoded is None or decoded.count(DELIMITER) != 1:
        return VerifyTokenOutput(is_valid=False, reason=TokenFailure.MALFORMED)

    timestamp_str, signature = decoded.split(DELIMITER)
    expected = hmac.new(expected_key, timestamp_str.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected.encode(), signature.encode()):
        return VerifyTokenOutput(is_valid=False, reason=TokenFailure.BAD_SIGNATURE)

    try:
        issued_at = int(timestamp_str)
    except ValueError:
        return VerifyTokenOutput(is_valid=False, reason=TokenFailure.MALFORMED)

    elapsed = int(now) - issued_at

    if issued_at > now:
        return VerifyTokenOutput(
            is_valid=False,
            reason=TokenFailure.FUTURE_TIMESTAMP,
            issued_at=issued_at,
            elapsed_seconds=elapsed,
        )

    if elapsed > max_age_seconds:
        return VerifyTokenOutput(
            is_valid=False,
            reason=TokenFailure.EXPIRED,
            issued_at=issued_at,
            elapsed_seconds=elapsed,
        )

    if elapsed < min_elapsed_seconds:
        return VerifyTokenOutput(
            is_valid=False,
            reason=TokenFailure.TOO_FAST,
            issued_at=issued_at,
            elapsed_seconds=elapsed,
        )

    return VerifyTokenOutput(is_valid=True, issued_at=issued_at, elapsed_seconds=elapsed)


def run(
    inp: IssueTokenInput | VerifyTokenInput,
    *,
    secret: str,
) -> IssueTokenOutput | VerifyTokenOutput:
    """
    Main component entry point.

    Args:
        inp: Issue or verify command
        secret: Server-side HMAC secret

    Returns:
        Operation result
    """
    if isinstance(inp, IssueTokenInput):
        return IssueTokenOutput(token=issue_token(inp.now, secret), issued_at=int(inp.now))
    elif isinstance(inp, VerifyTokenInput):
        return verify_token(
            inp.token,
            inp.now,
            secret,
            inp.min_elapsed_seconds,
            inp.max_age_seconds,
        )
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
