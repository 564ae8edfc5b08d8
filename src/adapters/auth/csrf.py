"""
HMAC CSRF token adapter.

Tokens are bound to the caller (user id, or "anon") and carry their issue
time, so they need no server-side storage:

    base64("<unix_seconds>|" + hex(HMAC-SHA256(secret, "csrf|<subject>|<unix_seconds>")))
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from src.core.ports.time import TimePort, unix_seconds
from src.domain.submission import CallerIdentity

DEFAULT_CSRF_MAX_AGE_SECONDS = 86400


def _subject(identity: CallerIdentity) -> str:
    return str(identity.user_id) if identity.is_authenticated else "anon"


class HmacCsrfVerifier:
    """Implements CsrfVerifierPort."""

    def __init__(
        self,
        secret: str,
        clock: TimePort,
        max_age_seconds: int = DEFAULT_CSRF_MAX_AGE_SECONDS,
    ) -> None:
        if not secret:
            raise ValueError("CSRF secret must not be empty")
        self._key = secret.encode()
        self._clock = clock
        self.max_age_seconds = max_age_seconds

    def _signature(self, subject: str, issued_at: str) -> str:
        message = f"csrf|{subject}|{issued_at}".encode()
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def issue(self, identity: CallerIdentity) -> str:
        issued_at = str(unix_seconds(self._clock.now_utc()))
        payload = f"{issued_at}|{self._signature(_subject(identity), issued_at)}"
        return base64.b64encode(payload.encode()).decode("ascii")

    def verify(self, token: str | None, identity: CallerIdentity) -> bool:
        if not token:
            return False
        try:
            decoded = base64.b64decode(token.encode("ascii"), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError):
            return False
        if decoded.count("|") != 1:
            return False

        issued_at, signature = decoded.split("|")
        expected = self._signature(_subject(identity), issued_at)
        if not hmac.compare_digest(expected.encode(), signature.encode()):
            return False

        try:
            age = unix_seconds(self._clock.now_utc()) - int(issued_at)
        except ValueError:
            return False
        return 0 <= age <= self.max_age_seconds
