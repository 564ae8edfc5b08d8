"""
AntiAbuseGate component.

Decides whether a submission looks automated before any field is validated.

Check order:
1. Bypass predicates (any True skips all checks)
2. Honeypot field must be exactly empty
3. Signed timing token must verify
4. Per-identity rate limit
5. Custom checks, first failure wins

Invariants:
- Every rejection carries the same generic message
- Every rejection is logged and emitted to the audit sink
- A rejected request never consumes a rate limit slot unless it got that far
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Sequence

from src.app_shell.rate_limit import RateLimiter, rate_limit_identifier
from src.components.antiabuse.models import (
    GENERIC_SPAM_MESSAGE,
    AntiAbuseConfig,
    BypassPredicate,
    GateInput,
    GateOutput,
    SpamCheck,
    SpamEvent,
    SpamStage,
)
from src.components.antiabuse.ports import SpamAuditSinkPort
from src.components.client_ip import ProxyResolver
from src.components.signed_token import TokenFailure, verify_token
from src.core.ports.time import TimePort, unix_seconds
from src.domain.submission import CallerIdentity, SubmissionRequest

logger = logging.getLogger(__name__)


def honeypot_is_empty(value: str | None) -> bool:
    """Constant-time check that the honeypot was left blank. Missing counts as blank."""
    return hmac.compare_digest((value or "").encode("utf-8"), b"")


class AntiAbuseGate:
    def __init__(
        self,
        config: AntiAbuseConfig,
        token_secret: str,
        rate_limiter: RateLimiter,
        proxy_resolver: ProxyResolver,
        audit_sink: SpamAuditSinkPort,
        clock: TimePort,
        bypass_predicates: Sequence[BypassPredicate] = (),
        spam_checks: Sequence[SpamCheck] = (),
    ) -> None:
        self.config = config
        self._secret = token_secret
        self._rate_limiter = rate_limiter
        self._resolver = proxy_resolver
        self._audit = audit_sink
        self._clock = clock
        self.bypass_predicates = list(bypass_predicates)
        self.spam_checks = list(spam_checks)

    def evaluate(self, request: SubmissionRequest, identity: CallerIdentity) -> GateOutput:
        client_ip = self._resolver.resolve(request.remote_addr, request.forwarded_headers)
        identifier = rate_limit_identifier(identity.user_id, client_ip)

        if any(predicate(request, identity) for predicate in self.bypass_predicates):
            logger.debug("Spam checks bypassed for %s", identifier)
            return GateOutput(passed=True, identifier=identifier, bypassed=True)

        if not honeypot_is_empty(request.honeypot_value):
            return self._reject(
                SpamStage.HONEYPOT, "honeypot_filled", identifier, client_ip, identity
            )

        now = self._clock.now_utc()
        if request.form_token or self.config.require_token:
            result = verify_token(
                request.form_token,
                unix_seconds(now),
                self._secret,
                self.config.min_elapsed_seconds,
                self.config.max_age_seconds,
            )
            if not result.is_valid:
                reason = result.reason or TokenFailure.MALFORMED
                return self._reject(SpamStage.TIMING, reason.value, identifier, client_ip, identity)

        decision = self._rate_limiter.check_submission(identifier)
        if not decision.allowed:
            return self._reject(
                SpamStage.RATE_LIMIT, "rate_limited", identifier, client_ip, identity
            )

        for check in self.spam_checks:
            failure = check(request, identity)
            if failure:
                return self._reject(SpamStage.CUSTOM, failure, identifier, client_ip, identity)

        return GateOutput(passed=True, identifier=identifier)

    def run(self, inp: GateInput) -> GateOutput:
        return self.evaluate(inp.request, inp.identity)

    def _reject(
        self,
        stage: SpamStage,
        reason: str,
        identifier: str,
        client_ip: str,
        identity: CallerIdentity,
    ) -> GateOutput:
        logger.warning(
            "Spam check failed: stage=%s reason=%s identifier=%s",
            stage.value,
            reason,
            identifier,
        )
        self._audit.emit_spam_event(
            SpamEvent(
                stage=stage,
                identifier=identifier,
                timestamp=self._clock.now_utc(),
                client_ip=client_ip,
                user_id=identity.user_id,
                reason=reason,
            )
        )
        return GateOutput(
            passed=False,
            identifier=identifier,
            stage=stage,
            reason=reason,
            message=GENERIC_SPAM_MESSAGE,
        )
