"""
Fixed-window submission rate limiter.

Counts live in the shared TTL store so every worker thread sees the same
window. A lock chosen from a fixed pool by hashing the identifier is held
across the read-check-increment, so two concurrent requests for one
identifier cannot both take the last slot.
"""

import hashlib
import logging
from dataclasses import dataclass
from threading import Lock

from src.core.ports.ttl_store import TTLStorePort
from src.rules.models import RateLimitWindow

logger = logging.getLogger(__name__)

KEY_PREFIX = "submission_count:"
LOCK_POOL_SIZE = 64


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after_seconds: int = 0


def rate_limit_identifier(user_id: int | None, client_ip: str) -> str:
    """
    Build the rate limit identifier.

    Authenticated callers are keyed by user id. Anonymous callers are keyed
    by a hash of their resolved address so raw addresses are never stored.
    """
    if user_id is not None and user_id > 0:
        return f"user:{user_id}"
    return f"ip:{hashlib.md5(client_ip.encode()).hexdigest()}"


class RateLimiter:
    def __init__(
        self,
        store: TTLStorePort,
        window: RateLimitWindow | None = None,
    ):
        self.store = store
        self.window = window or RateLimitWindow(window_seconds=3600, max_requests=5)
        self._locks = tuple(Lock() for _ in range(LOCK_POOL_SIZE))

    def _lock_for(self, key: str) -> Lock:
        digest = hashlib.blake2b(key.encode(), digest_size=4).digest()
        return self._locks[int.from_bytes(digest, "big") % len(self._locks)]

    def check_and_increment(
        self, identifier: str, limit: int, window_seconds: int
    ) -> RateLimitDecision:
        """
        Check if a submission is allowed.
        If allowed, records the attempt.
        If denied, leaves the counter untouched.
        """
        if limit <= 0:
            return RateLimitDecision(allowed=False, count=0, retry_after_seconds=window_seconds)

        key = f"{KEY_PREFIX}{identifier}"
        with self._lock_for(key):
            value, ttl_remaining = self.store.get(key)
            current_count = int(value or 0)

            if current_count >= limit:
                logger.debug("Rate limit hit for %s (%d/%d)", identifier, current_count, limit)
                return RateLimitDecision(
                    allowed=False,
                    count=current_count,
                    retry_after_seconds=ttl_remaining,
                )

            new_count = self.store.increment_with_ttl(key, window_seconds)
            return RateLimitDecision(allowed=True, count=new_count)

    def check_submission(self, identifier: str) -> RateLimitDecision:
        cfg = self.window
        return self.check_and_increment(identifier, cfg.max_requests, cfg.window_seconds)
