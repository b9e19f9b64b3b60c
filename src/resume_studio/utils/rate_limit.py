"""In-memory token-bucket rate limiting for agent-backed endpoints.

One process keeps its own buckets. Deployments running several workers
need a shared store instead.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 300.0


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int
    checked_at: float

    @property
    def retry_after(self) -> int:
        return max(1, math.ceil(self.reset_at - self.checked_at))


@dataclass
class _Bucket:
    tokens: float
    last_refill: float


class RateLimiter:
    """Token bucket allowing ``limit`` requests per ``window_seconds``."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._last_cleanup = clock()

    def check(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        self._sweep(now)

        bucket = self._buckets.get(identifier)
        if bucket is None:
            self._buckets[identifier] = _Bucket(tokens=self.limit - 1, last_refill=now)
            return RateLimitDecision(True, self.limit - 1, now + self.window_seconds, self.limit, now)

        elapsed = now - bucket.last_refill
        bucket.tokens = min(self.limit, bucket.tokens + elapsed / self.window_seconds * self.limit)
        bucket.last_refill = now

        if bucket.tokens >= 1:
            bucket.tokens -= 1
            return RateLimitDecision(
                True, math.floor(bucket.tokens), now + self.window_seconds, self.limit, now
            )

        reset_at = now + self.window_seconds * (1 - bucket.tokens) / self.limit
        logger.info("Rate limit hit for %s", identifier)
        return RateLimitDecision(False, 0, reset_at, self.limit, now)

    def _sweep(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        self._last_cleanup = now
        expire_before = now - self.window_seconds * 2
        stale = [k for k, b in self._buckets.items() if b.last_refill < expire_before]
        for key in stale:
            del self._buckets[key]


def request_identifier(authorization: str | None, client_ip: str | None) -> str:
    """Bucket key for a request: a hash of the bearer token, else the client IP."""
    if authorization and authorization.startswith("Bearer "):
        digest = hashlib.sha256(authorization[7:].encode("utf-8")).hexdigest()[:16]
        return f"token:{digest}"
    return f"ip:{client_ip or 'unknown'}"
