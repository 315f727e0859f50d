"""
In-memory sliding-window rate limiting.

Counters live in process memory: they reset on restart and are not shared
between instances, so this only holds for single-instance deployments.

Usage:
    @router.post("/login", dependencies=[Depends(rate_limit("auth"))])
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from gymdesk.config import settings
from gymdesk.utils import Logger
from gymdesk.utils.exceptions import RateLimitExceeded

logger = Logger("rate_limit")

CLEANUP_INTERVAL_SECONDS = 5 * 60


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float
    retry_after: float

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset)),
        }
        if not self.success:
            headers["Retry-After"] = str(math.ceil(self.retry_after))
        return headers


class SlidingWindowRateLimiter:
    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        prefix: str = "default",
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.prefix = prefix
        self._clock = clock
        self._hits: dict[str, list[float]] = {}
        self._last_cleanup = clock()
        self._lock = threading.Lock()

    def _key(self, identifier: str) -> str:
        return f"{self.prefix}:{identifier}"

    def check(self, identifier: str) -> RateLimitResult:
        """Record a hit for ``identifier`` unless its window is already full."""
        now = self._clock()
        window_start = now - self.window_seconds
        key = self._key(identifier)

        with self._lock:
            if now - self._last_cleanup > CLEANUP_INTERVAL_SECONDS:
                self._cleanup(window_start)
                self._last_cleanup = now

            hits = [ts for ts in self._hits.get(key, []) if ts > window_start]
            self._hits[key] = hits

            if len(hits) >= self.max_requests:
                reset = hits[0] + self.window_seconds
                return RateLimitResult(
                    success=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset=reset,
                    retry_after=max(0.0, reset - now),
                )

            hits.append(now)
            return RateLimitResult(
                success=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(hits),
                reset=now + self.window_seconds,
                retry_after=0.0,
            )

    def _cleanup(self, window_start: float) -> None:
        stale = [k for k, hits in self._hits.items() if all(ts <= window_start for ts in hits)]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug(f"[{self.prefix}] dropped {len(stale)} idle rate-limit keys")

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._hits.pop(self._key(identifier), None)

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)


# ── Pre-configured limiters ──────────────────────────────────────
# sync triggers and other bulk operations
strict_limiter = SlidingWindowRateLimiter(60, 3, prefix="strict")
# login brute-force protection
auth_limiter = SlidingWindowRateLimiter(15 * 60, 5, prefix="auth")
api_limiter = SlidingWindowRateLimiter(60, 60, prefix="api")

LIMITERS: dict[str, SlidingWindowRateLimiter] = {
    "strict": strict_limiter,
    "auth": auth_limiter,
    "api": api_limiter,
}


def get_client_identifier(request: Request) -> str:
    """x-forwarded-for (first hop), then x-real-ip, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def rate_limit(name: str):
    """FastAPI dependency enforcing the named limiter."""
    limiter = LIMITERS[name]

    async def dependency(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        identifier = get_client_identifier(request)
        result = limiter.check(identifier)
        if not result.success:
            logger.warning(
                f"Rate limit '{name}' exceeded for {identifier} on {request.url.path}"
            )
            raise RateLimitExceeded(
                details={"retry_after": math.ceil(result.retry_after)},
                headers=result.headers(),
            )

    return dependency
