from .rate_limit import (
    LIMITERS,
    RateLimitResult,
    SlidingWindowRateLimiter,
    get_client_identifier,
    rate_limit,
)

__all__ = [
    "LIMITERS",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
    "get_client_identifier",
    "rate_limit",
]
