"""Admission filter: sliding-window limiter and its pluggable state stores."""

import time

from todoapp.config import Settings
from todoapp.ratelimit.limiter import AdmissionState, SlidingWindowLimiter
from todoapp.ratelimit.store import (
    MemoryRateLimitStore,
    RateLimitStore,
    RedisRateLimitStore,
    StoreUnavailableError,
)

__all__ = [
    "AdmissionState",
    "MemoryRateLimitStore",
    "RateLimitStore",
    "RedisRateLimitStore",
    "SlidingWindowLimiter",
    "StoreUnavailableError",
    "build_limiter",
]


def build_limiter(settings: Settings) -> SlidingWindowLimiter:
    """Build the limiter configured by settings.

    Learn: Redis entries are shared between processes, so timestamps come
    from the wall clock there; the in-process store uses the monotonic clock.
    """
    if settings.rate_limit_backend == "redis":
        store: RateLimitStore = RedisRateLimitStore.from_url(settings.redis_url)
        clock = time.time
    else:
        store = MemoryRateLimitStore()
        clock = store.clock
    return SlidingWindowLimiter(
        store,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        block_seconds=settings.rate_limit_block_seconds,
        idle_ttl_seconds=settings.rate_limit_idle_ttl_seconds,
        clock=clock,
    )
