"""Sliding-window admission limiter with block-on-exceed.

Learn: Per caller the limiter moves through three states:

    UNRESTRICTED --first request--> TRACKING
    TRACKING --count >= max within window--> BLOCKED
    BLOCKED --block TTL elapses--> UNRESTRICTED   (passive, no request needed)

The window is kept per (caller, path): an ordered list of request
timestamps, pruned to the trailing window before every count check. The
block flag is per caller and holds the instant the block ends. It is set
with compare-and-swap against "absent", so concurrent triggers cannot push
the end of the block further out, and while it is set no window is read or
written.

Two requests racing on the same key may both see "below threshold"; that
overshoot is tolerated. The per-key lock only keeps each window's
read-prune-append-write consistent.
"""

import enum
import math
import time
from typing import Callable

import structlog

from todoapp.errors import RateLimitError
from todoapp.ratelimit.store import RateLimitStore

logger = structlog.get_logger()

TRIPPED_MESSAGE = "Too many requests. IP address blocked for {minutes} minutes."
BLOCKED_MESSAGE = "IP address temporarily blocked due to excessive requests."


class AdmissionState(str, enum.Enum):
    UNRESTRICTED = "unrestricted"
    TRACKING = "tracking"
    BLOCKED = "blocked"


class SlidingWindowLimiter:
    """Admit or reject one request per call to hit()."""

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 60,
        window_seconds: float = 60.0,
        block_seconds: float = 300.0,
        idle_ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        self.idle_ttl_seconds = idle_ttl_seconds
        self.clock = clock

    @staticmethod
    def block_key(caller: str) -> str:
        return f"rl:{caller}:blocked"

    @staticmethod
    def window_key(caller: str, path: str) -> str:
        return f"rl:{caller}:{path}"

    def _retry_after(self, until: float, now: float) -> int:
        return max(1, math.ceil(until - now))

    async def hit(self, caller: str, path: str) -> int:
        """Record one request from caller to path.

        Returns how many more requests the window admits.
        Raises RateLimitError when the caller is blocked or this request
        trips the block.
        """
        now = self.clock()
        block_key = self.block_key(caller)

        until = await self.store.get(block_key)
        if until is not None and now < until:
            raise RateLimitError(
                BLOCKED_MESSAGE,
                retry_after=self._retry_after(until, now),
                code="rate_limited",
            )

        window_key = self.window_key(caller, path)
        async with self.store.lock(window_key):
            history = await self.store.get(window_key) or []
            history = [t for t in history if now - t <= self.window_seconds]

            if len(history) >= self.max_requests:
                until = now + self.block_seconds
                if await self.store.compare_and_swap(
                    block_key, None, until, self.block_seconds
                ):
                    logger.warning(
                        "ratelimit.blocked",
                        caller=caller,
                        path=path,
                        count=len(history),
                        block_seconds=self.block_seconds,
                    )
                else:
                    until = await self.store.get(block_key) or until
                await self.store.set(window_key, history, self.idle_ttl_seconds)
                raise RateLimitError(
                    TRIPPED_MESSAGE.format(minutes=math.ceil(self.block_seconds / 60)),
                    retry_after=self._retry_after(until, now),
                    code="rate_limited",
                )

            history.append(now)
            await self.store.set(window_key, history, self.idle_ttl_seconds)
            return self.max_requests - len(history)

    async def state(self, caller: str, path: str) -> AdmissionState:
        """Current state for (caller, path). Read-only."""
        now = self.clock()
        until = await self.store.get(self.block_key(caller))
        if until is not None and now < until:
            return AdmissionState.BLOCKED
        if await self.store.get(self.window_key(caller, path)):
            return AdmissionState.TRACKING
        return AdmissionState.UNRESTRICTED
