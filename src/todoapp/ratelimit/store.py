"""Rate-limit state stores.

Learn: The limiter never touches a global cache. It is handed a
RateLimitStore: a small key → value mapping with TTLs, compare-and-swap
and a per-key exclusive section. The in-memory store is the default and
only holds for one process; the Redis store keeps the same contract
across instances.

Values are JSON-compatible (lists of floats, floats) so both stores can
hold them.
"""

import abc
import asyncio
import json
import time
import weakref
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError, WatchError


class StoreUnavailableError(Exception):
    """The backing store could not be reached."""


class RateLimitStore(abc.ABC):
    """Key → value mapping with per-entry TTL."""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the live value for key, or None if absent or expired."""

    @abc.abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key for ttl seconds."""

    @abc.abstractmethod
    async def compare_and_swap(
        self, key: str, expected: Optional[Any], new: Any, ttl: float
    ) -> bool:
        """Set key to new only if its live value equals expected.

        expected=None means "only if absent", which gives set-once semantics.
        Returns True if the swap happened.
        """

    @abc.abstractmethod
    def lock(self, key: str):
        """Async context manager: exclusive section for key."""

    async def close(self) -> None:
        pass


class MemoryRateLimitStore(RateLimitStore):
    """Process-local store. Expiry is checked lazily against `clock`.

    Learn: get-then-set inside compare_and_swap never awaits anything that
    suspends, so on a single event loop it is atomic.
    """

    SWEEP_EVERY = 1024

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._data: dict[str, tuple[Any, float]] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._writes = 0

    async def get(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl: float) -> None:
        self._data[key] = (value, self.clock() + ttl)
        self._writes += 1
        if self._writes % self.SWEEP_EVERY == 0:
            self.purge_expired()

    async def compare_and_swap(
        self, key: str, expected: Optional[Any], new: Any, ttl: float
    ) -> bool:
        if await self.get(key) != expected:
            return False
        await self.set(key, new, ttl)
        return True

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self.clock()
        stale = [k for k, (_, expires_at) in self._data.items() if now >= expires_at]
        for k in stale:
            del self._data[k]
        return len(stale)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class RedisRateLimitStore(RateLimitStore):
    """Redis-backed store shared by every instance of the service.

    Learn: TTLs are native Redis expiries (PX). Set-once CAS is a plain
    SET NX; general CAS uses WATCH/MULTI. The exclusive section is a Redis
    lock, so it also serializes requests handled by other processes.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        prefix: str = "todoapp:",
        lock_timeout: float = 5.0,
    ):
        self.redis = redis
        self.prefix = prefix
        self.lock_timeout = lock_timeout

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisRateLimitStore":
        return cls(aioredis.from_url(url, encoding="utf-8", decode_responses=True), **kwargs)

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @staticmethod
    def _px(ttl: float) -> int:
        return max(1, int(ttl * 1000))

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.redis.get(self._k(key))
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl: float) -> None:
        try:
            await self.redis.set(self._k(key), json.dumps(value), px=self._px(ttl))
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e

    async def compare_and_swap(
        self, key: str, expected: Optional[Any], new: Any, ttl: float
    ) -> bool:
        k = self._k(key)
        payload = json.dumps(new)
        try:
            if expected is None:
                return bool(await self.redis.set(k, payload, px=self._px(ttl), nx=True))

            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(k)
                    raw = await pipe.get(k)
                    current = json.loads(raw) if raw is not None else None
                    if current != expected:
                        await pipe.unwatch()
                        return False
                    pipe.multi()
                    pipe.set(k, payload, px=self._px(ttl))
                    await pipe.execute()
                    return True
                except WatchError:
                    return False
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        try:
            lock = self.redis.lock(
                self._k(f"lock:{key}"),
                timeout=self.lock_timeout,
                blocking_timeout=self.lock_timeout,
            )
            acquired = await lock.acquire()
        except RedisError as e:
            raise StoreUnavailableError(str(e)) from e
        if not acquired:
            raise StoreUnavailableError(f"Timed out waiting for lock on {key}")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Lock expired on its own; nothing left to release
                pass

    async def close(self) -> None:
        await self.redis.aclose()
