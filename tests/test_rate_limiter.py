"""Sliding-window admission limiter and the in-memory store.

Learn: All timing is driven by a fake clock shared by the limiter and
the store, so window pruning, block expiry and TTLs are tested without
sleeping.
"""

import asyncio

import pytest

from todoapp.errors import RateLimitError
from todoapp.ratelimit import AdmissionState, MemoryRateLimitStore, SlidingWindowLimiter
from todoapp.ratelimit.limiter import BLOCKED_MESSAGE


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return MemoryRateLimitStore(clock=clock)


@pytest.fixture()
def limiter(store, clock):
    return SlidingWindowLimiter(
        store,
        max_requests=60,
        window_seconds=60,
        block_seconds=300,
        idle_ttl_seconds=300,
        clock=clock,
    )


async def _fill(limiter, clock, n=60, caller="10.0.0.1", path="/api/todos", step=0.5):
    for _ in range(n):
        await limiter.hit(caller, path)
        clock.advance(step)


# ═══════════════════════════════════════════════════════════
# Window and block
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sixty_requests_admitted(limiter, clock):
    remaining = None
    for _ in range(60):
        remaining = await limiter.hit("10.0.0.1", "/api/todos")
        clock.advance(0.5)
    assert remaining == 0


@pytest.mark.asyncio
async def test_sixty_first_request_in_window_rejected(limiter, clock):
    await _fill(limiter, clock)
    with pytest.raises(RateLimitError) as exc:
        await limiter.hit("10.0.0.1", "/api/todos")
    assert exc.value.status_code == 429
    assert exc.value.message == "Too many requests. IP address blocked for 5 minutes."
    assert exc.value.retry_after == 300


@pytest.mark.asyncio
async def test_first_request_after_block_expiry_admitted(limiter, clock):
    await _fill(limiter, clock)
    with pytest.raises(RateLimitError):
        await limiter.hit("10.0.0.1", "/api/todos")

    clock.advance(299)
    with pytest.raises(RateLimitError):
        await limiter.hit("10.0.0.1", "/api/todos")

    clock.advance(1)
    assert await limiter.hit("10.0.0.1", "/api/todos") == 59


@pytest.mark.asyncio
async def test_requests_while_blocked_do_not_extend_block(limiter, clock):
    await _fill(limiter, clock)
    with pytest.raises(RateLimitError):
        await limiter.hit("10.0.0.1", "/api/todos")

    for _ in range(10):
        clock.advance(25)
        with pytest.raises(RateLimitError) as exc:
            await limiter.hit("10.0.0.1", "/api/todos")
        assert exc.value.message == BLOCKED_MESSAGE

    # 250s elapsed; the original block ends at 300s
    assert exc.value.retry_after == 50
    clock.advance(50)
    await limiter.hit("10.0.0.1", "/api/todos")


@pytest.mark.asyncio
async def test_block_covers_every_path_for_the_caller(limiter, clock):
    await _fill(limiter, clock)
    with pytest.raises(RateLimitError):
        await limiter.hit("10.0.0.1", "/api/todos")
    with pytest.raises(RateLimitError):
        await limiter.hit("10.0.0.1", "/api/auth/me")


@pytest.mark.asyncio
async def test_windows_are_per_path_and_per_caller(limiter, clock):
    await _fill(limiter, clock)
    assert await limiter.hit("10.0.0.1", "/api/health") == 59
    assert await limiter.hit("10.0.0.2", "/api/todos") == 59


@pytest.mark.asyncio
async def test_old_requests_slide_out_of_window(limiter, clock):
    for _ in range(60):
        await limiter.hit("10.0.0.1", "/api/todos")
    clock.advance(60.5)
    assert await limiter.hit("10.0.0.1", "/api/todos") == 59


@pytest.mark.asyncio
async def test_block_set_once_under_concurrent_triggers(limiter, store, clock):
    await _fill(limiter, clock)
    await store.set(limiter.block_key("10.0.0.1"), clock() + 10, 10)

    # A competing trigger sees an existing block and keeps its end time
    assert not await store.compare_and_swap(
        limiter.block_key("10.0.0.1"), None, clock() + 300, 300
    )
    with pytest.raises(RateLimitError) as exc:
        await limiter.hit("10.0.0.1", "/api/todos")
    assert exc.value.retry_after == 10


@pytest.mark.asyncio
async def test_concurrent_triggers_set_the_block_once(store, clock):
    limiter = SlidingWindowLimiter(
        store, max_requests=3, window_seconds=60, block_seconds=300, clock=clock
    )

    results = await asyncio.gather(
        *(limiter.hit("10.0.0.7", "/api/todos") for _ in range(10)),
        return_exceptions=True,
    )
    admitted = [r for r in results if isinstance(r, int)]
    rejected = [r for r in results if isinstance(r, RateLimitError)]
    assert sorted(admitted, reverse=True) == [2, 1, 0]
    assert len(rejected) == 7
    assert {e.retry_after for e in rejected} == {300}
    assert await store.get(limiter.block_key("10.0.0.7")) == clock() + 300

    clock.advance(100)
    more = await asyncio.gather(
        *(limiter.hit("10.0.0.7", "/api/todos") for _ in range(5)),
        return_exceptions=True,
    )
    assert {e.retry_after for e in more} == {200}

    clock.advance(200)
    assert await limiter.hit("10.0.0.7", "/api/todos") == 2


# ═══════════════════════════════════════════════════════════
# State machine
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_state_transitions(limiter, clock):
    caller, path = "10.0.0.9", "/api/todos"
    assert await limiter.state(caller, path) is AdmissionState.UNRESTRICTED

    await limiter.hit(caller, path)
    assert await limiter.state(caller, path) is AdmissionState.TRACKING

    await _fill(limiter, clock, n=59, caller=caller, path=path, step=0)
    with pytest.raises(RateLimitError):
        await limiter.hit(caller, path)
    assert await limiter.state(caller, path) is AdmissionState.BLOCKED

    clock.advance(300)
    assert await limiter.state(caller, path) is AdmissionState.UNRESTRICTED


# ═══════════════════════════════════════════════════════════
# MemoryRateLimitStore
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_store_entries_expire(store, clock):
    await store.set("k", [1.0], ttl=5)
    assert await store.get("k") == [1.0]
    clock.advance(5)
    assert await store.get("k") is None


@pytest.mark.asyncio
async def test_compare_and_swap(store):
    assert await store.compare_and_swap("k", None, 1, ttl=60)
    assert not await store.compare_and_swap("k", None, 2, ttl=60)
    assert not await store.compare_and_swap("k", 5, 2, ttl=60)
    assert await store.compare_and_swap("k", 1, 2, ttl=60)
    assert await store.get("k") == 2


@pytest.mark.asyncio
async def test_purge_expired(store, clock):
    await store.set("a", 1, ttl=1)
    await store.set("b", 1, ttl=100)
    clock.advance(2)
    assert store.purge_expired() == 1
    assert len(store) == 1
