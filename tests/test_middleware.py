"""Tests for the middleware stack — admission filter, security headers, request IDs.

Learn: The admission filter is exercised on a throwaway app with a small
limit and a fake clock, so the 429 path is reached in a handful of requests.
Headers and request IDs are checked on the real API app.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from todoapp.middleware.rate_limit import RateLimitMiddleware
from todoapp.middleware.security import DEVELOPMENT_CSP, PRODUCTION_CSP, SecurityHeadersMiddleware
from todoapp.ratelimit import (
    AdmissionState,
    MemoryRateLimitStore,
    SlidingWindowLimiter,
    StoreUnavailableError,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _limited_app(limiter, fail_open=True):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter, fail_open=fail_open)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


def _limiter(clock, max_requests=3):
    return SlidingWindowLimiter(
        MemoryRateLimitStore(clock=clock),
        max_requests=max_requests,
        window_seconds=60,
        block_seconds=300,
        clock=clock,
    )


# ═══════════════════════════════════════════════════════════
# Admission filter
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_rate_limit_rejects_with_plain_text_and_retry_after():
    clock = FakeClock()
    app = _limited_app(_limiter(clock))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for expected_remaining in ("2", "1", "0"):
            r = await ac.get("/ping")
            assert r.status_code == 200
            assert r.headers["X-RateLimit-Limit"] == "3"
            assert r.headers["X-RateLimit-Remaining"] == expected_remaining

        r = await ac.get("/ping")
        assert r.status_code == 429
        assert r.headers["content-type"].startswith("text/plain")
        assert r.text == "Too many requests. IP address blocked for 5 minutes."
        assert r.headers["Retry-After"] == "300"

        clock.now = 100.0
        r = await ac.get("/ping")
        assert r.status_code == 429
        assert r.text == "IP address temporarily blocked due to excessive requests."
        assert r.headers["Retry-After"] == "200"

        clock.now = 300.0
        r = await ac.get("/ping")
        assert r.status_code == 200


class _BrokenStore(MemoryRateLimitStore):
    async def get(self, key):
        raise StoreUnavailableError("connection refused")


@pytest.mark.asyncio
async def test_store_outage_fails_open_by_default():
    limiter = SlidingWindowLimiter(_BrokenStore(), max_requests=3)
    app = _limited_app(limiter)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/ping")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_store_outage_fails_closed_when_configured():
    limiter = SlidingWindowLimiter(_BrokenStore(), max_requests=3)
    app = _limited_app(limiter, fail_open=False)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/ping")
    assert r.status_code == 503


@pytest.mark.asyncio
async def test_addressless_caller_bypasses_filter_when_fail_open():
    limiter = _limiter(FakeClock(), max_requests=1)
    app = _limited_app(limiter)
    transport = ASGITransport(app=app, client=None)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        for _ in range(3):
            r = await ac.get("/ping")
            assert r.status_code == 200
            assert "X-RateLimit-Limit" not in r.headers
    assert len(limiter.store) == 0


@pytest.mark.asyncio
async def test_addressless_callers_share_unknown_bucket_when_fail_closed():
    limiter = _limiter(FakeClock(), max_requests=1)
    app = _limited_app(limiter, fail_open=False)
    transport = ASGITransport(app=app, client=None)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        assert (await ac.get("/ping")).status_code == 200
        assert (await ac.get("/ping")).status_code == 429
    assert await limiter.store.get(limiter.window_key("unknown", "/ping")) == [0.0]
    assert await limiter.state("unknown", "/ping") is AdmissionState.BLOCKED


@pytest.mark.asyncio
async def test_api_app_reports_rate_limit_headers(client):
    r = await client.get("/api/health")
    assert r.headers["X-RateLimit-Limit"] == "60"
    assert r.headers["X-RateLimit-Remaining"] == "59"


# ═══════════════════════════════════════════════════════════
# Security headers
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert r.headers["Content-Security-Policy"] == DEVELOPMENT_CSP


@pytest.mark.asyncio
async def test_production_csp():
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, environment="production")

    @app.get("/x")
    async def x():
        return {}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/x")
    assert r.headers["Content-Security-Policy"] == PRODUCTION_CSP
    assert "Strict-Transport-Security" not in r.headers

    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        r = await ac.get("/x")
    assert r.headers["Strict-Transport-Security"].startswith("max-age=31536000")


# ═══════════════════════════════════════════════════════════
# Request IDs
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    r = await client.get("/api/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"


@pytest.mark.asyncio
async def test_request_id_on_rejections(client):
    r = await client.get("/api/todos")
    assert r.status_code == 401
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_unsafe_request_id_replaced(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "bad id with spaces"})
    assert r.headers["X-Request-ID"] != "bad id with spaces"
    assert len(r.headers["X-Request-ID"]) == 36
