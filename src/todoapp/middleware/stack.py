"""Middleware stack shared by the API and front-end apps.

Learn: Starlette runs middleware in reverse order of registration, so
the last one added sees the request first. Both tiers get the same
order:

    RequestId → SecurityHeaders → RateLimit → [CORS] → routing

Request IDs and security headers therefore also land on 429 responses,
and CORS preflights are counted by the admission filter.
"""

from typing import Optional, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from todoapp.config import Settings
from todoapp.middleware.rate_limit import RateLimitMiddleware
from todoapp.middleware.request_id import RequestIdMiddleware
from todoapp.middleware.security import SecurityHeadersMiddleware
from todoapp.ratelimit import SlidingWindowLimiter


def install_middleware(
    app: FastAPI,
    settings: Settings,
    limiter: SlidingWindowLimiter,
    cors_origins: Optional[Sequence[str]] = None,
) -> None:
    """Register the shared stack; CORS only when origins are given."""
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        fail_open=settings.rate_limit_fail_open,
    )
    app.add_middleware(SecurityHeadersMiddleware, environment=settings.environment)
    app.add_middleware(RequestIdMiddleware)
