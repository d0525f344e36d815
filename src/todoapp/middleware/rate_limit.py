"""Rate limiting middleware — the admission filter in front of every request.

Learn: Keys each request by client IP and path and asks the injected
SlidingWindowLimiter whether to admit it. Rejections are 429 with a
plain-text body and a Retry-After header pointing at the end of the block.

Callers without a resolvable address skip the filter when fail_open is
set (the default); otherwise they share a single "unknown" bucket.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from todoapp.errors import RateLimitError
from todoapp.ratelimit import SlidingWindowLimiter, StoreUnavailableError

logger = structlog.get_logger()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP, per-path sliding window with block-on-exceed."""

    def __init__(self, app, limiter: SlidingWindowLimiter, fail_open: bool = True):
        super().__init__(app)
        self.limiter = limiter
        self.fail_open = fail_open

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = request.client.host if request.client else None
        if not client_ip:
            if self.fail_open:
                return await call_next(request)
            client_ip = "unknown"

        path = request.url.path

        try:
            remaining = await self.limiter.hit(client_ip, path)
        except RateLimitError as e:
            logger.warning("ratelimit.rejected", client_ip=client_ip, path=path)
            return PlainTextResponse(
                e.message,
                status_code=e.status_code,
                headers={"Retry-After": str(e.retry_after)},
            )
        except StoreUnavailableError as e:
            logger.error("ratelimit.store_unavailable", error=str(e))
            if self.fail_open:
                return await call_next(request)
            return PlainTextResponse("Service temporarily unavailable.", status_code=503)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(0, remaining))
        return response
