"""Request ID middleware — unique ID per request for tracing, plus the access log.

Learn: Every request gets an ID, either from the incoming X-Request-ID
header (the front-end tier forwards its own to the API) or a fresh UUID.
Incoming IDs end up in log lines and response headers, so anything that
is not a short token of safe characters is replaced.

The ID is bound to structlog's contextvars together with method and path,
so every log entry emitted while serving the request carries them. One
"http.request" line with status and duration is logged per request.
"""

import re
import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{1,128}$")

logger = structlog.get_logger()


def resolve_request_id(incoming: Optional[str]) -> str:
    if incoming and _SAFE_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, bind log context, log one line per request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        response: Response = await call_next(request)

        logger.info(
            "http.request",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
