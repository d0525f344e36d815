"""Exception taxonomy and the HTTP mapping for it.

Learn: Services raise these instead of HTTPException so they stay usable
outside a request (CLI, tests). install_error_handlers() turns any
TodoAppError into a structured JSON rejection — status + message, never a
stack trace.
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class TodoAppError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class AuthenticationError(TodoAppError):
    """Missing, malformed, expired or badly signed credential."""

    status_code = 401


class AuthorizationError(TodoAppError):
    """Valid credential, insufficient role."""

    status_code = 403


class NotFoundError(TodoAppError):
    """Resource not found (also used for resources owned by someone else)."""

    status_code = 404


class PolicyError(TodoAppError):
    """Request is well-formed and authorized but violates a business rule."""

    status_code = 400


class ValidationError(TodoAppError):
    """Input is inconsistent in a way pydantic cannot catch (e.g. id mismatch)."""

    status_code = 400


class ConflictError(TodoAppError):
    """Unique constraint would be violated."""

    status_code = 409


class RateLimitError(TodoAppError):
    """Admission filter rejection."""

    status_code = 429

    def __init__(self, message: str, retry_after: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ConfigurationError(Exception):
    """Missing or malformed configuration. Fatal at startup."""


async def _handle_app_error(request: Request, exc: TodoAppError) -> JSONResponse:
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register the TodoAppError → JSON response mapping on an app."""
    app.add_exception_handler(TodoAppError, _handle_app_error)
