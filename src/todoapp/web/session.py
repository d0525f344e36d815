"""Session cookie handling for the front-end tier.

Learn: The cookie value is a small JWT signed with the session secret:
{"access_token": <API token>, "type": "session", "exp": ...}. Reading it
checks the cookie's own signature and expiry, then verifies the embedded
API token with the same rule the API uses (auth.jwt.verify_token), so an
expired API token ends the session even if the cookie is still fresh.
The embedded token is treated as opaque: it is never modified or re-signed.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import jwt
from fastapi import Request, Response

from todoapp.auth.dependencies import CurrentIdentity
from todoapp.auth.jwt import TokenError, verify_token
from todoapp.config import settings
from todoapp.errors import AuthenticationError

SESSION_TOKEN_TYPE = "session"


@dataclass(frozen=True)
class WebSession:
    access_token: str
    identity: CurrentIdentity
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_session_cookie(access_token: str, now: Optional[datetime] = None) -> str:
    """Wrap an API token in a signed session value expiring with the token."""
    claims = verify_token(access_token, now=now)
    payload = {
        "access_token": access_token,
        "type": SESSION_TOKEN_TYPE,
        "iat": (now or _utcnow()).replace(microsecond=0),
        "exp": claims.expires_at,
    }
    return jwt.encode(
        payload, settings.effective_session_secret, algorithm=settings.jwt_algorithm
    )


def read_session_cookie(value: str, now: Optional[datetime] = None) -> WebSession:
    """Validate a session cookie and the API token inside it."""
    try:
        payload = jwt.decode(
            value,
            settings.effective_session_secret,
            algorithms=[settings.jwt_algorithm],
            options={
                "require": ["access_token", "exp"],
                "verify_exp": False,
                "verify_iat": False,
            },
        )
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid session: {e}")

    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise AuthenticationError("Invalid session")
    exp = payload["exp"]
    if not isinstance(exp, (int, float)) or (now or _utcnow()).timestamp() >= exp:
        raise AuthenticationError("Session has expired")

    try:
        claims = verify_token(payload["access_token"], now=now)
    except TokenError as e:
        raise AuthenticationError(f"Session token rejected: {e.message}")

    return WebSession(
        access_token=payload["access_token"],
        identity=CurrentIdentity.from_claims(claims),
        expires_at=claims.expires_at,
    )


async def get_session(request: Request) -> WebSession:
    """FastAPI dependency — the signed-in session, or 401."""
    value = request.cookies.get(settings.session_cookie_name)
    if not value:
        raise AuthenticationError("Not signed in")
    return read_session_cookie(value)


async def get_optional_session(request: Request) -> Optional[WebSession]:
    """Like get_session, but an absent or invalid cookie yields None."""
    value = request.cookies.get(settings.session_cookie_name)
    if not value:
        return None
    try:
        return read_session_cookie(value)
    except AuthenticationError:
        return None


def set_session_cookie(
    response: Response,
    access_token: str,
    persistent: bool = False,
) -> WebSession:
    """Sign the user in by attaching the session cookie to response."""
    value = create_session_cookie(access_token)
    session = read_session_cookie(value)
    max_age = None
    if persistent:
        max_age = max(0, int((session.expires_at - _utcnow()).total_seconds()))
    response.set_cookie(
        settings.session_cookie_name,
        value,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    return session


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
