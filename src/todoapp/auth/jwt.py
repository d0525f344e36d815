"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
A single access token (2h, no refresh) carries everything downstream
authorization needs: user id, display name, email and the role list.
Nothing is stored server-side; the token lives until it expires.

Expiry is enforced here rather than by PyJWT so the comparison is explicit
and the clock can be injected: a token is rejected once now >= exp, with
no leeway. Issuance time is truncated to whole seconds so exp is exactly
iat + lifetime.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import jwt

from todoapp.config import settings
from todoapp.errors import AuthenticationError

ACCESS_TOKEN_TYPE = "access"


class TokenError(AuthenticationError):
    """Raised when token verification fails."""


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified access-token claims."""

    user_id: str
    name: str
    email: str
    roles: tuple[str, ...]
    expires_at: datetime

    def has_role(self, role: str) -> bool:
        return role in self.roles


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    user_id: str,
    name: str,
    email: str,
    roles: Iterable[str],
    now: Optional[datetime] = None,
    secret: Optional[str] = None,
) -> str:
    """Create a signed access token that expires exactly one lifetime after issue."""
    issued = (now or _utcnow()).replace(microsecond=0)
    expires = issued + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": user_id,
        "name": name,
        "email": email,
        "roles": list(roles),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued,
        "exp": expires,
    }
    return jwt.encode(
        payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def verify_token(
    token: str,
    now: Optional[datetime] = None,
    secret: Optional[str] = None,
) -> TokenClaims:
    """Verify and decode an access token.

    Returns TokenClaims on success.
    Raises TokenError on a bad signature, missing claims, wrong token type
    or expiry.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={
                "require": ["sub", "exp"],
                "verify_exp": False,
                "verify_iat": False,
            },
        )
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise TokenError("Not an access token")

    exp = payload["exp"]
    if not isinstance(exp, (int, float)):
        raise TokenError("Invalid token: malformed expiry")
    if (now or _utcnow()).timestamp() >= exp:
        raise TokenError("Token has expired")

    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]

    return TokenClaims(
        user_id=str(payload["sub"]),
        name=payload.get("name", ""),
        email=payload.get("email", ""),
        roles=tuple(roles),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )
