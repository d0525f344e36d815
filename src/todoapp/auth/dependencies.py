"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers and at the
include_router level to extract and validate the current identity from
the request.

Two gates, both evaluated before any handler code:
1. get_current_user — Bearer JWT → CurrentIdentity, or 401
2. authorize — looks up the matched route in the policy table, or 403
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from todoapp.auth.jwt import TokenClaims, verify_token
from todoapp.auth.policy import is_allowed, required_capability
from todoapp.db.models import ADMIN_ROLE
from todoapp.errors import AuthenticationError, AuthorizationError

logger = structlog.get_logger()


class CurrentIdentity:
    """Represents the authenticated caller.

    Learn: Built purely from verified token claims — no database lookup.
    Role changes take effect the next time the user logs in.
    """

    def __init__(
        self,
        user_id: str,
        name: str = "",
        email: str = "",
        roles: Optional[list[str]] = None,
    ):
        self.user_id = user_id
        self.name = name
        self.email = email
        self.roles = tuple(roles or ())

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "CurrentIdentity":
        return cls(
            user_id=claims.user_id,
            name=claims.name,
            email=claims.email,
            roles=list(claims.roles),
        )

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return self.has_role(ADMIN_ROLE)

    @property
    def user_uuid(self) -> uuid.UUID:
        try:
            return uuid.UUID(self.user_id)
        except ValueError:
            raise AuthenticationError("Invalid token subject")


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header value."""
    if not authorization:
        raise AuthenticationError("Authentication required")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Malformed authorization header")
    return token


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if missing or invalid).

    Learn: There is no anonymous fallback. Any problem with the header or
    the token rejects the request.
    """
    claims = verify_token(bearer_token(authorization))
    return CurrentIdentity.from_claims(claims)


async def authorize(
    request: Request,
    identity: CurrentIdentity = Depends(get_current_user),
) -> CurrentIdentity:
    """Evaluate the policy table entry for the matched route (403 on failure).

    Learn: The lookup key is the matched route's name, which does not
    depend on the prefix the router is mounted under. Unknown routes
    are refused.
    """
    route_name = getattr(request.scope.get("route"), "name", None)
    capability = required_capability(route_name)

    if not is_allowed(capability, identity.user_id, identity.roles, request.path_params):
        logger.warning(
            "auth.forbidden",
            user_id=identity.user_id,
            method=request.method,
            route=route_name,
            capability=capability.value if capability else None,
        )
        raise AuthorizationError("Insufficient permissions")
    return identity
