"""Declarative authorization policy.

Learn: Instead of role checks scattered through handlers, every protected
route is looked up here by its route name (the `name=` given in its
decorator, e.g. "users:list") and the required capability is evaluated
once, at request entry, by the router dependency in auth.dependencies.

Route names are fixed by the code that declares them, whatever prefix
the router is mounted under. A protected route missing from the table is
refused (fail closed).

Ownership of to-do items is not a capability: it is enforced by the
service layer filtering on (id, owner), which turns foreign rows into 404s.
"""

import enum
import uuid
from typing import Collection, Mapping, Optional

from todoapp.db.models import ADMIN_ROLE


class Capability(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"
    SELF_OR_ADMIN = "self_or_admin"


POLICIES: dict[str, Capability] = {
    "todos:list": Capability.AUTHENTICATED,
    "todos:get": Capability.AUTHENTICATED,
    "todos:create": Capability.AUTHENTICATED,
    "todos:update": Capability.AUTHENTICATED,
    "todos:delete": Capability.AUTHENTICATED,
    "users:list": Capability.ADMIN,
    "users:roles": Capability.ADMIN,
    "users:get": Capability.SELF_OR_ADMIN,
    "users:update": Capability.ADMIN,
    "users:delete": Capability.ADMIN,
    "users:change_password": Capability.ADMIN,
}


def required_capability(route_name: Optional[str]) -> Optional[Capability]:
    """Capability for a route, or None if the route is not in the table."""
    if route_name is None:
        return None
    return POLICIES.get(route_name)


def _same_user(a: object, b: object) -> bool:
    try:
        return uuid.UUID(str(a)) == uuid.UUID(str(b))
    except ValueError:
        return False


def is_allowed(
    capability: Optional[Capability],
    user_id: str,
    roles: Collection[str],
    path_params: Mapping[str, str],
) -> bool:
    """Evaluate a capability for a verified caller. Pure.

    user_id values are compared as UUIDs, so any spelling FastAPI accepts
    in the path (upper case, no hyphens) matches the token subject.
    """
    if capability is None:
        return False
    if capability is Capability.AUTHENTICATED:
        return True
    if ADMIN_ROLE in roles:
        return True
    if capability is Capability.SELF_OR_ADMIN:
        return _same_user(path_params.get("user_id", ""), user_id)
    return False
