"""User service — registration, login, token issuance and administration.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Services raise
TodoAppError subclasses; the app's error handlers map them to responses.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.auth.jwt import create_access_token, verify_token
from todoapp.auth.password import hash_password, needs_rehash, verify_password
from todoapp.db.models import USER_ROLE, Role, User, user_roles
from todoapp.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PolicyError,
    ValidationError,
)

logger = structlog.get_logger()


class UserService:
    """Business logic for identities and their roles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Lookups ────────────────────────────────────────

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalars().first()

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at, User.email))
        return list(result.scalars().all())

    async def list_roles(self) -> list[str]:
        result = await self.db.execute(select(Role.name).order_by(Role.name))
        return list(result.scalars().all())

    async def get_roles(self, user_id: uuid.UUID) -> list[str]:
        """Role names straight from the database (never from a cached user)."""
        result = await self.db.execute(
            select(Role.name)
            .join(user_roles, user_roles.c.role_id == Role.id)
            .where(user_roles.c.user_id == user_id)
            .order_by(Role.name)
        )
        return list(result.scalars().all())

    async def _roles_by_name(self, names: list[str]) -> list[Role]:
        wanted = set(names)
        if not wanted:
            return []
        result = await self.db.execute(select(Role).where(Role.name.in_(wanted)))
        roles = list(result.scalars().all())
        unknown = wanted - {r.name for r in roles}
        if unknown:
            raise ValidationError(
                f"Unknown role(s): {', '.join(sorted(unknown))}",
                details={"unknown_roles": sorted(unknown)},
            )
        return roles

    # ─── Registration & login ───────────────────────────

    async def register(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> User:
        """Create a user with the default "User" role."""
        if await self.find_by_email(email):
            raise ConflictError("Email already registered")

        user = User(
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(password),
            is_active=True,
            created_at=datetime.now(timezone.utc),
            roles=await self._roles_by_name([USER_ROLE]),
        )
        self.db.add(user)
        await self.db.commit()
        logger.info("users.registered", user_id=str(user.id))
        return user

    async def authenticate(self, email: str, password: str) -> User:
        user = await self.find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", email=email.lower())
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            logger.info("auth.login_inactive", user_id=str(user.id))
            raise AuthenticationError("Account is disabled")

        # Stored with a lower bcrypt cost than configured: upgrade in place
        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            await self.db.commit()
            logger.info("auth.password_rehashed", user_id=str(user.id))
        return user

    async def issue_token(self, user: User) -> tuple[str, int]:
        """Mint an access token with the user's current roles.

        Returns (token, expiry as unix seconds).
        """
        roles = await self.get_roles(user.id)
        token = create_access_token(
            user_id=str(user.id),
            name=user.display_name,
            email=user.email,
            roles=roles,
        )
        expires_at = int(verify_token(token).expires_at.timestamp())
        return token, expires_at

    # ─── Administration ─────────────────────────────────

    async def update_user(
        self,
        user_id: uuid.UUID,
        email: str,
        first_name: str,
        last_name: str,
        is_active: bool,
        roles: list[str],
    ) -> User:
        """Replace profile, active flag and role set."""
        user = await self.get_user(user_id)

        other = await self.find_by_email(email)
        if other and other.id != user.id:
            raise ConflictError("Email already registered")

        user.email = email.lower()
        user.first_name = first_name
        user.last_name = last_name
        user.is_active = is_active
        user.roles = await self._roles_by_name(roles)

        await self.db.commit()
        logger.info("users.updated", user_id=str(user.id), roles=user.role_names)
        return user

    async def delete_user(self, actor_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Delete a user and, through the FK cascade, their to-do items.

        An administrator can never delete their own account this way.
        """
        if actor_id == user_id:
            raise PolicyError("Cannot delete your own account", code="self_delete")
        user = await self.get_user(user_id)
        await self.db.delete(user)
        await self.db.commit()
        logger.info("users.deleted", user_id=str(user_id), actor_id=str(actor_id))

    async def change_password(self, user_id: uuid.UUID, new_password: str) -> None:
        user = await self.get_user(user_id)
        user.password_hash = hash_password(new_password)
        await self.db.commit()
        logger.info("users.password_reset", user_id=str(user_id))
