"""User administration API routes.

Learn: No role checks live here. Which routes need "Admin" (and which
allow the user themselves) is declared in auth.policy.POLICIES and
enforced by the router-level authorize dependency before these run.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.auth.dependencies import CurrentIdentity, get_current_user
from todoapp.db.engine import get_db
from todoapp.errors import ValidationError
from todoapp.schemas.user import ChangePasswordRequest, MessageResponse, UserRead, UserUpdate
from todoapp.services.user_service import UserService

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=list[UserRead], name="users:list")
async def list_users(svc: UserService = Depends(_svc)):
    """All users, oldest first."""
    return [UserRead.from_user(u) for u in await svc.list_users()]


@router.get("/roles", response_model=list[str], name="users:roles")
async def list_roles(svc: UserService = Depends(_svc)):
    return await svc.list_roles()


@router.get("/{user_id}", response_model=UserRead, name="users:get")
async def get_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    return UserRead.from_user(await svc.get_user(user_id))


@router.put("/{user_id}", response_model=UserRead, name="users:update")
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    svc: UserService = Depends(_svc),
):
    """Replace a user's profile, active flag and roles."""
    if body.id != user_id:
        raise ValidationError("ID mismatch")
    user = await svc.update_user(
        user_id,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        is_active=body.is_active,
        roles=body.roles,
    )
    return UserRead.from_user(user)


@router.delete("/{user_id}", response_model=MessageResponse, name="users:delete")
async def delete_user(
    user_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    await svc.delete_user(actor_id=identity.user_uuid, user_id=user_id)
    return MessageResponse(message="User deleted successfully")


@router.post("/{user_id}/change-password", response_model=MessageResponse, name="users:change_password")
async def change_password(
    user_id: uuid.UUID,
    body: ChangePasswordRequest,
    svc: UserService = Depends(_svc),
):
    if body.user_id != user_id:
        raise ValidationError("ID mismatch")
    await svc.change_password(user_id, body.new_password)
    return MessageResponse(message="Password changed successfully")
