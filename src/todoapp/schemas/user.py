"""Pydantic schemas for user administration."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from todoapp.db.models import User
from todoapp.schemas.auth import EMAIL_PATTERN, NAME_PATTERN


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    display_name: str
    created_at: datetime
    is_active: bool
    roles: list[str] = []

    @classmethod
    def from_user(cls, user: User) -> "UserRead":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            display_name=user.display_name,
            created_at=user.created_at,
            is_active=user.is_active,
            roles=user.role_names,
        )


class UserUpdate(BaseModel):
    """Replaces profile fields, the active flag and the whole role set."""
    id: uuid.UUID
    email: str = Field(..., max_length=100, pattern=EMAIL_PATTERN)
    first_name: str = Field(..., min_length=1, max_length=50, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=1, max_length=50, pattern=NAME_PATTERN)
    is_active: bool = True
    roles: list[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ChangePasswordRequest(BaseModel):
    user_id: uuid.UUID
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class MessageResponse(BaseModel):
    message: str
