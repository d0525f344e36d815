"""Pydantic schemas for registration, login and the current identity.

Learn: Password complexity is checked in a field_validator rather than a
Field pattern — pydantic's regex engine has no lookaheads.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

NAME_PATTERN = r"^[a-zA-Z\s]*$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a number"),
    (re.compile(r"[^\da-zA-Z]"), "a special character"),
)


def check_password_strength(password: str) -> str:
    missing = [label for rx, label in _PASSWORD_RULES if not rx.search(password)]
    if missing:
        raise ValueError("Password must contain " + ", ".join(missing))
    return password


class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=1, max_length=50, pattern=NAME_PATTERN)
    email: str = Field(..., max_length=100, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8, max_length=100)
    confirm_password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match.")
        return self


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=100)
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: int


class MeResponse(BaseModel):
    id: str
    name: str
    email: str
    roles: list[str]
