"""Auth API — registration, login, current identity.

Learn: Routes for user authentication:
- POST /auth/register → create account with role "User" → JWT
- POST /auth/login → email/password → JWT (2h, no refresh token)
- GET /auth/me → claims of the presented token

Tokens are minted by UserService.issue_token, which reads the user's
roles from the database at that moment.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.auth.dependencies import CurrentIdentity, get_current_user
from todoapp.db.engine import get_db
from todoapp.schemas.auth import LoginRequest, MeResponse, RegisterRequest, TokenResponse
from todoapp.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(body: RegisterRequest, svc: UserService = Depends(_svc)):
    """Create a new user account and sign it in."""
    user = await svc.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    token, expires_at = await svc.issue_token(user)
    return TokenResponse(token=token, expires_at=expires_at)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: UserService = Depends(_svc)):
    """Login with email and password → JWT."""
    user = await svc.authenticate(body.email, body.password)
    token, expires_at = await svc.issue_token(user)
    logger.info("auth.login", user_id=str(user.id))
    return TokenResponse(token=token, expires_at=expires_at)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(identity: CurrentIdentity = Depends(get_current_user)):
    """Identity and roles as carried by the presented token."""
    return MeResponse(
        id=identity.user_id,
        name=identity.name,
        email=identity.email,
        roles=list(identity.roles),
    )
