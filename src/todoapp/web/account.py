"""Front-end account routes — sign in, register, sign out.

Learn: Login and register call the API, then store the returned API token
in the session cookie and redirect (303) to the home page. An admin who is
already signed in and registers someone else keeps their own session and
is sent to the user list instead.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from todoapp.schemas.auth import RegisterRequest
from todoapp.web.api_client import ApiClient, get_api_client
from todoapp.web.session import (
    WebSession,
    clear_session_cookie,
    get_optional_session,
    get_session,
    set_session_cookie,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/account")


class WebLoginRequest(BaseModel):
    email: str
    password: str
    remember_me: bool = False


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


@router.post("/login")
async def login(
    body: WebLoginRequest,
    request: Request,
    api: ApiClient = Depends(get_api_client),
):
    resp = await api.post(
        "/api/auth/login",
        json={"email": body.email, "password": body.password},
        request_id=_request_id(request),
    )
    if not resp.success:
        if resp.status_code == 401:
            raise HTTPException(status_code=401, detail="Invalid login attempt.")
        raise HTTPException(status_code=resp.status_code, detail=resp.error)

    redirect = RedirectResponse("/", status_code=303)
    session = set_session_cookie(redirect, resp.data["token"], persistent=body.remember_me)
    logger.info("web.signed_in", user_id=session.identity.user_id)
    return redirect


@router.post("/register")
async def register(
    body: RegisterRequest,
    request: Request,
    current: Optional[WebSession] = Depends(get_optional_session),
    api: ApiClient = Depends(get_api_client),
):
    resp = await api.post(
        "/api/auth/register",
        json=body.model_dump(),
        request_id=_request_id(request),
    )
    if not resp.success:
        raise HTTPException(status_code=resp.status_code, detail=resp.error)

    if current and current.identity.is_admin:
        return RedirectResponse("/users", status_code=303)

    redirect = RedirectResponse("/", status_code=303)
    set_session_cookie(redirect, resp.data["token"])
    return redirect


@router.post("/logout")
async def logout():
    redirect = RedirectResponse("/", status_code=303)
    clear_session_cookie(redirect)
    return redirect


@router.get("/me")
async def me(session: WebSession = Depends(get_session)):
    identity = session.identity
    return {
        "id": identity.user_id,
        "name": identity.name,
        "email": identity.email,
        "roles": list(identity.roles),
        "expires_at": session.expires_at.isoformat(),
    }
