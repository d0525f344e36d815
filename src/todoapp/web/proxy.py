"""Front-end JSON pass-through to the API (/webapi/...).

Learn: Every route requires a session (router-level get_session) and
forwards the embedded API token unchanged. Authorization decisions stay
with the API: upstream 401/403/404 are relayed with their status and
detail, never reinterpreted here.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from todoapp.schemas.todo import TodoCreate, TodoUpdate
from todoapp.schemas.user import ChangePasswordRequest, UserUpdate
from todoapp.web.api_client import ApiClient, ApiResponse, get_api_client
from todoapp.web.session import WebSession, get_session

router = APIRouter(prefix="/webapi")


class Upstream:
    """Per-request binding of the API client to the caller's token."""

    def __init__(
        self,
        request: Request,
        session: WebSession = Depends(get_session),
        api: ApiClient = Depends(get_api_client),
    ):
        self.api = api
        self.token = session.access_token
        self.request_id = getattr(request.state, "request_id", None)

    async def call(self, method: str, endpoint: str, json=None) -> ApiResponse:
        resp = await self.api.request(
            method, endpoint, token=self.token, json=json, request_id=self.request_id
        )
        if not resp.success:
            raise HTTPException(status_code=resp.status_code, detail=resp.error)
        return resp


def _relay(resp: ApiResponse) -> Response:
    if resp.status_code == 204 or resp.data is None:
        return Response(status_code=204)
    return JSONResponse(resp.data, status_code=resp.status_code)


# ─── Todos ──────────────────────────────────────────────


@router.get("/todos")
async def list_todos(up: Upstream = Depends()):
    return _relay(await up.call("GET", "/api/todos"))


@router.post("/todos")
async def create_todo(body: TodoCreate, up: Upstream = Depends()):
    return _relay(await up.call("POST", "/api/todos", json=body.model_dump(mode="json")))


@router.put("/todos/{todo_id}")
async def update_todo(todo_id: int, body: TodoUpdate, up: Upstream = Depends()):
    if body.id != todo_id:
        raise HTTPException(status_code=400, detail="ID mismatch")
    return _relay(
        await up.call("PUT", f"/api/todos/{todo_id}", json=body.model_dump(mode="json"))
    )


@router.delete("/todos/{todo_id}")
async def delete_todo(todo_id: int, up: Upstream = Depends()):
    return _relay(await up.call("DELETE", f"/api/todos/{todo_id}"))


# ─── Users ──────────────────────────────────────────────


@router.get("/users")
async def list_users(up: Upstream = Depends()):
    return _relay(await up.call("GET", "/api/users"))


@router.get("/users/roles")
async def list_roles(up: Upstream = Depends()):
    return _relay(await up.call("GET", "/api/users/roles"))


@router.get("/users/{user_id}")
async def get_user(user_id: uuid.UUID, up: Upstream = Depends()):
    return _relay(await up.call("GET", f"/api/users/{user_id}"))


@router.put("/users/{user_id}")
async def update_user(user_id: uuid.UUID, body: UserUpdate, up: Upstream = Depends()):
    return _relay(
        await up.call("PUT", f"/api/users/{user_id}", json=body.model_dump(mode="json"))
    )


@router.delete("/users/{user_id}")
async def delete_user(user_id: uuid.UUID, up: Upstream = Depends()):
    return _relay(await up.call("DELETE", f"/api/users/{user_id}"))


@router.post("/users/{user_id}/change-password")
async def change_password(
    user_id: uuid.UUID, body: ChangePasswordRequest, up: Upstream = Depends()
):
    return _relay(
        await up.call(
            "POST",
            f"/api/users/{user_id}/change-password",
            json=body.model_dump(mode="json"),
        )
    )


@router.post("/users/{user_id}/toggle-status")
async def toggle_status(user_id: uuid.UUID, up: Upstream = Depends()):
    """Flip a user's active flag, keeping everything else as it is."""
    current = (await up.call("GET", f"/api/users/{user_id}")).data
    body = {
        "id": current["id"],
        "email": current["email"],
        "first_name": current["first_name"],
        "last_name": current["last_name"],
        "is_active": not current["is_active"],
        "roles": current["roles"],
    }
    return _relay(await up.call("PUT", f"/api/users/{user_id}", json=body))
