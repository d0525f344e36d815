"""To-do API routes.

Learn: Every route is owner-scoped through TodoService, which is built
from the caller's identity. Items owned by someone else come back as 404,
the same as items that do not exist.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.auth.dependencies import CurrentIdentity, get_current_user
from todoapp.db.engine import get_db
from todoapp.errors import ValidationError
from todoapp.schemas.todo import TodoCreate, TodoRead, TodoUpdate
from todoapp.services.todo_service import TodoService

router = APIRouter(prefix="/todos")


def _svc(
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TodoService:
    return TodoService(db, owner_id=identity.user_uuid)


@router.get("", response_model=list[TodoRead], name="todos:list")
async def list_todos(svc: TodoService = Depends(_svc)):
    """The caller's items, newest first."""
    return await svc.list_todos()


@router.get("/{todo_id}", response_model=TodoRead, name="todos:get")
async def get_todo(todo_id: int, svc: TodoService = Depends(_svc)):
    return await svc.get_todo(todo_id)


@router.post("", response_model=TodoRead, status_code=201, name="todos:create")
async def create_todo(body: TodoCreate, svc: TodoService = Depends(_svc)):
    return await svc.create_todo(
        title=body.title,
        description=body.description,
        is_completed=body.is_completed,
        due_date=body.due_date,
    )


@router.put("/{todo_id}", response_model=TodoRead, name="todos:update")
async def update_todo(todo_id: int, body: TodoUpdate, svc: TodoService = Depends(_svc)):
    if body.id != todo_id:
        raise ValidationError("ID mismatch")
    return await svc.update_todo(
        todo_id,
        title=body.title,
        description=body.description,
        is_completed=body.is_completed,
        due_date=body.due_date,
    )


@router.delete("/{todo_id}", status_code=204, name="todos:delete")
async def delete_todo(todo_id: int, svc: TodoService = Depends(_svc)):
    await svc.delete_todo(todo_id)
    return Response(status_code=204)
