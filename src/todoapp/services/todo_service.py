"""To-do service — owner-scoped CRUD.

Learn: The service is constructed for one owner. Every query filters on
(id, user_id), so an item belonging to someone else is indistinguishable
from one that does not exist: both raise NotFoundError (404).
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from todoapp.db.models import TodoItem
from todoapp.errors import NotFoundError


class TodoService:
    """CRUD over the caller's own to-do items."""

    def __init__(self, db: AsyncSession, owner_id: uuid.UUID):
        self.db = db
        self.owner_id = owner_id

    async def list_todos(self) -> list[TodoItem]:
        result = await self.db.execute(
            select(TodoItem)
            .where(TodoItem.user_id == self.owner_id)
            .order_by(TodoItem.created_at.desc(), TodoItem.id.desc())
        )
        return list(result.scalars().all())

    async def get_todo(self, todo_id: int) -> TodoItem:
        result = await self.db.execute(
            select(TodoItem).where(
                TodoItem.id == todo_id,
                TodoItem.user_id == self.owner_id,
            )
        )
        todo = result.scalars().first()
        if not todo:
            raise NotFoundError("Todo not found")
        return todo

    async def create_todo(
        self,
        title: str,
        description: Optional[str] = None,
        is_completed: bool = False,
        due_date: Optional[datetime] = None,
    ) -> TodoItem:
        now = datetime.now(timezone.utc)
        todo = TodoItem(
            title=title,
            description=description,
            is_completed=is_completed,
            created_at=now,
            due_date=due_date or now,
            user_id=self.owner_id,
        )
        self.db.add(todo)
        await self.db.commit()
        return todo

    async def update_todo(
        self,
        todo_id: int,
        title: str,
        description: Optional[str],
        is_completed: bool,
        due_date: Optional[datetime],
    ) -> TodoItem:
        todo = await self.get_todo(todo_id)
        todo.title = title
        todo.description = description
        todo.is_completed = is_completed
        todo.due_date = due_date
        await self.db.commit()
        return todo

    async def delete_todo(self, todo_id: int) -> None:
        todo = await self.get_todo(todo_id)
        await self.db.delete(todo)
        await self.db.commit()
