"""Pydantic schemas for to-do items."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

TITLE_PATTERN = r"^[a-zA-Z0-9\s\.\-_',!?]*$"


class TodoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, pattern=TITLE_PATTERN)
    description: Optional[str] = Field(None, max_length=500)
    is_completed: bool = False
    due_date: Optional[datetime] = None


class TodoUpdate(TodoCreate):
    """Full replacement. The body id must match the path id."""
    id: int


class TodoRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    is_completed: bool
    created_at: datetime
    due_date: Optional[datetime] = None
    user_id: uuid.UUID

    model_config = {"from_attributes": True}
