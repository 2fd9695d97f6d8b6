"""
Task Pydantic schemas.
Create and update share one write shape: updates replace every field.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.user import UserReadPublic

TaskStatus = Literal["TODO", "IN_PROGRESS", "DONE"]
TaskPriority = Literal["LOW", "MEDIUM", "HIGH"]


# ── Create / Update ───────────────────────────────────────────────────────────

class TaskWrite(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    status: TaskStatus = "TODO"
    priority: TaskPriority = "MEDIUM"
    due_date: date | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Task title must not be blank")
        return v


class TaskCreate(TaskWrite):
    pass


class TaskUpdate(TaskWrite):
    pass


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


# ── Assign ────────────────────────────────────────────────────────────────────

class TaskAssign(BaseModel):
    assignee_email: EmailStr


# ── Read ──────────────────────────────────────────────────────────────────────

class TaskRead(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: date | None
    created_by_id: uuid.UUID | None
    version: int
    overdue: bool
    created_at: datetime
    updated_at: datetime
    assignees: list[UserReadPublic] = []

    model_config = {"from_attributes": True}


# ── Filter ────────────────────────────────────────────────────────────────────

class TaskFilter(BaseModel):
    """Query parameters for the task list endpoint. Present filters are ANDed."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    search: str | None = Field(default=None, max_length=200)
