"""
Comment Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.schemas.user import UserReadPublic


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment must not be blank")
        return v


class CommentUpdate(CommentCreate):
    pass


class CommentRead(BaseModel):
    id: uuid.UUID
    content: str
    task_id: uuid.UUID
    author_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    author: UserReadPublic | None = None

    model_config = {"from_attributes": True}
