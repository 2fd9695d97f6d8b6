"""
User Pydantic schemas.
Users are provisioned by the identity service; only read shapes live here.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserRead(BaseModel):
    id: uuid.UUID
    email: EmailStr
    full_name: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserReadPublic(BaseModel):
    """Minimal public profile, safe to expose in task/comment responses."""

    id: uuid.UUID
    email: str
    full_name: str | None

    model_config = {"from_attributes": True}
