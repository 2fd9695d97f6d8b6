"""
Project and ProjectMember Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.permissions import ProjectRole
from app.schemas.user import UserReadPublic

# OWNER is never granted through sharing or a role change.
AssignableRole = Literal["ADMIN", "MANAGER", "MEMBER", "VIEWER"]


# ── Project Create / Read ─────────────────────────────────────────────────────

class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name must not be blank")
        return v


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    role: ProjectRole | None = None

    model_config = {"from_attributes": True}


# ── ProjectMember schemas ─────────────────────────────────────────────────────

class ProjectShare(BaseModel):
    email: EmailStr
    role: AssignableRole = "MEMBER"


class MemberRoleUpdate(BaseModel):
    role: AssignableRole


class ProjectMemberRead(BaseModel):
    project_id: uuid.UUID
    user_id: uuid.UUID
    role: ProjectRole
    joined_at: datetime
    user: UserReadPublic | None = None

    model_config = {"from_attributes": True}
