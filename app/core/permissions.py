"""
Project roles and capabilities.

Roles form a fixed total order OWNER > ADMIN > MANAGER > MEMBER > VIEWER.
Every capability maps to the minimum role that grants it, and all checks go
through can_perform() so the rules live in exactly one table.
"""
from __future__ import annotations

import enum


class ProjectRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"

    @property
    def rank(self) -> int:
        # Higher rank means more privilege.
        return len(_ROLE_ORDER) - _ROLE_ORDER.index(self)

    def at_least(self, other: ProjectRole) -> bool:
        return self.rank >= other.rank


_ROLE_ORDER: tuple[ProjectRole, ...] = (
    ProjectRole.OWNER,
    ProjectRole.ADMIN,
    ProjectRole.MANAGER,
    ProjectRole.MEMBER,
    ProjectRole.VIEWER,
)

# Roles that may be granted through share / role-change. OWNER is set once at creation.
ASSIGNABLE_ROLES: tuple[ProjectRole, ...] = _ROLE_ORDER[1:]


class Capability(str, enum.Enum):
    VIEW_PROJECT = "view_project"
    COMMENT = "comment"
    MODERATE_COMMENTS = "moderate_comments"
    EDIT_TASKS = "edit_tasks"
    ASSIGN_TASKS = "assign_tasks"
    MANAGE_ATTACHMENTS = "manage_attachments"
    MANAGE_MEMBERS = "manage_members"
    DELETE_PROJECT = "delete_project"


MINIMUM_ROLE: dict[Capability, ProjectRole] = {
    Capability.VIEW_PROJECT: ProjectRole.VIEWER,
    Capability.COMMENT: ProjectRole.MEMBER,
    Capability.MODERATE_COMMENTS: ProjectRole.MANAGER,
    Capability.EDIT_TASKS: ProjectRole.MEMBER,
    Capability.ASSIGN_TASKS: ProjectRole.MEMBER,
    Capability.MANAGE_ATTACHMENTS: ProjectRole.MEMBER,
    Capability.MANAGE_MEMBERS: ProjectRole.MANAGER,
    Capability.DELETE_PROJECT: ProjectRole.MANAGER,
}


def can_perform(role: ProjectRole | None, capability: Capability) -> bool:
    """Return True if a holder of `role` may exercise `capability`. Non-members never may."""
    if role is None:
        return False
    return role.at_least(MINIMUM_ROLE[capability])
