"""
User profile routes.
Accounts are managed by the identity service; this API only reads them.
"""
from __future__ import annotations

from fastapi import APIRouter

from app.core.dependencies import CurrentUser, DBSession
from app.core.exceptions import NotFoundException
from app.crud.user import crud_user
from app.schemas.user import UserRead, UserReadPublic

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserRead, summary="Get current user profile")
async def get_me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)


@router.get(
    "/profile/{email}",
    response_model=UserReadPublic,
    summary="Look up an active user's public profile by email",
)
async def get_profile_by_email(
    email: str,
    current_user: CurrentUser,
    db: DBSession,
) -> UserReadPublic:
    """Lets share and assign pickers resolve an address before submitting it."""
    user = await crud_user.get_active_by_email(db, email)
    if user is None:
        raise NotFoundException("User", email)
    return UserReadPublic.model_validate(user)
