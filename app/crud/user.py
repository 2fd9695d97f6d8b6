"""
User CRUD operations.
Extends CRUDBase with user-specific queries.
"""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.models.user import User
from app.schemas.user import UserRead


class CRUDUser(CRUDBase[User, UserRead, UserRead]):

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        """Case-insensitive lookup; addresses are unique regardless of case."""
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_active_by_email(self, db: AsyncSession, email: str) -> User | None:
        user = await self.get_by_email(db, email)
        if user is None or not user.is_active:
            return None
        return user


crud_user = CRUDUser(User)
