"""
FastAPI dependency injection functions.
Provides get_db, get_current_user and the token resolution shared with the
notification stream, which carries its credential as a query parameter.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTokenException, UnauthorizedException
from app.core.security import subject_from_token
from app.crud.user import crud_user
from app.db.session import get_db
from app.models.user import User

# Re-export get_db so routes can import from one place
__all__ = ["get_db", "get_current_user", "resolve_token_user", "DBSession", "CurrentUser"]

bearer_scheme = HTTPBearer(auto_error=False)


async def resolve_token_user(db: AsyncSession, token: str | None) -> User:
    """
    Map a bearer token to an active user.
    Raises UnauthorizedException / InvalidTokenException otherwise.
    """
    if not token:
        raise UnauthorizedException("Missing authentication token")

    try:
        user_id = subject_from_token(token)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")

    user = await crud_user.get(db, user_id)
    if user is None:
        raise UnauthorizedException("User not found")
    if not user.is_active:
        raise UnauthorizedException("User account is deactivated")

    return user


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> User:
    """
    Extract and validate the JWT access token from the Authorization header.
    Returns the authenticated User model.
    """
    token = credentials.credentials if credentials is not None else None
    return await resolve_token_user(db, token)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
