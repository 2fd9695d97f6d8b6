"""
Security utilities: JWT access token creation and verification.
Tokens use python-jose. Credentials are issued by the identity service, which
shares SECRET_KEY with this API; create_access_token exists for that service
and for tests.
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings


def create_access_token(
    user_id: str | uuid.UUID,
    expire_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Create a signed JWT access token for the given user id."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "type": "access",
        "iat": now,
        "exp": now + (expire_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
        "jti": secrets.token_hex(16),
    }
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.
    Raises JWTError on failure.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return payload


def subject_from_token(token: str) -> uuid.UUID:
    """
    Return the user id carried by a valid access token.
    Raises JWTError when the token is invalid or its subject is malformed.
    """
    payload = decode_access_token(token)
    user_id_str = payload.get("sub")
    if not user_id_str:
        raise JWTError("Malformed token: missing subject")
    try:
        return uuid.UUID(user_id_str)
    except ValueError as exc:
        raise JWTError("Malformed token: invalid subject format") from exc
