"""
Shared slowapi limiter.
Routes decorate with @limiter.limit(...) and main.py installs the middleware,
so both must see the same instance.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
