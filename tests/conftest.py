"""
Test configuration and shared fixtures.
Uses a fresh in-memory SQLite database per test for fast, isolated tests.
Users are inserted directly: accounts belong to the identity service.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.rate_limit import limiter
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.user import User

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """One in-memory database per test, shared by every session of that test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for calling services directly and inspecting rows."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP test client with one test-DB session per request."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    limiter.reset()


# ── Helper fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def make_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., object]:
    """Factory inserting an active user the way the identity service would."""

    async def _make_user(
        email: str, full_name: str | None = None, is_active: bool = True
    ) -> User:
        async with session_factory() as session:
            user = User(email=email, full_name=full_name, is_active=is_active)
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    """Return Authorization headers carrying a token for the given user."""

    def _headers_for(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers_for


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("alice@example.com", "Alice")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("bob@example.com", "Bob")


@pytest_asyncio.fixture
async def carol(make_user) -> User:
    return await make_user("carol@example.com", "Carol")


@pytest.fixture
def alice_headers(alice: User, headers_for) -> dict[str, str]:
    return headers_for(alice)


@pytest.fixture
def bob_headers(bob: User, headers_for) -> dict[str, str]:
    return headers_for(bob)


@pytest.fixture
def carol_headers(carol: User, headers_for) -> dict[str, str]:
    return headers_for(carol)


@pytest_asyncio.fixture
async def project(client: AsyncClient, alice_headers: dict) -> dict:
    """A project owned by alice."""
    response = await client.post(
        "/api/v1/projects", json={"name": "Launch"}, headers=alice_headers
    )
    assert response.status_code == 201, response.text
    return response.json()
