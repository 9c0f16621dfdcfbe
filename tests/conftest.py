"""Shared test fixtures.

Every test gets its own SQLite database file; Redis is never initialised,
so rate limiting is skipped.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from goal_assistant.auth.jwt import reset_keys
from goal_assistant.config import get_settings
from goal_assistant.database import close_db, create_schema, get_session, init_db
from goal_assistant.gamification.seed import seed_achievements
from goal_assistant.main import create_app
from goal_assistant.modules.builtin import build_default_registry
from goal_assistant.modules.registry import ModuleRegistry
from goal_assistant.modules.service import sync_registry

TEST_PASSWORD = "SecureP@ss1"


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch) -> AsyncGenerator[str, None]:
    """Point settings at a fresh SQLite file and create the schema."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    monkeypatch.setenv("GA_DATABASE_URL", url)
    monkeypatch.setenv("GA_LOG_FORMAT", "console")
    get_settings.cache_clear()
    reset_keys()

    await init_db(url)
    await create_schema()
    yield url

    await close_db()
    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def registry(database: str) -> ModuleRegistry:
    """Built-in modules, synced into the database with the achievement catalog seeded."""
    reg = await build_default_registry()
    async for db in get_session():
        await sync_registry(db, reg)
        await seed_achievements(db, reg)
        break
    return reg


@pytest_asyncio.fixture
async def client(registry: ModuleRegistry) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against an app sharing the test registry and database."""
    app = create_app(registry)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


async def register(client: AsyncClient, email: str = "alice@example.com", name: str = "Alice") -> dict:
    """Register through the API and return credentials plus tokens."""
    response = await client.post("/api/v1/auth/register", json={
        "email": email,
        "password": TEST_PASSWORD,
        "name": name,
    })
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "email": email,
        "password": TEST_PASSWORD,
        "user_id": data["user"]["id"],
        "access_token": data["access_token"],
        "refresh_token": data["refresh_token"],
    }


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict:
    return await register(client)


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, registered_user: dict) -> AsyncClient:
    """Client sending the registered user's access token as a bearer header."""
    client.headers["Authorization"] = f"Bearer {registered_user['access_token']}"
    return client
