"""
Test fixtures for the Wallet Ledger API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Its own client with a pre-registered MEMBER and JWT
  - admin_client: Its own client with a pre-registered ADMIN and JWT
  - second_authenticated_client: A second MEMBER for cross-user tests
  - member_id / second_member_id: The two members' user ids
  - file_engine / file_admin_client: File-backed SQLite for concurrency tests

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - In-memory SQLite shares ONE connection between all sessions, so tests
    that need two truly concurrent transactions use a file-backed database
    instead, where each session gets its own connection.
  - We override FastAPI's get_db dependency to inject our test sessions,
    so the application code works exactly as it does in production.
  - Members are created via the real signup endpoint. The admin signs up
    normally and is then promoted directly in the database, the way
    demo/promote_admin.py does it.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import uuid

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from wallet_ledger.database import Base, get_db
from wallet_ledger.main import app
from wallet_ledger.models.user import User, UserType
from wallet_ledger.services.notification_service import LogSink, dispatcher


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

MEMBER = {"email": "testuser@example.com", "password": "SecurePass123!", "full_name": "Test User"}
SECOND_MEMBER = {"email": "seconduser@example.com", "password": "SecurePass456!", "full_name": "Second User"}
ADMIN = {"email": "admin@example.com", "password": "AdminPass123!", "full_name": "Admin User"}


def _session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _override_get_db(engine):
    async_session = _session_factory(engine)

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return override_get_db


async def _signup(client: AsyncClient, credentials: dict) -> uuid.UUID:
    response = await client.post("/auth/signup", json=credentials)
    assert response.status_code == 201, f"Signup failed: {response.text}"
    client.headers["Authorization"] = f"Bearer {response.json()['token']}"
    return uuid.UUID(response.json()["user_id"])


async def _promote_to_admin(engine, user_id: uuid.UUID) -> None:
    async with _session_factory(engine)() as session:
        await session.execute(
            update(User).where(User.id == user_id).values(user_type=UserType.ADMIN)
        )
        await session.commit()


@pytest_asyncio.fixture(autouse=True)
async def reset_notifications():
    """Every test starts with an empty event queue and only the log sink."""
    dispatcher.sinks = [LogSink()]
    yield
    await dispatcher.stop()
    dispatcher.sinks = [LogSink()]


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async with _session_factory(db_engine)() as session:
        yield session


@pytest_asyncio.fixture
async def client_factory(db_engine):
    """
    Build independent test clients that share the test database.

    Each client has its own headers, so a member and an admin can be used
    side by side in one test.
    """
    app.dependency_overrides[get_db] = _override_get_db(db_engine)
    clients = []

    def make_client(**transport_options) -> AsyncClient:
        ac = AsyncClient(
            transport=ASGITransport(app=app, **transport_options),
            base_url="http://test",
        )
        clients.append(ac)
        return ac

    yield make_client

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(client_factory):
    """Async HTTP test client with the test database injected."""
    return client_factory()


@pytest_asyncio.fixture
async def authenticated_client(client_factory):
    """Test client signed in as a MEMBER (via the real signup endpoint)."""
    ac = client_factory()
    await _signup(ac, MEMBER)
    return ac


@pytest_asyncio.fixture
async def second_authenticated_client(client_factory):
    """A second MEMBER for cross-user tests."""
    ac = client_factory()
    await _signup(ac, SECOND_MEMBER)
    return ac


@pytest_asyncio.fixture
async def admin_client(client_factory, db_engine):
    """
    Test client signed in as an ADMIN.

    Signs up normally, is promoted in the database, then logs in again.
    The role is re-read on every request, so the old token would work too.
    """
    ac = client_factory()
    user_id = await _signup(ac, ADMIN)
    await _promote_to_admin(db_engine, user_id)

    login_response = await ac.post(
        "/auth/login",
        json={"email": ADMIN["email"], "password": ADMIN["password"]},
    )
    ac.headers["Authorization"] = f"Bearer {login_response.json()['token']}"
    return ac


async def _own_user_id(ac: AsyncClient) -> uuid.UUID:
    response = await ac.get("/wallet/me/balance")
    assert response.status_code == 200, response.text
    return uuid.UUID(response.json()["user_id"])


@pytest_asyncio.fixture
async def member_id(authenticated_client) -> uuid.UUID:
    return await _own_user_id(authenticated_client)


@pytest_asyncio.fixture
async def second_member_id(second_authenticated_client) -> uuid.UUID:
    return await _own_user_id(second_authenticated_client)


# ---------------------------------------------------------------------------
# File-backed database for concurrency tests
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """
    File-backed SQLite engine: every session gets its own connection.

    The generous busy timeout lets a second writer wait for the first one
    to commit instead of failing with "database is locked".
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_admin_client(file_engine):
    """Admin client over the file-backed database."""
    app.dependency_overrides[get_db] = _override_get_db(file_engine)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        user_id = await _signup(ac, ADMIN)
        await _promote_to_admin(file_engine, user_id)
        yield ac
    app.dependency_overrides.clear()
