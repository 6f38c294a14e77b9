"""
CookShare Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with
       the full schema created from Base.metadata. Service tests use the
       `db_session` fixture directly; route tests use `test_client`, whose
       app has `get_db_session` overridden to hand out sessions bound to
       the same in-memory database.

Fixture Hierarchy (all function-scoped):
    db_engine ─┬─ db_session ── users
               └─ test_client
"""

import os

# Must be set before anything imports cookshare.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from typing import AsyncGenerator, Dict

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cookshare.database import Base, enable_sqlite_savepoints, get_db_session
from cookshare.models.group import Group, GroupMember, JoinRequest  # noqa: F401
from cookshare.models.group_post import GroupPost, PostComment, PostLike  # noqa: F401
from cookshare.models.user import User


@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the schema created.

    StaticPool keeps the single connection (and with it the in-memory
    database) alive across sessions for the duration of the test.
    Savepoints are enabled the same way as for the application engine.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db_session) -> Dict[str, User]:
    """
    Seeds four users: alice (usually the creator), bob, carol, dave.

    `ghost` is deliberately absent so enrichment fallbacks can be tested.
    """
    seeded = [
        User(id="alice", full_name="Alice Levi", email="alice@example.com", bio="Sourdough nerd"),
        User(id="bob", full_name="Bob Katz", email="bob@example.com", avatar="data:image/png;base64,AAA"),
        User(id="carol", full_name="Carol Ben-David", email="carol@example.com"),
        User(id="dave", full_name="Dave Mizrahi", email="dave@example.com"),
    ]
    db_session.add_all(seeded)
    await db_session.flush()
    return {user.id: user for user in seeded}


@pytest_asyncio.fixture
async def test_client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Each request gets its own session on the test database, committed on
    success and rolled back on error, like `get_db_session` in production.
    """
    from cookshare.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
