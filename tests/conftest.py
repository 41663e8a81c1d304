"""
Pytest fixtures for Agent Eval API testing infrastructure.

This module provides:
1. Test environment settings (secret key, testing mode)
2. Database fixtures (SQLite file per test via aiosqlite, schema from the ORM)
3. Owner fixtures (two users, for isolation checks)
4. HTTP client fixture (httpx AsyncClient over the ASGI app)
"""

import os
import sys
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tests.fixtures.auth import TEST_SECRET_KEY, auth_headers, create_test_jwt  # noqa: E402

# Settings are read lazily, so this must happen before anything calls get_settings()
os.environ["AGENT_EVAL_ENVIRONMENT"] = "testing"
os.environ["AGENT_EVAL_SECRET_KEY"] = TEST_SECRET_KEY

from agent_eval.config import get_settings  # noqa: E402
from agent_eval.core.database import get_db, reset_db_state  # noqa: E402
from agent_eval.models.orm import Base, User  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Make sure cached settings and database state reflect the test environment."""
    get_settings.cache_clear()
    reset_db_state()

    yield

    reset_db_state()
    get_settings.cache_clear()


# ==================== DATABASE FIXTURES ====================


def _enable_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy drive transactions on SQLite so SAVEPOINT works.

    pysqlite's own transaction handling breaks begin_nested(); the import
    executor relies on one savepoint per record.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database for each test with the full schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'agent_eval.db'}")
    _enable_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def async_session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Create async session factory."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(async_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for each test."""
    async with async_session_factory() as session:
        yield session


# ==================== OWNER FIXTURES ====================


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    """The user whose data most tests export and import."""
    user = User(email="owner@example.com", name="Owner")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def other_owner(db_session: AsyncSession) -> User:
    """A second, unrelated user."""
    user = User(email="other@example.com", name="Other")
    db_session.add(user)
    await db_session.commit()
    return user


# ==================== HTTP FIXTURES ====================


@pytest_asyncio.fixture
async def client(async_session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the app, with get_db bound to the test database.

    Each request gets its own session, like in production.
    """
    from agent_eval.main import create_app

    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def owner_headers(owner: User) -> dict[str, str]:
    return auth_headers(create_test_jwt(str(owner.id), email=owner.email, name=owner.name))


@pytest.fixture
def other_headers(other_owner: User) -> dict[str, str]:
    return auth_headers(
        create_test_jwt(str(other_owner.id), email=other_owner.email, name=other_owner.name)
    )
