"""
Database Connection Management

Async SQLAlchemy engine and session handling for FastAPI.
The engine is created lazily from settings so tests can swap the URL
before first use (see reset_db_state()).
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from agent_eval.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get (or create) the process-wide async engine."""
    global _engine

    if _engine is None:
        settings = get_settings()
        engine_kwargs: dict = {"echo": settings.debug, "pool_pre_ping": True}
        if not settings.database_url.startswith("sqlite"):
            engine_kwargs["pool_size"] = settings.database_pool_size
            engine_kwargs["max_overflow"] = settings.database_max_overflow
        _engine = create_async_engine(settings.database_url, **engine_kwargs)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get (or create) the session factory bound to the engine."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )

    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency providing a database session per request.

    Rolls back on unhandled errors. Routers commit explicitly.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def init_db() -> None:
    """
    Verify database connectivity on startup.

    Creates missing tables when create_schema_on_startup is enabled;
    production schemas are managed outside this service.
    """
    settings = get_settings()
    engine = get_engine()

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if settings.create_schema_on_startup:
            from agent_eval.models.orm import Base

            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database schema created")


async def close_db() -> None:
    """Dispose of the engine and its connection pool."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def reset_db_state() -> None:
    """
    Forget the cached engine and session factory.

    Used by tests after changing settings. Does not dispose connections.
    """
    global _engine, _session_factory
    _engine = None
    _session_factory = None
