"""
Engine lifecycle and transactional session scopes (SQLAlchemy 2.0 async).
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dsportal.core.config import Settings, get_settings

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": settings.database_pool_timeout,
        "pool_pre_ping": True,
        "echo": settings.debug,
        # visible in pg_stat_activity
        "connect_args": {"server_settings": {"application_name": "dataspace-portal"}},
    }


async def init_db() -> None:
    global _engine, _sessions

    settings = get_settings()
    _engine = create_async_engine(str(settings.database_url), **_engine_options(settings))
    _sessions = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)


async def close_db() -> None:
    global _engine, _sessions

    engine, _engine, _sessions = _engine, None, None
    if engine is not None:
        await engine.dispose()


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    A session that commits on normal exit and rolls back on any exception.

    Workflows that must persist an intermediate result (the tenant
    correlation claim) commit explicitly inside the scope.
    """
    if _sessions is None:
        raise RuntimeError("Database not initialized; init_db() must run first")

    async with _sessions() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency."""
    async with session_scope() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
