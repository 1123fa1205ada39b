"""Database session management."""

from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import settings

# Supabase uses Supavisor (connection pooler) in transaction mode.
# asyncpg's prepared statement cache is incompatible with transaction-mode
# pooling, so we disable it when connecting through the pooler.
_connect_args: dict = {}
_engine_kwargs: dict[str, Any] = {}
if "pooler.supabase.com" in settings.database_url:
    _connect_args["statement_cache_size"] = 0
if settings.async_database_url.startswith("postgresql+asyncpg"):
    # asyncpg aborts a query after this many seconds
    _connect_args["command_timeout"] = settings.remote_call_timeout_seconds
    _engine_kwargs["pool_timeout"] = settings.remote_call_timeout_seconds

engine = create_async_engine(
    settings.async_database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    connect_args=_connect_args,
    **_engine_kwargs,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
