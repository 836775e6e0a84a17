from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

# Query/P&L side. Same pool when no dedicated read-only role is configured.
readonly_engine: AsyncEngine = (
    engine
    if settings.readonly_database_url == settings.DATABASE_URL
    else create_async_engine(
        settings.readonly_database_url,
        echo=settings.DEBUG,
        pool_size=10,
        max_overflow=10,
    )
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

readonly_session_factory = async_sessionmaker(
    readonly_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

_READ_ONLY_SQL = text("SET TRANSACTION READ ONLY")


async def get_readonly_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for read endpoints.

    The transaction is marked READ ONLY so ledger aggregation can never write,
    even through a shared pool. Rolled back on exit; nothing to commit.
    """
    async with readonly_session_factory() as session:
        await session.execute(_READ_ONLY_SQL)
        try:
            yield session
        finally:
            await session.rollback()


async def dispose_engines() -> None:
    await engine.dispose()
    if readonly_engine is not engine:
        await readonly_engine.dispose()
