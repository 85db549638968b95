"""
Async engine and session factory.

PostgreSQL (asyncpg) is the production store. SQLite (aiosqlite) is used for
local development and the test suite; there every transaction is opened with
BEGIN IMMEDIATE so that writers are serialized the same way the guarded
UPDATEs serialize them on PostgreSQL, and so that SAVEPOINT works.
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tablerewards.core.config import get_settings

settings = get_settings()


def _enable_sqlite_immediate_transactions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # Stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with the pool/transaction setup for its backend."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False, **kwargs)
        _enable_sqlite_immediate_transactions(engine)
        return engine

    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        **kwargs,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Objects stay readable after commit; the engine commits before responding
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_engine_for_url(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Commits what the handler left open, rolls back on error."""
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
