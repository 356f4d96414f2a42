"""
Database connection and session management.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from togglekit.core.config import DatabaseSettings, settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLite emit its own BEGIN so SAVEPOINT/ROLLBACK TO work.

    The pysqlite/aiosqlite drivers defer BEGIN until the first DML
    statement, which breaks nested transactions used by bulk toggles.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(db_settings: DatabaseSettings) -> AsyncEngine:
    """Create an async engine from database settings."""
    if db_settings.is_sqlite:
        engine = create_async_engine(db_settings.url, echo=db_settings.echo)
        enable_sqlite_savepoints(engine)
        return engine

    return create_async_engine(
        db_settings.url,
        echo=db_settings.echo,
        pool_size=db_settings.pool_size,
        max_overflow=db_settings.pool_overflow,
        pool_timeout=db_settings.pool_timeout,
    )


# Create async engine
engine = build_engine(settings.database)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Initialize database (create tables)."""
    from .base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
