"""
Database engine and session factory.

PostgreSQL (asyncpg) is the production store. SQLite (aiosqlite) is used for
local development and tests; there every transaction starts with
BEGIN IMMEDIATE so concurrent writers queue on the database lock instead of
failing on a read-to-write lock upgrade.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from imagestudio.models.base import Base

# Seconds a SQLite connection waits for the write lock
SQLITE_BUSY_TIMEOUT = 30


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the configured database URL."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
        )
        _use_immediate_transactions(engine)
        return engine

    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # Stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """One session per unit of work; objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create all tables defined in the models."""
    # Register models with Base.metadata
    from imagestudio.models import credit, order  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all_tables(engine: AsyncEngine) -> None:
    """Drop all tables (for testing)."""
    from imagestudio.models import credit, order  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
