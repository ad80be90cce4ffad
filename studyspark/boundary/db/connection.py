"""
Database connection management.

Provides the async SQLAlchemy engine and session factory used by the record
store and the enrichment task queue, plus schema creation.

Dependencies: sqlalchemy, studyspark.configs
System role: Database connection lifecycle management
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from studyspark.boundary.db.base import Base
from studyspark.configs import get_settings
from studyspark.configs.database import DatabaseSettings


def build_async_engine(db_config: DatabaseSettings) -> AsyncEngine:
    """
    Create a new async SQLAlchemy engine.

    Short-lived event loops (one asyncio.run per Lambda invocation) build
    their own engine and dispose it; long-running processes use
    get_async_engine().

    pool_pre_ping=True verifies connections before use to detect stale or
    broken connections early. SQLite engines skip pool sizing.

    Args:
        db_config: Database settings

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Usage:
        engine = build_async_engine(get_settings().database)
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
        await engine.dispose()
    """
    if db_config.is_sqlite:
        return create_async_engine(db_config.async_database_url, echo=db_config.echo_sql)

    return create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo_sql,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_pre_ping=True,
    )


@lru_cache
def get_async_engine() -> AsyncEngine:
    """Process-wide engine built from settings."""
    return build_async_engine(get_settings().database)


def get_async_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker:
    """
    Create async session factory for database operations.

    autocommit=False and autoflush=False for explicit transaction control;
    expire_on_commit=False so rows stay readable after commit.

    Args:
        engine: Engine to bind (defaults to the configured engine)

    Returns:
        async_sessionmaker: Async session factory

    Usage:
        SessionFactory = get_async_session_factory()
        async with SessionFactory() as session:
            session.add(obj)
            await session.commit()
    """
    return async_sessionmaker(
        bind=engine or get_async_engine(),
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """
    Create all tables from registered ORM models.

    Idempotent: CREATE TABLE IF NOT EXISTS for each model.

    Args:
        engine: Engine to use (defaults to the configured engine)
    """
    # Import models so they register with Base.metadata
    from studyspark.boundary.db.models import EnrichmentTaskModel, ProcessingRecordModel  # noqa: F401

    async with (engine or get_async_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
