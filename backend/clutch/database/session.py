"""
Async engine and session management.

Provides the engine/session factory singletons, schema creation, and a
session context manager for scripts and the CLI.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clutch.config import get_settings
from clutch.database.base import Base

logger = logging.getLogger(__name__)

_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker] = None


def _sqlite_connect(dbapi_connection, connection_record) -> None:
    """Take transaction control away from the driver so SAVEPOINTs nest properly."""
    dbapi_connection.isolation_level = None


def _sqlite_begin(conn) -> None:
    """
    Start every SQLite transaction with the write lock held.

    A deferred transaction that reads first and writes later fails at once
    with "database is locked" when another writer is active; taking the lock
    up front lets the busy timeout queue writers instead.
    """
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def _create_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    kwargs = {"echo": get_settings().database.echo}
    is_sqlite = url.get_backend_name() == "sqlite"

    if is_sqlite:
        # File databases need their directory to exist before the first connect
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        kwargs.update(
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    engine = create_async_engine(database_url, **kwargs)

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _sqlite_connect)
        event.listen(engine.sync_engine, "begin", _sqlite_begin)

    return engine


def get_engine() -> AsyncEngine:
    """Get or create the async engine."""
    global _async_engine
    if _async_engine is None:
        _async_engine = _create_engine(get_settings().database.url)
    return _async_engine


def get_session_factory() -> async_sessionmaker:
    """Get or create the async session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
    return _async_session_factory


async def init_db(database_url: Optional[str] = None) -> None:
    """
    Initialize the engine and create all tables.

    Args:
        database_url: Overrides the configured URL (used by tests and the CLI).
    """
    global _async_engine, _async_session_factory

    if database_url is not None:
        await close_db()
        _async_engine = _create_engine(database_url)

    # Importing the models registers them with Base.metadata
    import clutch.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database initialized ({get_engine().url.render_as_string(hide_password=True)})")


async def close_db() -> None:
    """Dispose of the engine and forget the session factory."""
    global _async_engine, _async_session_factory
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_session_factory = None


async def check_db_connection() -> bool:
    """Check if the database connection is healthy."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        return False


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions outside of request handlers.

    Usage:
        async with get_db_session() as db:
            topic = await topic_service.get(db, topic_id)
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
