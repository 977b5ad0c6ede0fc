"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Schema is managed by Alembic migrations in production; tests create it
with Base.metadata.create_all.

Engine and session factory are created lazily on first use (get_db /
get_db_transactional) so import does not trigger Settings validation.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from fleet_rbac.core.config import get_settings

logger = logging.getLogger(__name__)

_AFTER_COMMIT = "after_commit"

# Set by _ensure_engine() on first use; avoids get_settings() at import time.
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def build_engine(database_url: str, *, echo: bool = False, **overrides: Any) -> AsyncEngine:
    """Create an async engine for a postgresql+asyncpg or sqlite+aiosqlite URL.

    For SQLite, pysqlite's implicit transaction handling is replaced with an
    explicit BEGIN so SAVEPOINTs (begin_nested) nest inside the outer
    transaction. File databases run in WAL mode so a read session does not
    block the commit of a concurrent write session.
    """
    if database_url.startswith("sqlite"):
        new_engine = create_async_engine(database_url, echo=echo)

        @event.listens_for(new_engine.sync_engine, "connect")
        def _configure_sqlite_connection(dbapi_connection: Any, _record: Any) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(new_engine.sync_engine, "begin")
        def _emit_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")

        return new_engine

    settings = get_settings()
    options: dict[str, Any] = {
        "pool_size": settings.db_pool_size if settings.db_pool_size is not None else 20,
        "max_overflow": (
            settings.db_max_overflow if settings.db_max_overflow is not None else 30
        ),
    }
    options.update(overrides)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=3600,
        **options,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def _ensure_engine() -> async_sessionmaker[AsyncSession]:
    """Create engine and AsyncSessionLocal on first use."""
    global engine, AsyncSessionLocal
    if AsyncSessionLocal is None:
        settings = get_settings()
        engine = build_engine(settings.database_url, echo=settings.database_echo)
        AsyncSessionLocal = build_session_factory(engine)
    return AsyncSessionLocal


async def dispose_engine() -> None:
    """Dispose the engine (app shutdown)."""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    AsyncSessionLocal = None


async def get_db():
    """Database session dependency for read operations.

    Does not commit; use get_db_transactional for writes.
    Yields a session and closes it on exit.
    """
    session_factory = _ensure_engine()
    async with session_factory() as session:
        yield session


async def get_db_transactional():
    """Database session dependency for write operations.

    Begins a transaction, commits on success, rolls back on exception.
    Callbacks registered with on_commit run once the commit succeeds.
    Use for POST, PUT, PATCH, DELETE endpoints.
    """
    session_factory = _ensure_engine()
    async with session_factory() as session:
        async with session.begin():
            yield session
        await run_after_commit(session)


def on_commit(session: AsyncSession, callback: Callable[[], Awaitable[Any]]) -> None:
    """Schedule callback to run after session's transaction commits."""
    session.info.setdefault(_AFTER_COMMIT, []).append(callback)


async def run_after_commit(session: AsyncSession) -> None:
    """Run and clear the callbacks scheduled with on_commit, in order."""
    callbacks = session.info.pop(_AFTER_COMMIT, [])
    for callback in callbacks:
        await callback()
    if callbacks:
        logger.debug("Ran %d after-commit callback(s)", len(callbacks))
