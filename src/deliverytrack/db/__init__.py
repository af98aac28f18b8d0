"""Delivery Tracker database module.

- SQLAlchemy 2.x async engine and session factory built from settings
- Single schema initialization point
- Alembic migration configuration (db/migrations)

The engine is owned by whoever creates it (the API lifespan, a script or a
test fixture) and passed explicitly to the stores; there is no module-level
connection state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from deliverytrack.db.models import Base

if TYPE_CHECKING:
    from deliverytrack.core.config import DatabaseSettings

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: DatabaseSettings) -> AsyncEngine:
    """Create the async engine for the configured backend.

    SQLite connections are switched to WAL journaling with a busy timeout so
    concurrent writers wait for the lock instead of failing immediately.

    Args:
        settings: Database settings.

    Returns:
        AsyncEngine bound to the configured URL.
    """
    url = settings.async_url
    engine_kwargs: dict[str, Any] = {"echo": settings.echo}

    if settings.is_sqlite:
        engine_kwargs["connect_args"] = {"timeout": settings.busy_timeout}
    else:
        engine_kwargs.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_pre_ping=True,
        )

    engine = create_async_engine(url, **engine_kwargs)

    if settings.is_sqlite:
        busy_timeout_ms = int(settings.busy_timeout * 1000)

        @event.listens_for(engine.sync_engine, "connect")
        def _configure_sqlite(dbapi_connection: Any, _connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
            cursor.close()

    logger.info(
        "Database engine created (backend=%s)",
        "sqlite" if settings.is_sqlite else "postgresql",
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by the stores.

    Objects stay readable after commit so stores can hand back detached rows.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """Create any missing tables and indexes.

    Production deployments run Alembic migrations instead; this is the
    idempotent bootstrap used at startup and in tests.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool.

    Call this during application shutdown to clean up connections.
    """
    await engine.dispose()
