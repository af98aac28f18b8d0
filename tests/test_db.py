"""Tests for engine construction and schema bootstrap."""

import pytest
from sqlalchemy import inspect, text

from deliverytrack.core.config import DatabaseSettings
from deliverytrack.db import (
    close_engine,
    create_engine_from_settings,
    create_session_factory,
    init_schema,
)


class TestSqliteEngine:
    """SQLite engines are tuned for concurrent writers."""

    @pytest.mark.asyncio
    async def test_wal_and_busy_timeout(self, tmp_path):
        """Connections run in WAL mode with the configured busy timeout."""
        settings = DatabaseSettings(
            url=f"sqlite+aiosqlite:///{tmp_path / 'wal.db'}",
            busy_timeout=2.5,
        )
        engine = create_engine_from_settings(settings)
        try:
            async with engine.connect() as conn:
                journal_mode = (await conn.execute(text("PRAGMA journal_mode"))).scalar_one()
                busy_timeout = (await conn.execute(text("PRAGMA busy_timeout"))).scalar_one()
        finally:
            await close_engine(engine)

        assert journal_mode.lower() == "wal"
        assert busy_timeout == 2500

    @pytest.mark.asyncio
    async def test_plain_sqlite_url_uses_async_driver(self, tmp_path):
        """sqlite:// URLs are upgraded to aiosqlite."""
        engine = create_engine_from_settings(
            DatabaseSettings(url=f"sqlite:///{tmp_path / 'plain.db'}")
        )
        try:
            assert engine.dialect.driver == "aiosqlite"
        finally:
            await close_engine(engine)


class TestInitSchema:
    """Tests for init_schema."""

    @pytest.mark.asyncio
    async def test_creates_tables(self, engine):
        """All tables exist after bootstrap."""
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        assert {"deliveries", "drivers", "admins"} <= set(tables)

    @pytest.mark.asyncio
    async def test_idempotent(self, engine):
        """Running the bootstrap twice is harmless."""
        await init_schema(engine)

    @pytest.mark.asyncio
    async def test_session_factory_keeps_objects_loaded(self, engine):
        """Sessions do not expire attributes on commit."""
        factory = create_session_factory(engine)
        assert factory.kw["expire_on_commit"] is False
