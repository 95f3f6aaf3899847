"""Tests for database engine and session management."""

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect, text

from backend.database import create_engine, init_schema

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.config import Settings


class TestDatabase:
    @pytest.mark.asyncio
    async def test_engine_connects(self, db_engine) -> None:  # type: ignore[no-untyped-def]
        async with db_engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            assert result.scalar() == 1

    @pytest.mark.asyncio
    async def test_session_works(self, db_session: AsyncSession) -> None:
        result = await db_session.execute(text("SELECT 42"))
        assert result.scalar() == 42

    @pytest.mark.asyncio
    async def test_schema_has_all_tables(self, db_engine) -> None:  # type: ignore[no-untyped-def]
        async with db_engine.connect() as conn:
            names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert {"tasks", "clients", "profiles", "status_sources", "posts"} <= set(
            names
        )

    @pytest.mark.asyncio
    async def test_app_engine_enables_wal(self, test_settings: Settings) -> None:
        engine, _session_factory = create_engine(test_settings)
        try:
            await init_schema(engine)
            async with engine.connect() as conn:
                mode = (await conn.execute(text("PRAGMA journal_mode"))).scalar()
                timeout = (await conn.execute(text("PRAGMA busy_timeout"))).scalar()
            assert mode == "wal"
            assert timeout == 5000
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_init_schema_is_idempotent(
        self, db_engine  # type: ignore[no-untyped-def]
    ) -> None:
        await init_schema(db_engine)
        await init_schema(db_engine)
