"""Tests for engine setup and the storage health probe."""

import pytest
from sqlalchemy import inspect

from luxora.database import KeyValueSlot, build_engine, build_sessionmaker, check_db, init_db


@pytest.mark.asyncio
async def test_init_db_creates_slot_table():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    try:
        await init_db(engine)
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert KeyValueSlot.__tablename__ in tables
        assert await check_db(build_sessionmaker(engine)) is True
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_init_db_without_engine_is_a_no_op():
    await init_db(None)


@pytest.mark.asyncio
async def test_check_db_without_database():
    assert await check_db(None) is False
