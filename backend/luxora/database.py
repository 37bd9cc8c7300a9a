import asyncio
import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from luxora.core.logging import get_logger

logger = get_logger("database")

Base = declarative_base()


def get_utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class KeyValueSlot(Base):
    """A named JSON blob, the server-side stand-in for browser local storage."""

    __tablename__ = "kv_slots"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False, default="[]")
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now)


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False, future=True)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: Optional[AsyncEngine], timeout_seconds: float = 30.0) -> None:
    """Create all tables, retrying while the database is still coming up."""
    if engine is None:
        logger.info("Skipping database initialization; ENABLE_DATABASE=0")
        return

    deadline = time.monotonic() + timeout_seconds
    delay_seconds = 0.25
    attempt = 0

    while True:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables initialized successfully")
            return
        except asyncio.CancelledError:
            raise
        except OperationalError as exc:
            if time.monotonic() >= deadline:
                logger.error("Failed to initialize database: %s", exc, exc_info=True)
                raise

            attempt += 1
            logger.warning(
                "Database not ready yet (attempt %d). Retrying in %.2fs: %s",
                attempt,
                delay_seconds,
                exc,
            )
            await asyncio.sleep(delay_seconds)
            delay_seconds = min(delay_seconds * 1.5, 5.0)


async def check_db(sessionmaker: Optional[async_sessionmaker[AsyncSession]]) -> bool:
    if sessionmaker is None:
        return False
    try:
        async with sessionmaker() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return False
