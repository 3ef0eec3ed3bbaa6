"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured (postgresql+asyncpg://...), progress
triples are stored in PostgreSQL through PgTripleStore.  When it is not,
every export here is None and the app keeps progress in memory.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


# --- Engine and session factory (None when no DATABASE_URL) ---

if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,  # log SQL in dev only
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured — progress is kept in memory")
        yield
        return

    logger.info("Database engine created: %s", engine.url)
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
