"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured the service persists records in PostgreSQL
through asyncpg. Without it, ``get_session_factory()`` returns None and the
application falls back to the in-memory document repository.
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from internship_docs.core.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


@lru_cache
def get_engine() -> Optional[AsyncEngine]:
    settings = get_settings()
    if not settings.database_url:
        return None
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
    )


@lru_cache
def get_session_factory() -> Optional[async_sessionmaker[AsyncSession]]:
    engine = get_engine()
    if engine is None:
        logger.info("[DB] No DATABASE_URL configured, using in-memory repository")
        return None
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def dispose_engine() -> None:
    """Release pooled connections on shutdown."""
    engine = get_engine()
    if engine is not None:
        await engine.dispose()
        logger.info("[DB] Engine disposed")
