# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Database engine management.

Supports:
- PostgreSQL via asyncpg (production)
- SQLite via aiosqlite (development / single-node)

The active backend is determined by DATABASE_URL in settings.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..core.settings import DatabaseSettings

logger = logging.getLogger(__name__)

# Module-level singletons
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


async def init_database(settings: DatabaseSettings) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory.

    Called once during application startup (lifespan).
    For SQLite, also creates tables directly from metadata
    since production PostgreSQL is managed by Alembic.
    """
    global _engine, _session_factory

    url = settings.url
    engine_kwargs: dict = {}

    if _is_sqlite(url):
        # SQLite: no pool, check_same_thread off
        engine_kwargs.update(
            connect_args={"check_same_thread": False},
            pool_pre_ping=False,
        )
        logger.info("Initializing SQLite database: %s", url)
    else:
        # PostgreSQL: connection pooling
        engine_kwargs.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_pre_ping=True,
        )
        logger.info("Initializing PostgreSQL database")

    _engine = create_async_engine(url, echo=settings.echo, **engine_kwargs)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    if _is_sqlite(url):
        from .models import Base

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created from ORM metadata")

    logger.info("Database initialized")
    return _session_factory


async def close_database() -> None:
    """Dispose the engine and release all connections.

    Called during application shutdown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None
