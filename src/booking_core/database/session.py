"""SQLAlchemy async session management."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_core.config import get_settings
from booking_core.database.connection import check_connection, close_engine, get_engine
from booking_core.database.models import Base

logger = logging.getLogger(__name__)

# Global session factory
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,  # Don't autoflush (we'll do it explicitly)
        )
        logger.info("Session factory created")
    return _session_factory


async def init_db() -> None:
    """Initialize database connection and verify connectivity.

    SQLite databases (local development) get their tables created directly;
    PostgreSQL schemas are managed by Alembic.
    """
    settings = get_settings()
    if settings.database.is_sqlite:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite schema created")

    is_connected = await check_connection()
    if is_connected:
        logger.info("Database connection initialized successfully")
    else:
        logger.warning("Database connection check failed")


async def close_db() -> None:
    """Close database connections."""
    global _session_factory
    await close_engine()
    _session_factory = None
    logger.info("Database connections closed")
