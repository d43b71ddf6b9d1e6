"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Used when database_backend is 'sql'. When it is 'firestore', no engine is
created; the Firestore file ledger talks to the REST client instead.
The schema is a single table, created with create_schema() at startup.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from cloud_backup.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def create_engine_and_sessionmaker(
    settings: Settings,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the async engine and session factory for settings.database_url."""
    engine_kwargs: dict[str, Any] = {
        "echo": settings.database_echo,
        "pool_pre_ping": True,
    }
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs["pool_recycle"] = 3600
    engine = create_async_engine(settings.database_url, **engine_kwargs)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, session_factory


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables (idempotent)."""
    # Register models on Base.metadata before create_all.
    from cloud_backup.infrastructure.persistence.models import FileRecordModel  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")
