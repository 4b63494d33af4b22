"""
PhotoSharing Backend — Database Engine & Session Management
=============================================================

What:  Async SQLAlchemy engine factory, session factory and declarative base.
How:   build_engine() validates the configured URL and applies pooling
       options for server databases; the document store receives the
       session factory and opens one session per operation.
When:  The engine is built in the application lifespan and disposed on
       shutdown. Tests build their own engine against a temporary file.

Connection Pooling:
    pool_size / max_overflow / pool_pre_ping come from settings.
    SQLite (used in tests) manages its own connections, so pool arguments
    are only passed for server databases.
"""

import logging
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from photosharing.config import settings
from photosharing.exceptions import DataLayerError, DataLayerException

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for the document store tables."""
    pass


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine for the document store.

    Raises:
        DataLayerException(INVALID_CONFIGURATION) when the URL cannot be
        parsed or names a driver that is not installed.
    """
    url_text = database_url or settings.database_url
    try:
        url = make_url(url_text)
        kwargs = {"echo": settings.log_level == "DEBUG"}
        if url.get_backend_name() != "sqlite":
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        engine = create_async_engine(url, **kwargs)
    except (ArgumentError, ImportError, ValueError) as exc:
        raise DataLayerException(
            DataLayerError.INVALID_CONFIGURATION,
            "The document store endpoint is not a valid database URL.",
            exc,
        ) from exc

    logger.info("Document store engine created for backend '%s'", url.get_backend_name())
    return engine


# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: rows stay readable after the transaction closes
def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine(engine: AsyncEngine) -> None:
    """Close all pooled connections; called from the lifespan on shutdown."""
    await engine.dispose()
