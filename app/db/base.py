"""
Declarative base, engine construction and table bootstrap.

The engine is the process-wide connection pool. It is built by the
application factory (or handed in by tests) and passed explicitly to the
repositories; nothing in here keeps a module-level engine.
"""
from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase

from app.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_db_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        # SQLite has no server-side pool to size.
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


def ensure_schema(engine: Engine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    # Register the mapped tables on Base.metadata.
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Schema ensured on %s", engine.url.render_as_string(hide_password=True))
