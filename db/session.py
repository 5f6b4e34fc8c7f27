"""
db/session.py

SQLAlchemy engine and session factory.

The engine is process-wide state with an explicit lifecycle:
``init_engine()`` on startup, ``dispose_engine()`` on shutdown.
``get_engine()`` initialises on first use for scripts that skip the
lifespan hooks.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseSettings, get_database_settings, normalize_postgres_url

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str | None = None) -> Engine:
    if database_url is None:
        settings = get_database_settings()
    else:
        settings = DatabaseSettings(url=normalize_postgres_url(database_url))
    if not settings.url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    return create_engine(
        settings.url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=settings.pool_recycle,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def init_engine(database_url: str | None = None) -> Engine:
    """Create the shared engine and session factory. Idempotent."""
    global _engine, _session_factory
    if _engine is None:
        _engine = create_db_engine(database_url)
        _session_factory = sessionmaker(
            bind=_engine,
            class_=Session,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Database engine initialised")
    return _engine


def dispose_engine() -> None:
    """Release pooled connections and forget the shared engine."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    return init_engine()


def SessionLocal() -> Session:
    """Lazy session factory. Drop-in replacement for a sessionmaker() call."""
    init_engine()
    assert _session_factory is not None
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
