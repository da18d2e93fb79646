"""Database session management utilities.

Provides engine creation, session factories, dependency injection helpers
and start-up initialization for SQLAlchemy database connections.
"""

import logging
from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from src.config import get_settings

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("recordings", "audio_files", "transcripts")


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Create and cache a SQLAlchemy engine.

    Returns:
        Engine: SQLAlchemy engine configured with the database URL
            from settings and connection pool health checks enabled.
    """
    settings = get_settings()
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
    )


def get_session() -> Session:
    """Create a new database session.

    Returns:
        Session: A new SQLAlchemy session bound to the cached engine.
    """
    engine = get_engine()
    session_factory = sessionmaker(bind=engine)
    return session_factory()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session for database operations.

    Example:
        for db in get_db():
            recordings = db.query(Recording).all()
    """
    session = get_session()
    try:
        yield session
    finally:
        session.close()


def is_database_ready(engine: Engine | None = None) -> bool:
    """Check whether all tables used by the services exist.

    Args:
        engine: Engine to inspect. Defaults to the cached engine.

    Returns:
        True if every required table is present.
    """
    engine = engine or get_engine()
    existing = set(inspect(engine).get_table_names())
    return all(table in existing for table in REQUIRED_TABLES)


def init_db(engine: Engine | None = None) -> None:
    """Create tables and indexes if they do not exist yet.

    Called once at process start. Safe to call repeatedly.

    Args:
        engine: Engine to initialize. Defaults to the cached engine.
    """
    from src.models import Base

    engine = engine or get_engine()
    if is_database_ready(engine):
        logger.debug("Database schema already present")
        return

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema created")
