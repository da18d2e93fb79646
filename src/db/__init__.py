"""Database session management module.

Provides SQLAlchemy engine and session factories for database connectivity.
"""

from .session import get_db, get_engine, get_session, init_db, is_database_ready

__all__ = ["get_engine", "get_session", "get_db", "init_db", "is_database_ready"]
