"""
Database engine and session management.

Provides the engine factory and a session context manager. Includes a mock
mode backed by a shared in-memory SQLite database for local development
and tests.

Using the repository pattern means most code never touches this module
directly - it goes through the repositories, which handle the translation
between domain models and rows.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .tables import Base

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when the database cannot be reached or initialized."""
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_database_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for `url`.

    In-memory SQLite ("sqlite://") uses a single shared connection so every
    session sees the same data, which is what mock mode and tests need.
    """
    kwargs: dict = {"echo": echo}

    if _is_sqlite(url):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    try:
        engine = create_engine(url, **kwargs)
    except SQLAlchemyError as e:
        logger.error("Failed to create database engine", extra={"error": str(e)})
        raise DatabaseConnectionError(f"Database engine creation failed: {e}")

    if _is_sqlite(url):
        _enable_sqlite_foreign_keys(engine)

    logger.info(
        "Database engine created",
        extra={"dialect": engine.dialect.name, "in_memory": url == "sqlite://"}
    )
    return engine


def init_database(engine: Engine) -> None:
    """Create any missing tables and indexes."""
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.error("Database initialization failed", extra={"error": str(e)})
        raise DatabaseConnectionError(f"Database initialization failed: {e}")


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Provide a session that is always closed.

    Repositories commit their own units of work; anything left uncommitted
    when the block raises is rolled back here.

    Usage:
        with session_scope(factory) as session:
            repo = WorkoutRepository(session)
    """
    session = factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
