"""
Database persistence.

Tables live in tables.py; the engine and session helpers in client.py.
"""

from .client import (
    DatabaseConnectionError,
    create_database_engine,
    create_session_factory,
    init_database,
    session_scope,
)

__all__ = [
    "DatabaseConnectionError",
    "create_database_engine",
    "create_session_factory",
    "init_database",
    "session_scope",
]
