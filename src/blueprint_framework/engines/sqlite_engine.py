"""SQLite Engine Factory

Builds SQLAlchemy engines for SQLite connections. In-memory databases are the
default for tests; file databases get their parent directory created.
"""

import os

from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from ..config import ConnectionConfig


def get_connection_url(database: str) -> str:
    """Build SQLite connection URL.

    Args:
        database: File path, or ":memory:" for an in-memory database

    Returns:
        SQLite connection URL string
    """
    if database == ":memory:":
        return "sqlite://"

    # Ensure parent directory exists
    parent = os.path.dirname(os.path.abspath(database))
    os.makedirs(parent, exist_ok=True)
    return f"sqlite:///{database}"


def create_engine_for_connection(config: ConnectionConfig) -> Engine:
    """Create SQLAlchemy engine for a SQLite connection config."""
    return create_engine(get_connection_url(config.database), echo=config.echo)
