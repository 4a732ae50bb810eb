"""PostgreSQL Engine Factory

Builds SQLAlchemy engines for PostgreSQL connections through psycopg2.
Without a host the URL points at the local unix socket.
"""

import getpass

from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from ..config import ConnectionConfig


def get_connection_url(config: ConnectionConfig) -> str:
    """Build PostgreSQL connection URL.

    Returns:
        PostgreSQL connection URL string
    """
    user_name = config.username or getpass.getuser()
    credentials = f"{user_name}:{config.password}" if config.password else user_name

    if config.host is None:
        # Unix domain socket connection
        return f"postgresql+psycopg2://{credentials}@/{config.database}?host=/var/run/postgresql"

    port = config.port or 5432
    return f"postgresql+psycopg2://{credentials}@{config.host}:{port}/{config.database}"


def create_engine_for_connection(config: ConnectionConfig) -> Engine:
    """Create SQLAlchemy engine for a PostgreSQL connection config."""
    return create_engine(get_connection_url(config), echo=config.echo)
