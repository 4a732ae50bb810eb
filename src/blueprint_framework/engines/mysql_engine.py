"""MySQL Engine Factory

Builds SQLAlchemy engines for MySQL connections through PyMySQL.
"""

from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from ..config import ConnectionConfig


def get_connection_url(config: ConnectionConfig) -> str:
    """Build MySQL connection URL.

    Returns:
        MySQL connection URL string
    """
    user_name = config.username or "root"
    credentials = f"{user_name}:{config.password}" if config.password else user_name
    host = config.host or "localhost"
    port = config.port or 3306

    url = f"mysql+pymysql://{credentials}@{host}:{port}/{config.database}"
    if config.charset:
        url += f"?charset={config.charset}"
    return url


def create_engine_for_connection(config: ConnectionConfig) -> Engine:
    """Create SQLAlchemy engine for a MySQL connection config."""
    return create_engine(get_connection_url(config), echo=config.echo)
