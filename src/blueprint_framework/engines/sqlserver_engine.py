"""SQL Server Engine Factory

Builds SQLAlchemy engines for SQL Server connections through pyodbc.
"""

from sqlalchemy.engine import Engine
from sqlmodel import create_engine

from ..config import ConnectionConfig

ODBC_DRIVER = "ODBC+Driver+18+for+SQL+Server"


def get_connection_url(config: ConnectionConfig) -> str:
    """Build SQL Server connection URL.

    Returns:
        SQL Server connection URL string
    """
    user_name = config.username or "sa"
    credentials = f"{user_name}:{config.password}" if config.password else user_name
    host = config.host or "localhost"
    port = config.port or 1433

    return (
        f"mssql+pyodbc://{credentials}@{host}:{port}/{config.database}"
        f"?driver={ODBC_DRIVER}&TrustServerCertificate=yes"
    )


def create_engine_for_connection(config: ConnectionConfig) -> Engine:
    """Create SQLAlchemy engine for a SQL Server connection config."""
    return create_engine(get_connection_url(config), echo=config.echo)
