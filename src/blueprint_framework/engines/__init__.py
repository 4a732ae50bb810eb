"""Engine factories for each supported driver."""

from sqlalchemy.engine import Engine

from ..config import ConnectionConfig
from . import mysql_engine, postgres_engine, sqlite_engine, sqlserver_engine

ENGINE_FACTORIES = {
    "sqlite": sqlite_engine,
    "mysql": mysql_engine,
    "pgsql": postgres_engine,
    "sqlsrv": sqlserver_engine,
}


def get_connection_url(config: ConnectionConfig) -> str:
    """Build the SQLAlchemy URL for a connection config."""
    if config.driver == "sqlite":
        return sqlite_engine.get_connection_url(config.database)
    return _factory_for(config.driver).get_connection_url(config)


def create_engine_for_connection(config: ConnectionConfig) -> Engine:
    """Create SQLAlchemy engine for any supported connection config.

    Raises:
        ValueError: If the driver has no engine factory
    """
    return _factory_for(config.driver).create_engine_for_connection(config)


def _factory_for(driver: str):
    if driver not in ENGINE_FACTORIES:
        raise ValueError(f"Unsupported database driver: {driver}")
    return ENGINE_FACTORIES[driver]


__all__ = ["ENGINE_FACTORIES", "create_engine_for_connection", "get_connection_url"]
