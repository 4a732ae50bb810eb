"""Blueprint Framework - declarative schema changes rendered for MySQL,
PostgreSQL, SQLite and SQL Server, plus a redirect verification middleware.
"""

from .config import ConnectionConfig, get_connection_config
from .database import Connection, DatabaseManager
from .exceptions import SchemaError, UnsupportedOperationError
from .schema import Blueprint, SchemaBuilder

__version__ = "1.0.0"

__all__ = [
    "Blueprint",
    "Connection",
    "ConnectionConfig",
    "DatabaseManager",
    "SchemaBuilder",
    "SchemaError",
    "UnsupportedOperationError",
    "get_connection_config",
]
