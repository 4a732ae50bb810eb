"""Blueprint Framework - Connection Configurations

Defines the connection settings understood by the schema layer and a set of
named presets for the four supported drivers. Connections can also be read
from a YAML file:

```yaml
connections:
  default:
    driver: sqlite
    database: ":memory:"
  reporting:
    driver: pgsql
    database: reporting
    host: db.internal
    prefix: rpt_
```
"""

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

Driver = Literal["sqlite", "mysql", "pgsql", "sqlsrv"]


class ConnectionConfig(BaseModel):
    """Settings for a single database connection.

    `prefix` is prepended to every table name the schema layer renders.
    When `prefix_indexes` is true the same prefix is also used when
    generating conventional index names.
    """

    model_config = ConfigDict(extra="forbid")

    driver: Driver
    database: str
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    prefix: str = ""
    prefix_indexes: bool = True
    foreign_key_constraints: bool = Field(
        default=True, description="Enforce foreign keys on SQLite connections"
    )
    charset: Optional[str] = None
    collation: Optional[str] = None
    engine: Optional[str] = Field(default=None, description="MySQL storage engine")
    echo: bool = False


# Default connection presets
DEFAULT_CONNECTIONS = {
    "sqlite_memory": {
        "driver": "sqlite",
        "database": ":memory:",
        "description": "In-memory SQLite, dropped when the connection closes",
    },
    "sqlite_file": {
        "driver": "sqlite",
        "database": "/tmp/blueprint_framework/database.sqlite",
        "description": "File-based SQLite for persistent local schemas",
    },
    "mysql": {
        "driver": "mysql",
        "database": "forge",
        "host": "localhost",
        "port": 3306,
        "username": "root",
        "charset": "utf8mb4",
        "collation": "utf8mb4_unicode_ci",
        "description": "Local MySQL server",
    },
    "pgsql": {
        "driver": "pgsql",
        "database": "forge",
        "host": "localhost",
        "port": 5432,
        "username": "postgres",
        "description": "Local PostgreSQL server",
    },
    "sqlsrv": {
        "driver": "sqlsrv",
        "database": "forge",
        "host": "localhost",
        "port": 1433,
        "username": "sa",
        "description": "Local SQL Server",
    },
}


def get_connection_config(name: str) -> ConnectionConfig:
    """Get configuration for a named connection preset.

    Args:
        name: Name of the preset in DEFAULT_CONNECTIONS

    Returns:
        Validated ConnectionConfig

    Raises:
        KeyError: If name is not a known preset
    """
    if name not in DEFAULT_CONNECTIONS:
        available = list(DEFAULT_CONNECTIONS.keys())
        raise KeyError(f"Unknown connection '{name}'. Available: {available}")

    settings = {k: v for k, v in DEFAULT_CONNECTIONS[name].items() if k != "description"}
    return ConnectionConfig(**settings)


def list_available_connections() -> dict[str, str]:
    """List all connection presets with descriptions."""
    return {name: preset["description"] for name, preset in DEFAULT_CONNECTIONS.items()}


def load_connections(path: str | Path) -> dict[str, ConnectionConfig]:
    """Load connection configurations from a YAML file.

    Args:
        path: YAML file with a top-level `connections` mapping

    Returns:
        Mapping of connection name to ConnectionConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If an entry doesn't match ConnectionConfig
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Connection config not found: {config_path}")

    with open(config_path, "r") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    return {
        name: ConnectionConfig(**settings)
        for name, settings in (data.get("connections") or {}).items()
    }
