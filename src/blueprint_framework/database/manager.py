"""Registry of named connections."""

import logging
from pathlib import Path
from typing import Optional

from ..config import ConnectionConfig, load_connections
from .connection import Connection

logger = logging.getLogger(__name__)


class DatabaseManager:
    default_connection = "default"

    def __init__(self):
        self._connections: dict[str, Connection] = {}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DatabaseManager":
        """Build a manager with every connection listed in a YAML file."""
        manager = cls()
        for name, config in load_connections(path).items():
            manager.add_connection(config, name)
        return manager

    def add_connection(self, config: ConnectionConfig, name: str = "default") -> Connection:
        """Register a connection, replacing (and closing) one with the same name."""
        if name in self._connections:
            logger.info(f"Replacing connection '{name}'")
            self._connections[name].disconnect()

        connection = Connection(config)
        self._connections[name] = connection
        return connection

    def connection(self, name: Optional[str] = None) -> Connection:
        name = name or self.default_connection
        if name not in self._connections:
            raise KeyError(f"Connection '{name}' is not configured. Available: {list(self._connections)}")
        return self._connections[name]

    def disconnect(self, name: Optional[str] = None) -> None:
        self.connection(name).disconnect()

    def get_connections(self) -> dict[str, Connection]:
        return dict(self._connections)
