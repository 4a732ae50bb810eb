"""Connection configuration presets and loaders."""

from .connections import (
    DEFAULT_CONNECTIONS,
    ConnectionConfig,
    get_connection_config,
    list_available_connections,
    load_connections,
)

__all__ = [
    "DEFAULT_CONNECTIONS",
    "ConnectionConfig",
    "get_connection_config",
    "list_available_connections",
    "load_connections",
]
