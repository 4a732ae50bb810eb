"""Connections and the connection manager."""

from .connection import GRAMMARS, Connection
from .manager import DatabaseManager

__all__ = ["GRAMMARS", "Connection", "DatabaseManager"]
