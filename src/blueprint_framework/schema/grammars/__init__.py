"""Dialect grammars that render blueprints into SQL."""

from .base import Grammar
from .mysql import MySqlGrammar
from .postgres import PostgresGrammar
from .sqlite import SQLiteGrammar
from .sqlserver import SqlServerGrammar

__all__ = [
    "Grammar",
    "MySqlGrammar",
    "PostgresGrammar",
    "SQLiteGrammar",
    "SqlServerGrammar",
]
