"""Schema blueprints, dialect grammars and the schema builder."""

from .blueprint import Blueprint
from .builder import SchemaBuilder
from .fluent import (
    ColumnDefinition,
    Command,
    Expression,
    ForeignIdColumnDefinition,
    ForeignKeyDefinition,
)
from .grammars import (
    Grammar,
    MySqlGrammar,
    PostgresGrammar,
    SQLiteGrammar,
    SqlServerGrammar,
)

__all__ = [
    "Blueprint",
    "ColumnDefinition",
    "Command",
    "Expression",
    "ForeignIdColumnDefinition",
    "ForeignKeyDefinition",
    "Grammar",
    "MySqlGrammar",
    "PostgresGrammar",
    "SQLiteGrammar",
    "SchemaBuilder",
    "SqlServerGrammar",
]
