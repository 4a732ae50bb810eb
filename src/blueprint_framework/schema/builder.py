"""Schema builder - runs blueprints against a connection and inspects tables.

Introspection goes through SQLAlchemy's `Inspector`, so it works the same on
every dialect the engine supports. Table names are given without the
connection's table prefix; the builder adds it.
"""

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from .blueprint import Blueprint

if TYPE_CHECKING:
    from ..database.connection import Connection

logger = logging.getLogger(__name__)


class SchemaBuilder:
    def __init__(self, connection: "Connection"):
        self.connection = connection

    @property
    def grammar(self):
        return self.connection.get_schema_grammar()

    # ------------------------------------------------------------------
    # Table operations
    # ------------------------------------------------------------------

    def create(self, table: str, callback: Callable[[Blueprint], Any]) -> None:
        """Create a table; `callback` receives the blueprint to define columns."""
        blueprint = self._create_blueprint(table)
        blueprint.create()
        callback(blueprint)
        self._build(blueprint)

    def table(self, table: str, callback: Callable[[Blueprint], Any]) -> None:
        """Modify an existing table."""
        self._build(self._create_blueprint(table, callback))

    def drop(self, table: str) -> None:
        blueprint = self._create_blueprint(table)
        blueprint.drop()
        self._build(blueprint)

    def drop_if_exists(self, table: str) -> None:
        blueprint = self._create_blueprint(table)
        blueprint.drop_if_exists()
        self._build(blueprint)

    def rename(self, from_: str, to: str) -> None:
        blueprint = self._create_blueprint(from_)
        blueprint.rename(to)
        self._build(blueprint)

    def drop_columns(self, table: str, columns: str | list[str]) -> None:
        """Drop columns with a single command, which SQLite rebuilds in one pass."""
        columns = [columns] if isinstance(columns, str) else list(columns)
        self.table(table, lambda blueprint: blueprint.drop_column(*columns))

    def drop_all_tables(self) -> None:
        tables = [self._strip_prefix(table) for table in self.get_tables()]
        if not tables:
            return

        logger.info(f"Dropping {len(tables)} tables")
        with self.without_foreign_key_constraints():
            for statement in self.grammar.compile_drop_all_tables(tables):
                self.connection.statement(statement)

    # ------------------------------------------------------------------
    # Foreign key constraints
    # ------------------------------------------------------------------

    def enable_foreign_key_constraints(self) -> None:
        self.connection.statement(self.grammar.compile_enable_foreign_key_constraints())

    def disable_foreign_key_constraints(self) -> None:
        self.connection.statement(self.grammar.compile_disable_foreign_key_constraints())

    @contextmanager
    def _foreign_keys_disabled(self) -> Iterator[None]:
        self.disable_foreign_key_constraints()
        try:
            yield
        finally:
            # Back to the configured state, which may be off on SQLite
            if self._foreign_keys_configured():
                self.enable_foreign_key_constraints()

    def _foreign_keys_configured(self) -> bool:
        if self.connection.get_driver_name() != "sqlite":
            return True
        return bool(self.connection.get_config("foreign_key_constraints", True))

    def without_foreign_key_constraints(self, callback: Optional[Callable[[], Any]] = None):
        """Run `callback` with foreign key checks off, then restore the
        connection's configured setting.

        Without a callback, returns a context manager instead:

        ```python
        with schema.without_foreign_key_constraints():
            schema.drop("users")
        ```
        """
        if callback is None:
            return self._foreign_keys_disabled()

        with self._foreign_keys_disabled():
            return callback()

    def use_native_schema_operations_if_possible(self, value: bool = True) -> None:
        self.connection.use_native_schema_operations(value)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_tables(self) -> list[str]:
        return self.connection.inspector().get_table_names()

    def has_table(self, table: str) -> bool:
        return self.connection.inspector().has_table(self._prefixed(table))

    def get_columns(self, table: str) -> list[dict[str, Any]]:
        if not self.has_table(table):
            return []

        return [
            {
                "name": column["name"],
                "type": str(column["type"]).lower(),
                "nullable": column["nullable"],
                "default": column.get("default"),
            }
            for column in self.connection.inspector().get_columns(self._prefixed(table))
        ]

    def get_column_listing(self, table: str) -> list[str]:
        return [column["name"] for column in self.get_columns(table)]

    def has_column(self, table: str, column: str) -> bool:
        return column.lower() in (name.lower() for name in self.get_column_listing(table))

    def has_columns(self, table: str, columns: list[str]) -> bool:
        existing = {name.lower() for name in self.get_column_listing(table)}
        return all(column.lower() in existing for column in columns)

    def get_indexes(self, table: str) -> list[dict[str, Any]]:
        """Indexes of a table, the primary key included when it has one."""
        if not self.has_table(table):
            return []

        inspector = self.connection.inspector()
        name = self._prefixed(table)
        indexes = []

        primary = inspector.get_pk_constraint(name)
        if primary.get("constrained_columns"):
            indexes.append(
                {
                    "name": primary.get("name") or "primary",
                    "columns": primary["constrained_columns"],
                    "unique": True,
                    "primary": True,
                }
            )

        for index in inspector.get_indexes(name):
            indexes.append(
                {
                    "name": index["name"],
                    "columns": index["column_names"],
                    "unique": bool(index["unique"]),
                    "primary": False,
                }
            )
        return indexes

    def get_index_listing(self, table: str) -> list[str]:
        return [index["name"] for index in self.get_indexes(table)]

    def has_index(self, table: str, index: str | list[str], type_: Optional[str] = None) -> bool:
        """Check for an index by name, or by its exact column list.

        `type_` narrows the match to "primary" or "unique" indexes.
        """
        for existing in self.get_indexes(table):
            if type_ == "primary" and not existing["primary"]:
                continue
            if type_ == "unique" and not existing["unique"]:
                continue

            if isinstance(index, str):
                if existing["name"] == index:
                    return True
            elif list(existing["columns"]) == list(index):
                return True
        return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_blueprint(
        self, table: str, callback: Optional[Callable[[Blueprint], Any]] = None
    ) -> Blueprint:
        prefix = self.connection.get_table_prefix() if self.connection.get_config("prefix_indexes") else ""
        return Blueprint(table, callback, prefix)

    def _build(self, blueprint: Blueprint) -> None:
        blueprint.build(self.connection, self.grammar)

    def _prefixed(self, table: str) -> str:
        return self.connection.get_table_prefix() + table

    def _strip_prefix(self, table: str) -> str:
        prefix = self.connection.get_table_prefix()
        return table[len(prefix):] if prefix and table.startswith(prefix) else table
