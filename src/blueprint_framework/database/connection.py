"""Database connection used by the schema layer.

Wraps a single SQLAlchemy connection for the lifetime of the object, so an
in-memory SQLite database survives between statements.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector

from ..config import ConnectionConfig
from ..engines import create_engine_for_connection
from ..schema.builder import SchemaBuilder
from ..schema.grammars import (
    Grammar,
    MySqlGrammar,
    PostgresGrammar,
    SQLiteGrammar,
    SqlServerGrammar,
)

logger = logging.getLogger(__name__)

GRAMMARS: dict[str, type[Grammar]] = {
    "sqlite": SQLiteGrammar,
    "mysql": MySqlGrammar,
    "pgsql": PostgresGrammar,
    "sqlsrv": SqlServerGrammar,
}


class Connection:
    """A named database connection with its schema grammar and builder."""

    def __init__(self, config: ConnectionConfig, engine: Optional[Engine] = None):
        self.config = config
        self.engine = engine or create_engine_for_connection(config)
        self._table_prefix = config.prefix
        self._native_schema_operations = False
        self._connection = None
        self._in_transaction = False
        self._connect()

    def _connect(self) -> None:
        self._connection = self.engine.connect()
        logger.info(f"Connected to {self.config.driver} database {self.config.database}")

        if self.config.driver == "sqlite":
            grammar = self.get_schema_grammar()
            self.statement(
                grammar.compile_enable_foreign_key_constraints()
                if self.config.foreign_key_constraints
                else grammar.compile_disable_foreign_key_constraints()
            )

    def disconnect(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info(f"Disconnected from {self.config.driver} database {self.config.database}")

    def _require_connection(self):
        if self._connection is None:
            self._connect()
        return self._connection

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def statement(self, sql: str) -> None:
        """Execute a statement, committing it unless inside `transaction()`."""
        logger.debug(f"Executing: {sql}")
        connection = self._require_connection()
        connection.exec_driver_sql(sql)
        if not self._in_transaction:
            connection.commit()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the statements of the block as one unit.

        A failing statement rolls back everything executed inside the block,
        DDL included on SQLite and PostgreSQL.
        """
        if self._in_transaction:
            yield
            return

        connection = self._require_connection()
        if connection.in_transaction():
            connection.commit()

        self._in_transaction = True
        try:
            if self.config.driver == "sqlite":
                # pysqlite only opens transactions before DML
                connection.exec_driver_sql("BEGIN")
            yield
        except Exception:
            logger.warning(f"Rolling back transaction on {self.config.driver} database {self.config.database}")
            connection.rollback()
            raise
        else:
            connection.commit()
        finally:
            self._in_transaction = False

    def select(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[Any]:
        """Run a query and return its rows as mappings."""
        connection = self._require_connection()
        return list(connection.execute(text(sql), params or {}).mappings().all())

    def inspector(self) -> Inspector:
        """A fresh inspector, so reflection never sees stale schema."""
        return inspect(self._require_connection())

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_driver_name(self) -> str:
        return self.config.driver

    def get_database_name(self) -> str:
        return self.config.database

    def get_table_prefix(self) -> str:
        return self._table_prefix

    def set_table_prefix(self, prefix: str) -> "Connection":
        self._table_prefix = prefix
        return self

    def get_config(self, key: str, default: Any = None) -> Any:
        return getattr(self.config, key, default)

    def uses_native_schema_operations(self) -> bool:
        """SQLite rebuilds tables unless native operations were switched on."""
        return self.config.driver != "sqlite" or self._native_schema_operations

    def use_native_schema_operations(self, value: bool = True) -> None:
        self._native_schema_operations = value

    def get_schema_grammar(self) -> Grammar:
        return GRAMMARS[self.config.driver](self._table_prefix)

    def get_schema_builder(self) -> SchemaBuilder:
        return SchemaBuilder(self)
