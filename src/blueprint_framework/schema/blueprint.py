"""Blueprint - declarative description of schema changes for one table.

A blueprint collects column definitions and commands. Nothing touches the
database until `build()` runs the statements a grammar compiles:

```python
blueprint = Blueprint("users", lambda table: (
    table.rename_column("name", "first_name"),
    table.integer("age").change(),
))
statements = blueprint.to_sql(connection, SQLiteGrammar())
```

`to_sql()` works on a copy, so one blueprint can be compiled repeatedly
against several grammars.
"""

import copy
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..exceptions import UnsupportedOperationError
from .fluent import (
    ColumnDefinition,
    Command,
    Expression,
    ForeignIdColumnDefinition,
    ForeignKeyDefinition,
)

if TYPE_CHECKING:
    from ..database.connection import Connection
    from .grammars.base import Grammar
    from .rebuild import BlueprintState

logger = logging.getLogger(__name__)

# Column attribute -> (create method, drop method)
FLUENT_INDEXES = {
    "primary": ("primary", "drop_primary"),
    "unique": ("unique", "drop_unique"),
    "index": ("index", "drop_index"),
    "fulltext": ("full_text", "drop_full_text"),
    "spatial_index": ("spatial_index", "drop_spatial_index"),
}


class Blueprint:
    default_string_length = 255

    def __init__(
        self,
        table: str,
        callback: Optional[Callable[["Blueprint"], Any]] = None,
        prefix: str = "",
    ):
        self.table = table
        self.prefix = prefix
        self.columns: list[ColumnDefinition] = []
        self.commands: list[Command] = []
        self.temporary_table = False
        self.engine: Optional[str] = None
        self.charset: Optional[str] = None
        self.collation: Optional[str] = None
        self.state: Optional["BlueprintState"] = None

        if callback is not None:
            callback(self)

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def build(self, connection: "Connection", grammar: "Grammar") -> None:
        """Execute the blueprint against the database in one transaction."""
        statements = self.to_sql(connection, grammar)
        with connection.transaction():
            for statement in statements:
                connection.statement(statement)

    def to_sql(self, connection: "Connection", grammar: "Grammar") -> list[str]:
        """Get the raw SQL statements for the blueprint."""
        return copy.deepcopy(self)._compile(connection, grammar)

    def _compile(self, connection: "Connection", grammar: "Grammar") -> list[str]:
        self._add_implied_commands(connection, grammar)
        self._ensure_commands_are_valid(connection)

        if connection.get_driver_name() == "sqlite":
            from .rebuild import BlueprintState

            self.state = BlueprintState(self, connection)

        statements: list[str] = []
        for command in self.commands:
            if command.get("should_be_skipped"):
                continue

            method = getattr(grammar, f"compile_{command.name}", None)
            if method is None:
                logger.debug(f"{type(grammar).__name__} has no compiler for '{command.name}'")
                continue

            sql = method(self, command, connection)
            if sql is not None:
                statements.extend([sql] if isinstance(sql, str) else sql)

            if self.state is not None:
                self.state.update(command)

        return statements

    def _ensure_commands_are_valid(self, connection: "Connection") -> None:
        if connection.get_driver_name() != "sqlite":
            return

        if (
            len(self._commands_named("drop_column", "rename_column")) > 1
            and not connection.uses_native_schema_operations()
        ):
            raise UnsupportedOperationError(
                "SQLite doesn't support multiple calls to drop_column / rename_column "
                "in a single modification."
            )

        if self._commands_named("drop_foreign"):
            raise UnsupportedOperationError(
                "SQLite doesn't support dropping foreign keys (you would need to re-create the table)."
            )

    def _commands_named(self, *names: str) -> list[Command]:
        return [command for command in self.commands if command.name in names]

    def _add_implied_commands(self, connection: "Connection", grammar: "Grammar") -> None:
        if self.get_added_columns() and not self.creating():
            self.commands.insert(0, self._create_command("add"))

        if self.get_changed_columns() and not self.creating():
            self.commands.insert(0, self._create_command("change"))

        self._add_fluent_indexes()
        self._add_fluent_commands(connection, grammar)

    def _add_fluent_indexes(self) -> None:
        for column in self.columns:
            for attribute, (create, drop) in FLUENT_INDEXES.items():
                value = column.get(attribute)

                # Auto-increment primary keys are declared inline on change
                if attribute == "primary" and column.get("auto_increment") and column.get("change"):
                    continue

                if value is True:
                    getattr(self, create)(column.name)
                elif value is False and column.get("change"):
                    getattr(self, drop)([column.name])
                elif isinstance(value, str):
                    getattr(self, create)(column.name, value)
                else:
                    continue

                column.set(attribute, None)
                break

    def _add_fluent_commands(self, connection: "Connection", grammar: "Grammar") -> None:
        for column in self.columns:
            if column.get("change") and not connection.uses_native_schema_operations():
                continue

            for command_name in grammar.fluent_commands:
                self.add_command(command_name, column=column)

    def creating(self) -> bool:
        """Whether the blueprint creates the table."""
        return any(command.name == "create" for command in self.commands)

    def get_added_columns(self) -> list[ColumnDefinition]:
        return [column for column in self.columns if not column.get("change")]

    def get_changed_columns(self) -> list[ColumnDefinition]:
        return [column for column in self.columns if column.get("change")]

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def create(self) -> Command:
        return self.add_command("create")

    def temporary(self) -> None:
        """Create the table as temporary."""
        self.temporary_table = True

    def drop(self) -> Command:
        return self.add_command("drop")

    def drop_if_exists(self) -> Command:
        return self.add_command("drop_if_exists")

    def rename(self, to: str) -> Command:
        return self.add_command("rename", to=to)

    # ------------------------------------------------------------------
    # Column commands
    # ------------------------------------------------------------------

    def drop_column(self, *columns: str | list[str]) -> Command:
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            names = list(columns[0])
        else:
            names = list(columns)
        return self.add_command("drop_column", columns=names)

    def rename_column(self, from_: str, to: str) -> Command:
        return self.add_command("rename_column", **{"from": from_, "to": to})

    def drop_timestamps(self) -> Command:
        return self.drop_column("created_at", "updated_at")

    def drop_soft_deletes(self, column: str = "deleted_at") -> Command:
        return self.drop_column(column)

    # ------------------------------------------------------------------
    # Index commands
    # ------------------------------------------------------------------

    def primary(
        self, columns: str | list[str], name: Optional[str] = None, algorithm: Optional[str] = None
    ) -> Command:
        return self._index_command("primary", columns, name, algorithm)

    def unique(
        self, columns: str | list[str], name: Optional[str] = None, algorithm: Optional[str] = None
    ) -> Command:
        return self._index_command("unique", columns, name, algorithm)

    def index(
        self, columns: str | list[str], name: Optional[str] = None, algorithm: Optional[str] = None
    ) -> Command:
        return self._index_command("index", columns, name, algorithm)

    def full_text(
        self, columns: str | list[str], name: Optional[str] = None, language: Optional[str] = None
    ) -> Command:
        command = self._index_command("fulltext", columns, name)
        if language is not None:
            command.set("language", language)
        return command

    def spatial_index(self, columns: str | list[str], name: Optional[str] = None) -> Command:
        return self._index_command("spatial_index", columns, name)

    def foreign(self, columns: str | list[str], name: Optional[str] = None) -> ForeignKeyDefinition:
        columns = [columns] if isinstance(columns, str) else list(columns)
        command = ForeignKeyDefinition(
            name="foreign",
            index=name or self.create_index_name("foreign", columns),
            columns=columns,
        )
        self.commands.append(command)
        return command

    def rename_index(self, from_: str, to: str) -> Command:
        return self.add_command("rename_index", **{"from": from_, "to": to})

    def drop_primary(self, index: str | list[str] | None = None) -> Command:
        return self._drop_index_command("drop_primary", "primary", index)

    def drop_unique(self, index: str | list[str]) -> Command:
        return self._drop_index_command("drop_unique", "unique", index)

    def drop_index(self, index: str | list[str]) -> Command:
        return self._drop_index_command("drop_index", "index", index)

    def drop_full_text(self, index: str | list[str]) -> Command:
        return self._drop_index_command("drop_fulltext", "fulltext", index)

    def drop_spatial_index(self, index: str | list[str]) -> Command:
        return self._drop_index_command("drop_spatial_index", "spatialindex", index)

    def drop_foreign(self, index: str | list[str]) -> Command:
        return self._drop_index_command("drop_foreign", "foreign", index)

    def create_index_name(self, type_: str, columns: list[str]) -> str:
        """Conventional index name: {prefix}{table}_{columns}_{type}."""
        index = f"{self.prefix}{self.table}_{'_'.join(columns)}_{type_}".lower()
        return index.replace("-", "_").replace(".", "_")

    def _index_command(
        self,
        type_: str,
        columns: str | list[str],
        index: Optional[str] = None,
        algorithm: Optional[str] = None,
    ) -> Command:
        columns = [columns] if isinstance(columns, str) else list(columns)
        index = index or self.create_index_name(type_.replace("_", ""), columns)
        return self.add_command(type_, index=index, columns=columns, algorithm=algorithm)

    def _drop_index_command(
        self, command: str, type_: str, index: str | list[str] | None
    ) -> Command:
        columns: list[str] = []
        if isinstance(index, (list, tuple)):
            columns = list(index)
            index = self.create_index_name(type_, columns)
        return self._index_command(command, columns, index)

    # ------------------------------------------------------------------
    # Column types
    # ------------------------------------------------------------------

    def id(self, column: str = "id") -> ColumnDefinition:
        return self.big_increments(column)

    def increments(self, column: str) -> ColumnDefinition:
        return self.unsigned_integer(column, auto_increment=True)

    def tiny_increments(self, column: str) -> ColumnDefinition:
        return self.unsigned_tiny_integer(column, auto_increment=True)

    def small_increments(self, column: str) -> ColumnDefinition:
        return self.unsigned_small_integer(column, auto_increment=True)

    def medium_increments(self, column: str) -> ColumnDefinition:
        return self.unsigned_medium_integer(column, auto_increment=True)

    def big_increments(self, column: str) -> ColumnDefinition:
        return self.unsigned_big_integer(column, auto_increment=True)

    def integer(self, column: str, auto_increment: bool = False, unsigned: bool = False) -> ColumnDefinition:
        return self.add_column("integer", column, auto_increment=auto_increment, unsigned=unsigned)

    def tiny_integer(self, column: str, auto_increment: bool = False, unsigned: bool = False) -> ColumnDefinition:
        return self.add_column("tiny_integer", column, auto_increment=auto_increment, unsigned=unsigned)

    def small_integer(self, column: str, auto_increment: bool = False, unsigned: bool = False) -> ColumnDefinition:
        return self.add_column("small_integer", column, auto_increment=auto_increment, unsigned=unsigned)

    def medium_integer(self, column: str, auto_increment: bool = False, unsigned: bool = False) -> ColumnDefinition:
        return self.add_column("medium_integer", column, auto_increment=auto_increment, unsigned=unsigned)

    def big_integer(self, column: str, auto_increment: bool = False, unsigned: bool = False) -> ColumnDefinition:
        return self.add_column("big_integer", column, auto_increment=auto_increment, unsigned=unsigned)

    def unsigned_integer(self, column: str, auto_increment: bool = False) -> ColumnDefinition:
        return self.integer(column, auto_increment, True)

    def unsigned_tiny_integer(self, column: str, auto_increment: bool = False) -> ColumnDefinition:
        return self.tiny_integer(column, auto_increment, True)

    def unsigned_small_integer(self, column: str, auto_increment: bool = False) -> ColumnDefinition:
        return self.small_integer(column, auto_increment, True)

    def unsigned_medium_integer(self, column: str, auto_increment: bool = False) -> ColumnDefinition:
        return self.medium_integer(column, auto_increment, True)

    def unsigned_big_integer(self, column: str, auto_increment: bool = False) -> ColumnDefinition:
        return self.big_integer(column, auto_increment, True)

    def foreign_id(self, column: str) -> ForeignIdColumnDefinition:
        definition = ForeignIdColumnDefinition(
            self, type="big_integer", name=column, auto_increment=False, unsigned=True
        )
        self.columns.append(definition)
        return definition

    def char(self, column: str, length: Optional[int] = None) -> ColumnDefinition:
        return self.add_column("char", column, length=length or self.default_string_length)

    def string(self, column: str, length: Optional[int] = None) -> ColumnDefinition:
        return self.add_column("string", column, length=length or self.default_string_length)

    def tiny_text(self, column: str) -> ColumnDefinition:
        return self.add_column("tiny_text", column)

    def text(self, column: str) -> ColumnDefinition:
        return self.add_column("text", column)

    def medium_text(self, column: str) -> ColumnDefinition:
        return self.add_column("medium_text", column)

    def long_text(self, column: str) -> ColumnDefinition:
        return self.add_column("long_text", column)

    def float(self, column: str, precision: int = 53) -> ColumnDefinition:
        return self.add_column("float", column, precision=precision)

    def double(
        self, column: str, total: Optional[int] = None, places: Optional[int] = None
    ) -> ColumnDefinition:
        return self.add_column("double", column, total=total, places=places)

    def decimal(self, column: str, total: int = 8, places: int = 2) -> ColumnDefinition:
        return self.add_column("decimal", column, total=total, places=places)

    def boolean(self, column: str) -> ColumnDefinition:
        return self.add_column("boolean", column)

    def enum(self, column: str, allowed: list[str]) -> ColumnDefinition:
        return self.add_column("enum", column, allowed=list(allowed))

    def json(self, column: str) -> ColumnDefinition:
        return self.add_column("json", column)

    def jsonb(self, column: str) -> ColumnDefinition:
        return self.add_column("jsonb", column)

    def date(self, column: str) -> ColumnDefinition:
        return self.add_column("date", column)

    def date_time(self, column: str, precision: int = 0) -> ColumnDefinition:
        return self.add_column("date_time", column, precision=precision)

    def time(self, column: str, precision: int = 0) -> ColumnDefinition:
        return self.add_column("time", column, precision=precision)

    def timestamp(self, column: str, precision: int = 0) -> ColumnDefinition:
        return self.add_column("timestamp", column, precision=precision)

    def timestamps(self, precision: int = 0) -> None:
        """Add nullable created_at and updated_at columns."""
        self.timestamp("created_at", precision).nullable()
        self.timestamp("updated_at", precision).nullable()

    def soft_deletes(self, column: str = "deleted_at", precision: int = 0) -> ColumnDefinition:
        return self.timestamp(column, precision).nullable()

    def binary(self, column: str) -> ColumnDefinition:
        return self.add_column("binary", column)

    def uuid(self, column: str = "uuid") -> ColumnDefinition:
        return self.add_column("uuid", column)

    def geometry(self, column: str) -> ColumnDefinition:
        return self.add_column("geometry", column)

    def point(self, column: str, srid: Optional[int] = None) -> ColumnDefinition:
        return self.add_column("point", column, srid=srid)

    def line_string(self, column: str) -> ColumnDefinition:
        return self.add_column("line_string", column)

    def polygon(self, column: str) -> ColumnDefinition:
        return self.add_column("polygon", column)

    def multi_point(self, column: str) -> ColumnDefinition:
        return self.add_column("multi_point", column)

    def multi_line_string(self, column: str) -> ColumnDefinition:
        return self.add_column("multi_line_string", column)

    def multi_polygon(self, column: str) -> ColumnDefinition:
        return self.add_column("multi_polygon", column)

    def add_column(self, type_: str, name: str, **parameters: Any) -> ColumnDefinition:
        column = ColumnDefinition(type=type_, name=name, **parameters)
        self.columns.append(column)
        return column

    def remove_column(self, name: str) -> "Blueprint":
        self.columns = [column for column in self.columns if column.name != name]
        return self

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_command(self, name: str, **parameters: Any) -> Command:
        command = self._create_command(name, **parameters)
        self.commands.append(command)
        return command

    def _create_command(self, name: str, **parameters: Any) -> Command:
        return Command(name=name, **parameters)

    def raw(self, sql: str) -> Expression:
        """Wrap a raw SQL fragment, e.g. for column defaults."""
        return Expression(sql)

    def __repr__(self) -> str:
        return f"Blueprint(table={self.table!r}, commands={[c.name for c in self.commands]})"
