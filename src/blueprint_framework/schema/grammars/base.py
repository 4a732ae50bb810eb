"""Base schema grammar.

A grammar renders blueprint commands into SQL for one dialect. Commands are
dispatched to `compile_<command>`, column types to `type_<type>` and column
modifiers, in the order listed in `modifiers`, to `modify_<modifier>`.
A command without a compiler is skipped by the blueprint.
"""

from typing import TYPE_CHECKING, Any, Iterable, Optional

from ...exceptions import SchemaError, UnsupportedOperationError
from ..fluent import ColumnDefinition, Command, Expression

if TYPE_CHECKING:
    from ...database.connection import Connection
    from ..blueprint import Blueprint


class Grammar:
    """Shared rendering helpers and the commands most dialects spell alike."""

    modifiers: tuple[str, ...] = ()
    serials: tuple[str, ...] = (
        "big_integer",
        "integer",
        "medium_integer",
        "small_integer",
        "tiny_integer",
    )
    fluent_commands: tuple[str, ...] = ()

    def __init__(self, table_prefix: str = ""):
        self.table_prefix = table_prefix

    def get_table_prefix(self) -> str:
        return self.table_prefix

    def set_table_prefix(self, prefix: str) -> "Grammar":
        self.table_prefix = prefix
        return self

    # ------------------------------------------------------------------
    # Shared compilers
    # ------------------------------------------------------------------

    def compile_rename_column(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str] | str:
        if not connection.uses_native_schema_operations():
            return self._require_state(blueprint).compile_rename_column(command)

        return "alter table {} rename column {} to {}".format(
            self.wrap_table(blueprint),
            self.wrap(command.get("from")),
            self.wrap(command.get("to")),
        )

    def compile_change(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str] | str:
        if not connection.uses_native_schema_operations():
            return self._require_state(blueprint).compile_change(blueprint)

        return self.compile_native_change(blueprint, command, connection)

    def compile_native_change(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str] | str:
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support modifying columns."
        )

    def compile_foreign(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> str:
        sql = "alter table {} add constraint {} ".format(
            self.wrap_table(blueprint), self.wrap(command.get("index"))
        )
        sql += "foreign key ({}) references {} ({})".format(
            self.columnize(command.get("columns")),
            self.wrap_table(command.get("on")),
            self.columnize(_as_list(command.get("references"))),
        )

        if command.get("on_delete") is not None:
            sql += f" on delete {command.get('on_delete')}"
        if command.get("on_update") is not None:
            sql += f" on update {command.get('on_update')}"

        return sql

    def compile_drop_all_tables(self, tables: list[str]) -> list[str]:
        raise UnsupportedOperationError("This database driver does not support dropping all tables.")

    def compile_enable_foreign_key_constraints(self) -> str:
        raise UnsupportedOperationError(
            "This database driver does not support toggling foreign key constraints."
        )

    def compile_disable_foreign_key_constraints(self) -> str:
        raise UnsupportedOperationError(
            "This database driver does not support toggling foreign key constraints."
        )

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def get_columns(self, blueprint: "Blueprint") -> list[str]:
        """Compile the added columns of a blueprint into column definitions."""
        columns = []
        for column in blueprint.get_added_columns():
            sql = f"{self.wrap(column)} {self.get_type(column)}"
            columns.append(self.add_modifiers(sql, blueprint, column))
        return columns

    def get_type(self, column: ColumnDefinition) -> str:
        method = getattr(self, f"type_{column.type}", None)
        if method is None:
            raise SchemaError(
                f"Column type [{column.type}] is not supported by {type(self).__name__}."
            )
        return method(column)

    def add_modifiers(self, sql: str, blueprint: "Blueprint", column: ColumnDefinition) -> str:
        for modifier in self.modifiers:
            method = getattr(self, f"modify_{modifier}", None)
            if method is not None:
                sql += method(blueprint, column) or ""
        return sql

    # ------------------------------------------------------------------
    # Commands lookup
    # ------------------------------------------------------------------

    def get_command_by_name(self, blueprint: "Blueprint", name: str) -> Optional[Command]:
        commands = self.get_commands_by_name(blueprint, name)
        return commands[0] if commands else None

    def get_commands_by_name(self, blueprint: "Blueprint", name: str) -> list[Command]:
        return [command for command in blueprint.commands if command.name == name]

    def has_command(self, blueprint: "Blueprint", name: str) -> bool:
        return bool(self.get_commands_by_name(blueprint, name))

    # ------------------------------------------------------------------
    # Wrapping and quoting
    # ------------------------------------------------------------------

    def wrap_table(self, table: "Blueprint | Expression | str") -> str:
        if isinstance(table, Expression):
            return self.get_value(table)
        name = table if isinstance(table, str) else table.table

        if "." in name:
            schema, _, name = name.rpartition(".")
            return f"{self.wrap_value(schema)}.{self.wrap_value(self.table_prefix + name)}"

        return self.wrap_value(self.table_prefix + name)

    def wrap(self, value: "str | Expression | ColumnDefinition") -> str:
        if isinstance(value, Expression):
            return self.get_value(value)
        if isinstance(value, ColumnDefinition):
            value = value.name

        if " as " in value.lower():
            index = value.lower().index(" as ")
            return f"{self.wrap(value[:index])} as {self.wrap_value(value[index + 4:])}"

        return ".".join(self.wrap_value(segment) for segment in value.split("."))

    def wrap_value(self, value: str) -> str:
        if value == "*":
            return value
        return '"' + value.replace('"', '""') + '"'

    def wrap_array(self, values: Iterable[str]) -> list[str]:
        return [self.wrap(value) for value in values]

    def columnize(self, columns: Iterable[str]) -> str:
        return ", ".join(self.wrap_array(columns))

    def prefix_array(self, prefix: str, values: Iterable[str]) -> list[str]:
        return [f"{prefix} {value}" for value in values]

    def quote_string(self, value: str | Iterable[str]) -> str:
        if isinstance(value, str):
            return "'" + value.replace("'", "''") + "'"
        return ", ".join(self.quote_string(item) for item in value)

    def get_value(self, expression: Expression | Any) -> str:
        if isinstance(expression, Expression):
            return str(expression.value)
        return str(expression)

    def get_default_value(self, value: Any) -> str:
        if isinstance(value, Expression):
            return self.get_value(value)
        if isinstance(value, bool):
            return f"'{int(value)}'"
        return self.quote_string(str(value))

    def _require_state(self, blueprint: "Blueprint"):
        if blueprint.state is None:
            raise UnsupportedOperationError(
                "Table rebuilds are only available on SQLite connections."
            )
        return blueprint.state


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
