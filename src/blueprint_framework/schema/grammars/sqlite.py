"""SQLite schema grammar.

SQLite cannot alter columns in place, so changes (and, unless native schema
operations are enabled, renames and drops) go through the table rebuild in
`blueprint_framework.schema.rebuild`.
"""

from typing import TYPE_CHECKING, Optional

from ...exceptions import UnsupportedOperationError
from ..fluent import ColumnDefinition, Command, Expression
from .base import Grammar, _as_list

if TYPE_CHECKING:
    from ...database.connection import Connection
    from ..blueprint import Blueprint


class SQLiteGrammar(Grammar):
    modifiers = ("increment", "nullable", "default", "virtual_as", "stored_as", "collate")
    serials = ("big_integer", "integer", "medium_integer", "small_integer", "tiny_integer")

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def compile_create(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "{} table {} ({}{}{})".format(
            "create temporary" if blueprint.temporary_table else "create",
            self.wrap_table(blueprint),
            ", ".join(self.get_columns(blueprint)),
            self._add_foreign_keys(blueprint),
            self._add_primary_keys(blueprint),
        )

    def _add_foreign_keys(self, blueprint: "Blueprint") -> str:
        sql = ""
        for foreign in self.get_commands_by_name(blueprint, "foreign"):
            sql += ", foreign key({}) references {}({})".format(
                self.columnize(foreign.get("columns")),
                self.wrap_table(foreign.get("on")),
                self.columnize(_as_list(foreign.get("references"))),
            )
            if foreign.get("on_delete") is not None:
                sql += f" on delete {foreign.get('on_delete')}"
            if foreign.get("on_update") is not None:
                sql += f" on update {foreign.get('on_update')}"
        return sql

    def _add_primary_keys(self, blueprint: "Blueprint") -> str:
        primary = self.get_command_by_name(blueprint, "primary")
        if primary is None:
            return ""
        return f", primary key ({self.columnize(primary.get('columns'))})"

    def compile_add(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> list[str]:
        return [
            f"alter table {self.wrap_table(blueprint)} add column {column}"
            for column in self.get_columns(blueprint)
        ]

    def compile_change(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> list[str]:
        return self._require_state(blueprint).compile_change(blueprint)

    def compile_drop(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table {self.wrap_table(blueprint)}"

    def compile_drop_if_exists(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table if exists {self.wrap_table(blueprint)}"

    def compile_rename(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} rename to {self.wrap_table(command.get('to'))}"

    def compile_drop_column(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str]:
        if not connection.uses_native_schema_operations():
            return self._require_state(blueprint).compile_drop_column(command)

        table = self.wrap_table(blueprint)
        return [
            f"alter table {table} drop column {column}"
            for column in self.wrap_array(command.get("columns"))
        ]

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def compile_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "create unique index {} on {} ({})".format(
            self.wrap(command.get("index")),
            self.wrap_table(blueprint),
            self.columnize(command.get("columns")),
        )

    def compile_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "create index {} on {} ({})".format(
            self.wrap(command.get("index")),
            self.wrap_table(blueprint),
            self.columnize(command.get("columns")),
        )

    def compile_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        raise UnsupportedOperationError("The database driver in use does not support spatial indexes.")

    def compile_rename_index(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str]:
        return self._require_state(blueprint).compile_rename_index(command)

    def compile_drop_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop index {self.wrap(command.get('index'))}"

    def compile_drop_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop index {self.wrap(command.get('index'))}"

    def compile_drop_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        raise UnsupportedOperationError("The database driver in use does not support spatial indexes.")

    # Foreign keys are declared inside `create table`
    compile_foreign = None

    # ------------------------------------------------------------------
    # Database-wide
    # ------------------------------------------------------------------

    def compile_drop_all_tables(self, tables: list[str]) -> list[str]:
        return [f"drop table {self.wrap_table(table)}" for table in tables]

    def compile_enable_foreign_key_constraints(self) -> str:
        return "PRAGMA foreign_keys = ON;"

    def compile_disable_foreign_key_constraints(self) -> str:
        return "PRAGMA foreign_keys = OFF;"

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def type_char(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_string(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_tiny_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_medium_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_long_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_integer(self, column: ColumnDefinition) -> str:
        return "integer"

    def type_big_integer(self, column: ColumnDefinition) -> str:
        return "integer"

    def type_medium_integer(self, column: ColumnDefinition) -> str:
        return "integer"

    def type_tiny_integer(self, column: ColumnDefinition) -> str:
        return "integer"

    def type_small_integer(self, column: ColumnDefinition) -> str:
        return "integer"

    def type_float(self, column: ColumnDefinition) -> str:
        return "float"

    def type_double(self, column: ColumnDefinition) -> str:
        return "float"

    def type_decimal(self, column: ColumnDefinition) -> str:
        return "numeric"

    def type_boolean(self, column: ColumnDefinition) -> str:
        return "tinyint(1)"

    def type_enum(self, column: ColumnDefinition) -> str:
        return 'varchar check ("{}" in ({}))'.format(column.name, self.quote_string(column.get("allowed")))

    def type_json(self, column: ColumnDefinition) -> str:
        return "text"

    def type_jsonb(self, column: ColumnDefinition) -> str:
        return "text"

    def type_date(self, column: ColumnDefinition) -> str:
        return "date"

    def type_date_time(self, column: ColumnDefinition) -> str:
        return self.type_timestamp(column)

    def type_time(self, column: ColumnDefinition) -> str:
        return "time"

    def type_timestamp(self, column: ColumnDefinition) -> str:
        if column.get("use_current"):
            column.default(Expression("CURRENT_TIMESTAMP"))
        return "datetime"

    def type_binary(self, column: ColumnDefinition) -> str:
        return "blob"

    def type_uuid(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_geometry(self, column: ColumnDefinition) -> str:
        return "geometry"

    def type_point(self, column: ColumnDefinition) -> str:
        return "point"

    def type_line_string(self, column: ColumnDefinition) -> str:
        return "linestring"

    def type_polygon(self, column: ColumnDefinition) -> str:
        return "polygon"

    def type_multi_point(self, column: ColumnDefinition) -> str:
        return "multipoint"

    def type_multi_line_string(self, column: ColumnDefinition) -> str:
        return "multilinestring"

    def type_multi_polygon(self, column: ColumnDefinition) -> str:
        return "multipolygon"

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def modify_increment(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.type in self.serials and column.get("auto_increment"):
            return " primary key autoincrement"
        return None

    def modify_nullable(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.get("virtual_as") is None and column.get("stored_as") is None:
            return " null" if column.get("nullable") else " not null"
        if column.get("nullable") is False:
            return " not null"
        return None

    def modify_default(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        default = column.get("default")
        if default is not None and column.get("virtual_as") is None and column.get("stored_as") is None:
            return f" default {self.get_default_value(default)}"
        return None

    def modify_virtual_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        expression = column.get("virtual_as")
        if expression is not None:
            return f" as ({self.get_value(expression)})"
        return None

    def modify_stored_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        expression = column.get("stored_as")
        if expression is not None:
            return f" as ({self.get_value(expression)}) stored"
        return None

    def modify_collate(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        collation = column.get("collation")
        return f" collate '{collation}'" if collation is not None else None
