"""SQL Server schema grammar."""

from typing import TYPE_CHECKING, Optional

from ..fluent import ColumnDefinition, Command, Expression
from .base import Grammar

if TYPE_CHECKING:
    from ...database.connection import Connection
    from ..blueprint import Blueprint


class SqlServerGrammar(Grammar):
    modifiers = ("collate", "nullable", "default", "persisted", "increment")
    serials = ("tiny_integer", "small_integer", "medium_integer", "integer", "big_integer")
    fluent_commands = ("default",)

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def compile_create(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"create table {self.wrap_table(blueprint)} ({', '.join(self.get_columns(blueprint))})"

    def compile_add(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} add {', '.join(self.get_columns(blueprint))}"

    def compile_native_change(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str]:
        changes = [self.compile_drop_default_constraint(blueprint, [c.name for c in blueprint.get_changed_columns()])]

        for column in blueprint.get_changed_columns():
            sql = "alter table {} alter column {} {}".format(
                self.wrap_table(blueprint), self.wrap(column), self.get_type(column)
            )
            changes.append(self.add_modifiers(sql, blueprint, column))

        return changes

    def compile_default(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> Optional[str]:
        column = command.get("column")
        if column.get("change") and column.get("default") is not None:
            return "alter table {} add default {} for {}".format(
                self.wrap_table(blueprint),
                self.get_default_value(column.get("default")),
                self.wrap(column),
            )
        return None

    def compile_drop_default_constraint(self, blueprint: "Blueprint", columns: list[str]) -> str:
        """Drop the named default constraints SQL Server attaches to columns."""
        names = "'" + "','".join(columns) + "'"
        table = f"[dbo].[{self.table_prefix}{blueprint.table}]"

        return (
            "DECLARE @sql NVARCHAR(MAX) = '';"
            f"SELECT @sql += 'ALTER TABLE {table} DROP CONSTRAINT ' + OBJECT_NAME([default_object_id]) + ';' "
            f"FROM sys.columns WHERE [object_id] = OBJECT_ID('{table}') AND [name] in ({names}) "
            "AND [default_object_id] <> 0;EXEC(@sql)"
        )

    def compile_drop(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table {self.wrap_table(blueprint)}"

    def compile_drop_if_exists(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        table = self.quote_string(self.table_prefix + blueprint.table)
        return (
            f"if exists (select * from sys.sysobjects where id = object_id({table}, 'U')) "
            f"drop table {self.wrap_table(blueprint)}"
        )

    def compile_rename(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"sp_rename '{self.wrap_table(blueprint)}', {self.wrap_table(command.get('to'))}"

    def compile_rename_column(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> list[str] | str:
        if not connection.uses_native_schema_operations():
            return self._require_state(blueprint).compile_rename_column(command)

        return "sp_rename '{}.{}', {}, 'COLUMN'".format(
            self.wrap_table(blueprint),
            self.wrap(command.get("from")),
            self.wrap(command.get("to")),
        )

    def compile_drop_column(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        columns = command.get("columns")
        return "{};alter table {} drop column {}".format(
            self.compile_drop_default_constraint(blueprint, columns),
            self.wrap_table(blueprint),
            self.columnize(columns),
        )

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def compile_primary(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "alter table {} add constraint {} primary key ({})".format(
            self.wrap_table(blueprint),
            self.wrap(command.get("index")),
            self.columnize(command.get("columns")),
        )

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
        return "create spatial index {} on {} ({})".format(
            self.wrap(command.get("index")),
            self.wrap_table(blueprint),
            self.columnize(command.get("columns")),
        )

    def compile_rename_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "sp_rename N'{}.{}', {}, N'INDEX'".format(
            self.wrap_table(blueprint),
            self.wrap(command.get("from")),
            self.wrap(command.get("to")),
        )

    def compile_drop_primary(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop constraint {self.wrap(command.get('index'))}"

    def compile_drop_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop index {self.wrap(command.get('index'))} on {self.wrap_table(blueprint)}"

    def compile_drop_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop index {self.wrap(command.get('index'))} on {self.wrap_table(blueprint)}"

    def compile_drop_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self.compile_drop_index(blueprint, command, connection)

    def compile_drop_foreign(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop constraint {self.wrap(command.get('index'))}"

    # ------------------------------------------------------------------
    # Database-wide
    # ------------------------------------------------------------------

    def compile_drop_all_tables(self, tables: list[str]) -> list[str]:
        return [f"drop table {self.wrap_table(table)}" for table in tables]

    def compile_enable_foreign_key_constraints(self) -> str:
        return 'EXEC sp_msforeachtable @command1="print \'?\'", @command2="ALTER TABLE ? WITH CHECK CHECK CONSTRAINT all";'

    def compile_disable_foreign_key_constraints(self) -> str:
        return 'EXEC sp_msforeachtable "ALTER TABLE ? NOCHECK CONSTRAINT all";'

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def type_char(self, column: ColumnDefinition) -> str:
        return f"nchar({column.get('length')})"

    def type_string(self, column: ColumnDefinition) -> str:
        return f"nvarchar({column.get('length')})"

    def type_tiny_text(self, column: ColumnDefinition) -> str:
        return "nvarchar(255)"

    def type_text(self, column: ColumnDefinition) -> str:
        return "nvarchar(max)"

    def type_medium_text(self, column: ColumnDefinition) -> str:
        return "nvarchar(max)"

    def type_long_text(self, column: ColumnDefinition) -> str:
        return "nvarchar(max)"

    def type_integer(self, column: ColumnDefinition) -> str:
        return "int"

    def type_big_integer(self, column: ColumnDefinition) -> str:
        return "bigint"

    def type_medium_integer(self, column: ColumnDefinition) -> str:
        return "int"

    def type_tiny_integer(self, column: ColumnDefinition) -> str:
        return "tinyint"

    def type_small_integer(self, column: ColumnDefinition) -> str:
        return "smallint"

    def type_float(self, column: ColumnDefinition) -> str:
        if column.get("precision"):
            return f"float({column.get('precision')})"
        return "float"

    def type_double(self, column: ColumnDefinition) -> str:
        return "float"

    def type_decimal(self, column: ColumnDefinition) -> str:
        return f"decimal({column.get('total')}, {column.get('places')})"

    def type_boolean(self, column: ColumnDefinition) -> str:
        return "bit"

    def type_enum(self, column: ColumnDefinition) -> str:
        return 'nvarchar(255) check ("{}" in ({}))'.format(
            column.name, self.quote_string(column.get("allowed"))
        )

    def type_json(self, column: ColumnDefinition) -> str:
        return "nvarchar(max)"

    def type_jsonb(self, column: ColumnDefinition) -> str:
        return "nvarchar(max)"

    def type_date(self, column: ColumnDefinition) -> str:
        return "date"

    def type_date_time(self, column: ColumnDefinition) -> str:
        return self.type_timestamp(column)

    def type_time(self, column: ColumnDefinition) -> str:
        precision = column.get("precision")
        return f"time({precision})" if precision else "time"

    def type_timestamp(self, column: ColumnDefinition) -> str:
        if column.get("use_current"):
            column.default(Expression("CURRENT_TIMESTAMP"))

        precision = column.get("precision")
        return f"datetime2({precision})" if precision else "datetime"

    def type_binary(self, column: ColumnDefinition) -> str:
        return "varbinary(max)"

    def type_uuid(self, column: ColumnDefinition) -> str:
        return "uniqueidentifier"

    def type_geometry(self, column: ColumnDefinition) -> str:
        return "geography"

    type_point = type_line_string = type_polygon = type_geometry
    type_multi_point = type_multi_line_string = type_multi_polygon = type_geometry

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def modify_collate(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        collation = column.get("collation")
        return f" collate {collation}" if collation is not None else None

    def modify_nullable(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        return " null" if column.get("nullable") else " not null"

    def modify_default(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        default = column.get("default")
        if not column.get("change") and default is not None:
            return f" default {self.get_default_value(default)}"
        return None

    def modify_persisted(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.get("change"):
            return None
        return " persisted" if column.get("persisted") else None

    def modify_increment(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if not column.get("change") and column.type in self.serials and column.get("auto_increment"):
            return " identity primary key"
        return None
