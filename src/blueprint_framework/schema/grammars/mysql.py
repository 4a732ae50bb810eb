"""MySQL schema grammar."""

from typing import TYPE_CHECKING, Optional

from ..fluent import ColumnDefinition, Command, Expression
from .base import Grammar

if TYPE_CHECKING:
    from ...database.connection import Connection
    from ..blueprint import Blueprint


class MySqlGrammar(Grammar):
    modifiers = (
        "unsigned",
        "charset",
        "collate",
        "virtual_as",
        "stored_as",
        "nullable",
        "srid",
        "default",
        "on_update",
        "invisible",
        "increment",
        "comment",
        "after",
        "first",
    )
    serials = ("big_integer", "integer", "medium_integer", "small_integer", "tiny_integer")
    fluent_commands = ("auto_increment_starting_values",)

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def compile_create(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        sql = "{} table {} ({})".format(
            "create temporary" if blueprint.temporary_table else "create",
            self.wrap_table(blueprint),
            ", ".join(self.get_columns(blueprint)),
        )

        charset = blueprint.charset or connection.get_config("charset")
        if charset:
            sql += f" default character set {charset}"

        collation = blueprint.collation or connection.get_config("collation")
        if collation:
            sql += f" collate '{collation}'"

        engine = blueprint.engine or connection.get_config("engine")
        if engine:
            sql += f" engine = {engine}"

        return sql

    def compile_add(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        columns = self.prefix_array("add", self.get_columns(blueprint))
        return f"alter table {self.wrap_table(blueprint)} {', '.join(columns)}"

    def compile_auto_increment_starting_values(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> Optional[str]:
        column = command.get("column")
        value = column.get("starting_value", column.get("from"))
        if column.get("auto_increment") and value:
            return f"alter table {self.wrap_table(blueprint)} auto_increment = {value}"
        return None

    def compile_native_change(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> str:
        columns = []
        for column in blueprint.get_changed_columns():
            rename_to = column.get("rename_to")
            sql = "{} {}{} {}".format(
                "modify" if rename_to is None else "change",
                self.wrap(column),
                "" if rename_to is None else f" {self.wrap(rename_to)}",
                self.get_type(column),
            )
            columns.append(self.add_modifiers(sql, blueprint, column))

        return f"alter table {self.wrap_table(blueprint)} {', '.join(columns)}"

    def compile_drop(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table {self.wrap_table(blueprint)}"

    def compile_drop_if_exists(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table if exists {self.wrap_table(blueprint)}"

    def compile_rename(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"rename table {self.wrap_table(blueprint)} to {self.wrap_table(command.get('to'))}"

    def compile_drop_column(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        columns = self.prefix_array("drop", self.wrap_array(command.get("columns")))
        return f"alter table {self.wrap_table(blueprint)} {', '.join(columns)}"

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def compile_primary(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        algorithm = command.get("algorithm")
        return "alter table {} add primary key {}({})".format(
            self.wrap_table(blueprint),
            f"using {algorithm}" if algorithm else "",
            self.columnize(command.get("columns")),
        )

    def compile_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self._compile_key(blueprint, command, "unique")

    def compile_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self._compile_key(blueprint, command, "index")

    def compile_fulltext(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self._compile_key(blueprint, command, "fulltext")

    def compile_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self._compile_key(blueprint, command, "spatial index")

    def _compile_key(self, blueprint: "Blueprint", command: Command, type_: str) -> str:
        algorithm = command.get("algorithm")
        return "alter table {} add {} {}{}({})".format(
            self.wrap_table(blueprint),
            type_,
            self.wrap(command.get("index")),
            f" using {algorithm}" if algorithm else "",
            self.columnize(command.get("columns")),
        )

    def compile_rename_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "alter table {} rename index {} to {}".format(
            self.wrap_table(blueprint),
            self.wrap(command.get("from")),
            self.wrap(command.get("to")),
        )

    def compile_drop_primary(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop primary key"

    def compile_drop_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop index {self.wrap(command.get('index'))}"

    def compile_drop_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop index {self.wrap(command.get('index'))}"

    def compile_drop_fulltext(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self.compile_drop_index(blueprint, command, connection)

    def compile_drop_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self.compile_drop_index(blueprint, command, connection)

    def compile_drop_foreign(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop foreign key {self.wrap(command.get('index'))}"

    # ------------------------------------------------------------------
    # Database-wide
    # ------------------------------------------------------------------

    def compile_drop_all_tables(self, tables: list[str]) -> list[str]:
        return [f"drop table {', '.join(self.wrap_value(table) for table in tables)}"]

    def compile_enable_foreign_key_constraints(self) -> str:
        return "SET FOREIGN_KEY_CHECKS=1;"

    def compile_disable_foreign_key_constraints(self) -> str:
        return "SET FOREIGN_KEY_CHECKS=0;"

    def wrap_value(self, value: str) -> str:
        if value == "*":
            return value
        return "`" + value.replace("`", "``") + "`"

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def type_char(self, column: ColumnDefinition) -> str:
        return f"char({column.get('length')})"

    def type_string(self, column: ColumnDefinition) -> str:
        return f"varchar({column.get('length')})"

    def type_tiny_text(self, column: ColumnDefinition) -> str:
        return "tinytext"

    def type_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_medium_text(self, column: ColumnDefinition) -> str:
        return "mediumtext"

    def type_long_text(self, column: ColumnDefinition) -> str:
        return "longtext"

    def type_big_integer(self, column: ColumnDefinition) -> str:
        return "bigint"

    def type_integer(self, column: ColumnDefinition) -> str:
        return "int"

    def type_medium_integer(self, column: ColumnDefinition) -> str:
        return "mediumint"

    def type_tiny_integer(self, column: ColumnDefinition) -> str:
        return "tinyint"

    def type_small_integer(self, column: ColumnDefinition) -> str:
        return "smallint"

    def type_float(self, column: ColumnDefinition) -> str:
        if column.get("precision"):
            return f"float({column.get('precision')})"
        return "float"

    def type_double(self, column: ColumnDefinition) -> str:
        if column.get("total") and column.get("places"):
            return f"double({column.get('total')}, {column.get('places')})"
        return "double"

    def type_decimal(self, column: ColumnDefinition) -> str:
        return f"decimal({column.get('total')}, {column.get('places')})"

    def type_boolean(self, column: ColumnDefinition) -> str:
        return "tinyint(1)"

    def type_enum(self, column: ColumnDefinition) -> str:
        return f"enum({self.quote_string(column.get('allowed'))})"

    def type_json(self, column: ColumnDefinition) -> str:
        return "json"

    def type_jsonb(self, column: ColumnDefinition) -> str:
        return "json"

    def type_date(self, column: ColumnDefinition) -> str:
        return "date"

    def type_date_time(self, column: ColumnDefinition) -> str:
        return self._current_timestamp_type("datetime", column)

    def type_time(self, column: ColumnDefinition) -> str:
        precision = column.get("precision")
        return f"time({precision})" if precision else "time"

    def type_timestamp(self, column: ColumnDefinition) -> str:
        return self._current_timestamp_type("timestamp", column)

    def _current_timestamp_type(self, type_: str, column: ColumnDefinition) -> str:
        precision = column.get("precision")
        current = f"CURRENT_TIMESTAMP({precision})" if precision else "CURRENT_TIMESTAMP"

        if column.get("use_current"):
            column.default(Expression(current))
        if column.get("use_current_on_update"):
            column.on_update(Expression(current))

        return f"{type_}({precision})" if precision else type_

    def type_binary(self, column: ColumnDefinition) -> str:
        return "blob"

    def type_uuid(self, column: ColumnDefinition) -> str:
        return "char(36)"

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

    def modify_unsigned(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        return " unsigned" if column.get("unsigned") else None

    def modify_charset(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        charset = column.get("charset")
        return f" character set {charset}" if charset is not None else None

    def modify_collate(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        collation = column.get("collation")
        return f" collate '{collation}'" if collation is not None else None

    def modify_virtual_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        expression = column.get("virtual_as")
        return f" as ({self.get_value(expression)})" if expression is not None else None

    def modify_stored_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        expression = column.get("stored_as")
        return f" as ({self.get_value(expression)}) stored" if expression is not None else None

    def modify_nullable(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.get("virtual_as") is None and column.get("stored_as") is None:
            return " null" if column.get("nullable") else " not null"

        # Generated columns are nullable unless stated otherwise
        if column.get("nullable") is False:
            return " not null"
        return None

    def modify_srid(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        srid = column.get("srid")
        if isinstance(srid, int) and not isinstance(srid, bool) and srid > 0:
            return f" srid {srid}"
        return None

    def modify_default(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.get("default") is not None:
            return f" default {self.get_default_value(column.get('default'))}"
        return None

    def modify_on_update(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.get("on_update") is not None:
            return f" on update {self.get_value(column.get('on_update'))}"
        return None

    def modify_invisible(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        return " invisible" if column.get("invisible") else None

    def modify_increment(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if column.type in self.serials and column.get("auto_increment"):
            if self.has_command(blueprint, "primary"):
                return " auto_increment"
            return " auto_increment primary key"
        return None

    def modify_comment(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        comment = column.get("comment")
        if comment is not None:
            escaped = comment.replace("\\", "\\\\").replace("'", "\\'")
            return f" comment '{escaped}'"
        return None

    def modify_after(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        after = column.get("after")
        return f" after {self.wrap(after)}" if after is not None else None

    def modify_first(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        return " first" if column.get("first") else None
