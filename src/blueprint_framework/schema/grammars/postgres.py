"""PostgreSQL schema grammar."""

from typing import TYPE_CHECKING, Optional

from ...exceptions import UnsupportedOperationError
from ..fluent import ColumnDefinition, Command, Expression
from .base import Grammar

if TYPE_CHECKING:
    from ...database.connection import Connection
    from ..blueprint import Blueprint


class PostgresGrammar(Grammar):
    modifiers = ("collate", "nullable", "default", "virtual_as", "stored_as", "generated_as", "increment")
    serials = ("big_integer", "integer", "medium_integer", "small_integer", "tiny_integer")
    fluent_commands = ("auto_increment_starting_values", "comment")

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def compile_create(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "{} table {} ({})".format(
            "create temporary" if blueprint.temporary_table else "create",
            self.wrap_table(blueprint),
            ", ".join(self.get_columns(blueprint)),
        )

    def compile_add(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        columns = self.prefix_array("add column", self.get_columns(blueprint))
        return f"alter table {self.wrap_table(blueprint)} {', '.join(columns)}"

    def compile_auto_increment_starting_values(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> Optional[str]:
        column = command.get("column")
        value = column.get("starting_value", column.get("from"))
        if column.get("auto_increment") and value:
            return f"alter sequence {self.table_prefix}{blueprint.table}_{column.name}_seq restart with {value}"
        return None

    def compile_comment(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> Optional[str]:
        column = command.get("column")
        comment = column.get("comment")
        if comment is None and not column.get("change"):
            return None

        return "comment on column {}.{} is {}".format(
            self.wrap_table(blueprint),
            self.wrap(column.name),
            "NULL" if comment is None else self.quote_string(comment),
        )

    def compile_native_change(
        self, blueprint: "Blueprint", command: Command, connection: "Connection"
    ) -> str:
        columns = []
        for column in blueprint.get_changed_columns():
            changes = [f"type {self.get_type(column)}{self.modify_collate(blueprint, column) or ''}"]

            for modifier in self.modifiers:
                if modifier == "collate":
                    continue
                constraints = getattr(self, f"modify_{modifier}")(blueprint, column)
                if constraints is None:
                    continue
                changes.extend([constraints] if isinstance(constraints, str) else constraints)

            columns.append(", ".join(self.prefix_array(f"alter column {self.wrap(column)}", changes)))

        return f"alter table {self.wrap_table(blueprint)} {', '.join(columns)}"

    def compile_drop(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table {self.wrap_table(blueprint)}"

    def compile_drop_if_exists(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop table if exists {self.wrap_table(blueprint)}"

    def compile_rename(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} rename to {self.wrap_table(command.get('to'))}"

    def compile_drop_column(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        columns = self.prefix_array("drop column", self.wrap_array(command.get("columns")))
        return f"alter table {self.wrap_table(blueprint)} {', '.join(columns)}"

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def compile_primary(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} add primary key ({self.columnize(command.get('columns'))})"

    def compile_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return "alter table {} add constraint {} unique ({})".format(
            self.wrap_table(blueprint),
            self.wrap(command.get("index")),
            self.columnize(command.get("columns")),
        )

    def compile_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        algorithm = command.get("algorithm")
        return "create index {} on {}{} ({})".format(
            self.wrap(command.get("index")),
            self.wrap_table(blueprint),
            f" using {algorithm}" if algorithm else "",
            self.columnize(command.get("columns")),
        )

    def compile_fulltext(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        language = self.quote_string(command.get("language") or "english")
        vectors = " || ".join(
            f"to_tsvector({language}, {self.wrap(column)})" for column in command.get("columns")
        )
        return f"create index {self.wrap(command.get('index'))} on {self.wrap_table(blueprint)} using gin (({vectors}))"

    def compile_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        command.set("algorithm", "gist")
        return self.compile_index(blueprint, command, connection)

    def compile_rename_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter index {self.wrap(command.get('from'))} rename to {self.wrap(command.get('to'))}"

    def compile_drop_primary(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        index = self.wrap(f"{self.table_prefix}{blueprint.table}_pkey")
        return f"alter table {self.wrap_table(blueprint)} drop constraint {index}"

    def compile_drop_unique(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop constraint {self.wrap(command.get('index'))}"

    def compile_drop_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"drop index {self.wrap(command.get('index'))}"

    def compile_drop_fulltext(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self.compile_drop_index(blueprint, command, connection)

    def compile_drop_spatial_index(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return self.compile_drop_index(blueprint, command, connection)

    def compile_drop_foreign(self, blueprint: "Blueprint", command: Command, connection: "Connection") -> str:
        return f"alter table {self.wrap_table(blueprint)} drop constraint {self.wrap(command.get('index'))}"

    # ------------------------------------------------------------------
    # Database-wide
    # ------------------------------------------------------------------

    def compile_drop_all_tables(self, tables: list[str]) -> list[str]:
        return [f"drop table {', '.join(self.wrap(table) for table in tables)} cascade"]

    def compile_enable_foreign_key_constraints(self) -> str:
        return "SET CONSTRAINTS ALL IMMEDIATE;"

    def compile_disable_foreign_key_constraints(self) -> str:
        return "SET CONSTRAINTS ALL DEFERRED;"

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def type_char(self, column: ColumnDefinition) -> str:
        return f"char({column.get('length')})"

    def type_string(self, column: ColumnDefinition) -> str:
        return f"varchar({column.get('length')})"

    def type_tiny_text(self, column: ColumnDefinition) -> str:
        return "varchar(255)"

    def type_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_medium_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_long_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_integer(self, column: ColumnDefinition) -> str:
        return "serial" if self._is_serial(column) else "integer"

    def type_big_integer(self, column: ColumnDefinition) -> str:
        return "bigserial" if self._is_serial(column) else "bigint"

    def type_medium_integer(self, column: ColumnDefinition) -> str:
        return self.type_integer(column)

    def type_tiny_integer(self, column: ColumnDefinition) -> str:
        return self.type_small_integer(column)

    def type_small_integer(self, column: ColumnDefinition) -> str:
        return "smallserial" if self._is_serial(column) else "smallint"

    def _is_serial(self, column: ColumnDefinition) -> bool:
        return bool(column.get("auto_increment")) and column.get("generated_as") is None

    def type_float(self, column: ColumnDefinition) -> str:
        if column.get("precision"):
            return f"float({column.get('precision')})"
        return "real"

    def type_double(self, column: ColumnDefinition) -> str:
        return "double precision"

    def type_decimal(self, column: ColumnDefinition) -> str:
        return f"decimal({column.get('total')}, {column.get('places')})"

    def type_boolean(self, column: ColumnDefinition) -> str:
        return "boolean"

    def type_enum(self, column: ColumnDefinition) -> str:
        return 'varchar(255) check ("{}" in ({}))'.format(
            column.name, self.quote_string(column.get("allowed"))
        )

    def type_json(self, column: ColumnDefinition) -> str:
        return "json"

    def type_jsonb(self, column: ColumnDefinition) -> str:
        return "jsonb"

    def type_date(self, column: ColumnDefinition) -> str:
        return "date"

    def type_date_time(self, column: ColumnDefinition) -> str:
        return self.type_timestamp(column)

    def type_time(self, column: ColumnDefinition) -> str:
        precision = column.get("precision")
        return "time" + ("" if precision is None else f"({precision})") + " without time zone"

    def type_timestamp(self, column: ColumnDefinition) -> str:
        if column.get("use_current"):
            column.default(Expression("CURRENT_TIMESTAMP"))

        precision = column.get("precision")
        return "timestamp" + ("" if precision is None else f"({precision})") + " without time zone"

    def type_binary(self, column: ColumnDefinition) -> str:
        return "bytea"

    def type_uuid(self, column: ColumnDefinition) -> str:
        return "uuid"

    def type_geometry(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("geometry", column)

    def type_point(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("point", column)

    def type_line_string(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("linestring", column)

    def type_polygon(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("polygon", column)

    def type_multi_point(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("multipoint", column)

    def type_multi_line_string(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("multilinestring", column)

    def type_multi_polygon(self, column: ColumnDefinition) -> str:
        return self._format_postgis_type("multipolygon", column)

    def _format_postgis_type(self, type_: str, column: ColumnDefinition) -> str:
        projection = column.get("projection")
        if not column.get("is_geometry"):
            return f"geography({type_}, {projection if projection is not None else 4326})"
        return f"geometry({type_}{'' if projection is None else f', {projection}'})"

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def modify_collate(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        collation = column.get("collation")
        return f" collate {self.wrap_value(collation)}" if collation is not None else None

    def modify_nullable(self, blueprint: "Blueprint", column: ColumnDefinition) -> str:
        if column.get("change"):
            return "drop not null" if column.get("nullable") else "set not null"
        return " null" if column.get("nullable") else " not null"

    def modify_default(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        default = column.get("default")
        if column.get("change"):
            return "drop default" if default is None else f"set default {self.get_default_value(default)}"
        if default is not None:
            return f" default {self.get_default_value(default)}"
        return None

    def modify_virtual_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        return self._generated_expression(column, "virtual_as", "")

    def modify_stored_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        return self._generated_expression(column, "stored_as", " stored")

    def _generated_expression(self, column: ColumnDefinition, key: str, suffix: str) -> Optional[str]:
        if column.get("change"):
            if not column.has(key):
                return None
            if column.get(key) is None:
                return "drop expression if exists"
            raise UnsupportedOperationError(
                "This database driver does not support modifying generated columns."
            )

        expression = column.get(key)
        if expression is not None:
            return f" generated always as ({self.get_value(expression)}){suffix}"
        return None

    def modify_generated_as(self, blueprint: "Blueprint", column: ColumnDefinition) -> list[str] | str | None:
        sql = None
        generated_as = column.get("generated_as")
        if generated_as is not None:
            options = (
                f" ({generated_as})"
                if not isinstance(generated_as, bool) and generated_as
                else ""
            )
            sql = " generated {} as identity{}".format(
                "always" if column.get("always") else "by default", options
            )

        if column.get("change"):
            changes = ["drop identity if exists"]
            if sql is not None:
                changes.append(f"add {sql}")
            return changes

        return sql

    def modify_increment(self, blueprint: "Blueprint", column: ColumnDefinition) -> Optional[str]:
        if (
            not column.get("change")
            and (column.type in self.serials or column.get("generated_as") is not None)
            and column.get("auto_increment")
        ):
            return " primary key"
        return None
