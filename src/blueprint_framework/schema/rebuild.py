"""SQLite table rebuilds.

SQLite only alters tables in a few narrow ways, so changing a column means
copying the data out, recreating the table with the new definition and
copying the data back:

    CREATE TEMPORARY TABLE __temp__users AS SELECT name, age FROM users
    DROP TABLE users
    CREATE TABLE users (first_name VARCHAR(255) NOT NULL, age INTEGER NOT NULL)
    INSERT INTO users (first_name, age) SELECT name, age FROM __temp__users
    DROP TABLE __temp__users

`BlueprintState` reads the live table once per `Blueprint.to_sql()` call and
is updated after every compiled command, so several rebuilds in the same
blueprint build on each other.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from sqlalchemy.dialects import sqlite

from ..exceptions import SchemaError
from .fluent import ColumnDefinition, Command, Expression

if TYPE_CHECKING:
    from ..database.connection import Connection
    from .blueprint import Blueprint

logger = logging.getLogger(__name__)

STRING_TYPES = ("VARCHAR", "CHAR", "CLOB", "TEXT")

# Quotes keywords and unusual names only, so plain identifiers stay bare
_preparer = sqlite.dialect().identifier_preparer


@dataclass
class ColumnState:
    """A column as it will be declared in the rebuilt table."""

    name: str
    type: str
    nullable: bool = False
    default: Optional[str] = None
    collation: Optional[str] = None
    auto_increment: bool = False
    primary: bool = False
    # Name of the column in the live table; None once it no longer maps to one
    source: Optional[str] = field(default=None, compare=False)


@dataclass
class IndexState:
    name: str
    columns: list[str]
    unique: bool = False


@dataclass
class ForeignKeyState:
    columns: list[str]
    table: str
    references: list[str]
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


class BlueprintState:
    """Tracks the shape of one SQLite table while a blueprint compiles."""

    def __init__(self, blueprint: "Blueprint", connection: "Connection"):
        self.blueprint = blueprint
        self.connection = connection
        self.table = connection.get_table_prefix() + blueprint.table

        self.exists = False
        self.columns: list[ColumnState] = []
        self.indexes: list[IndexState] = []
        self.foreign_keys: list[ForeignKeyState] = []
        self._loaded = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        rows = self.connection.select(f'PRAGMA table_info("{self.table}")')
        if not rows:
            return

        self.exists = True
        create_sql = self._create_statement()
        primary_keys = sorted((row["pk"], row["name"]) for row in rows if row["pk"])
        autoincrement = "autoincrement" in create_sql.lower() and len(primary_keys) == 1

        for row in rows:
            self.columns.append(
                ColumnState(
                    name=row["name"],
                    type=_normalize_type(row["type"]),
                    nullable=not row["notnull"],
                    default=row["dflt_value"],
                    collation=_find_collation(create_sql, row["name"]),
                    auto_increment=bool(row["pk"]) and autoincrement,
                    primary=bool(row["pk"]),
                    source=row["name"],
                )
            )

        for index in self.connection.select(f'PRAGMA index_list("{self.table}")'):
            if index["origin"] != "c":
                continue
            info = self.connection.select(f'PRAGMA index_info("{index["name"]}")')
            self.indexes.append(
                IndexState(
                    name=index["name"],
                    columns=[row["name"] for row in sorted(info, key=lambda r: r["seqno"])],
                    unique=bool(index["unique"]),
                )
            )

        foreign: dict[int, ForeignKeyState] = {}
        for row in self.connection.select(f'PRAGMA foreign_key_list("{self.table}")'):
            key = foreign.setdefault(
                row["id"],
                ForeignKeyState(
                    columns=[],
                    table=row["table"],
                    references=[],
                    on_delete=_action(row["on_delete"]),
                    on_update=_action(row["on_update"]),
                ),
            )
            key.columns.append(row["from"])
            key.references.append(row["to"])
        self.foreign_keys = list(foreign.values())

        logger.debug(
            f"Loaded table {self.table}: {len(self.columns)} columns, "
            f"{len(self.indexes)} indexes, {len(self.foreign_keys)} foreign keys"
        )

    def _create_statement(self) -> str:
        rows = self.connection.select(
            "select sql from sqlite_master where type = 'table' and name = :name",
            {"name": self.table},
        )
        return (rows[0]["sql"] or "") if rows else ""

    def _require_table(self) -> None:
        self._load()
        if not self.exists:
            raise SchemaError(f"Table [{self.table}] does not exist.")

    def _find_column(self, columns: list[ColumnState], name: str) -> Optional[ColumnState]:
        return next((column for column in columns if column.name.lower() == name.lower()), None)

    # ------------------------------------------------------------------
    # Compilers
    # ------------------------------------------------------------------

    def compile_change(self, blueprint: "Blueprint") -> list[str]:
        self._require_table()
        columns = self._changed_columns(blueprint.get_changed_columns(), strict=True)
        if columns == self.columns:
            return []
        return self._rebuild(columns, self.indexes, self.foreign_keys)

    def compile_rename_column(self, command: Command) -> list[str]:
        self._require_table()
        columns, indexes, foreign_keys = self._renamed(command.get("from"), command.get("to"), strict=True)
        return self._rebuild(columns, indexes, foreign_keys)

    def compile_drop_column(self, command: Command) -> list[str]:
        self._require_table()
        columns, indexes, foreign_keys = self._dropped(command.get("columns"), strict=True)
        return self._rebuild(columns, indexes, foreign_keys)

    def compile_rename_index(self, command: Command) -> list[str]:
        self._require_table()
        index = next((i for i in self.indexes if i.name == command.get("from")), None)
        if index is None:
            raise SchemaError(
                f"Index [{command.get('from')}] does not exist on table [{self.table}]."
            )

        return [
            f"DROP INDEX {_quote(index.name)}",
            "CREATE {}INDEX {} ON {} ({})".format(
                "UNIQUE " if index.unique else "",
                _quote(command.get("to")),
                _quote(self.table),
                _columnize(index.columns),
            ),
        ]

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def update(self, command: Command) -> None:
        """Apply a compiled command to the tracked table."""
        self._load()
        name = command.name

        if name == "create":
            self.exists = True
            self.columns = [
                _column_from_definition(column)
                for column in self.blueprint.get_added_columns()
            ]
            self.indexes = []
            self.foreign_keys = []
            return

        if not self.exists:
            return

        if name == "drop":
            self.exists = False
            self.columns, self.indexes, self.foreign_keys = [], [], []
        elif name == "add":
            self.columns = self.columns + [
                _column_from_definition(column)
                for column in self.blueprint.get_added_columns()
            ]
        elif name == "change":
            self.columns = self._changed_columns(self.blueprint.get_changed_columns(), strict=False)
        elif name == "rename_column":
            self.columns, self.indexes, self.foreign_keys = self._renamed(
                command.get("from"), command.get("to"), strict=False
            )
        elif name == "drop_column":
            self.columns, self.indexes, self.foreign_keys = self._dropped(
                command.get("columns"), strict=False
            )
        elif name in ("index", "unique"):
            self.indexes = self.indexes + [
                IndexState(command.get("index"), list(command.get("columns")), name == "unique")
            ]
        elif name in ("drop_index", "drop_unique"):
            self.indexes = [i for i in self.indexes if i.name != command.get("index")]
        elif name == "rename_index":
            self.indexes = [
                IndexState(command.get("to"), i.columns, i.unique) if i.name == command.get("from") else i
                for i in self.indexes
            ]
        else:
            return

        # Every rebuilt column now lives under its own name
        for column in self.columns:
            column.source = column.name

    def _changed_columns(self, definitions: list[ColumnDefinition], strict: bool) -> list[ColumnState]:
        columns = copy.deepcopy(self.columns)
        for definition in definitions:
            current = self._find_column(columns, definition.name)
            if current is None:
                if strict:
                    raise SchemaError(
                        f"Column [{definition.name}] does not exist on table [{self.table}]."
                    )
                continue

            changed = _column_from_definition(definition)
            changed.primary = current.primary or changed.primary
            changed.source = current.source
            columns[columns.index(current)] = changed
        return columns

    def _renamed(self, from_: str, to: str, strict: bool):
        columns = copy.deepcopy(self.columns)
        current = self._find_column(columns, from_)
        if current is None:
            if strict:
                raise SchemaError(f"Column [{from_}] does not exist on table [{self.table}].")
            return columns, self.indexes, self.foreign_keys

        current.name = to
        def rename(names: list[str]) -> list[str]:
            return [to if name == from_ else name for name in names]

        indexes = [IndexState(i.name, rename(i.columns), i.unique) for i in self.indexes]
        foreign_keys = [
            ForeignKeyState(rename(f.columns), f.table, f.references, f.on_delete, f.on_update)
            for f in self.foreign_keys
        ]
        return columns, indexes, foreign_keys

    def _dropped(self, names: list[str], strict: bool):
        dropped = {name.lower() for name in names}
        if strict:
            missing = [n for n in names if self._find_column(self.columns, n) is None]
            if missing:
                raise SchemaError(
                    f"Column [{', '.join(missing)}] does not exist on table [{self.table}]."
                )

        columns = [c for c in copy.deepcopy(self.columns) if c.name.lower() not in dropped]
        indexes = [
            i for i in self.indexes if not any(column.lower() in dropped for column in i.columns)
        ]
        foreign_keys = [
            f for f in self.foreign_keys if not any(column.lower() in dropped for column in f.columns)
        ]
        return columns, indexes, foreign_keys

    # ------------------------------------------------------------------
    # SQL
    # ------------------------------------------------------------------

    def _rebuild(
        self,
        columns: list[ColumnState],
        indexes: list[IndexState],
        foreign_keys: list[ForeignKeyState],
    ) -> list[str]:
        table = _quote(self.table)
        temp = _quote(f"__temp__{self.table}")
        copied = [column for column in columns if column.source is not None]
        sources = _columnize(column.source for column in copied)
        targets = _columnize(column.name for column in copied)

        logger.info(f"Rebuilding table {self.table} ({len(columns)} columns)")

        statements = [
            f"CREATE TEMPORARY TABLE {temp} AS SELECT {sources} FROM {table}",
            f"DROP TABLE {table}",
            self._create_table(columns, foreign_keys),
            f"INSERT INTO {table} ({targets}) SELECT {sources} FROM {temp}",
            f"DROP TABLE {temp}",
        ]
        for index in indexes:
            statements.append(
                "CREATE {}INDEX {} ON {} ({})".format(
                    "UNIQUE " if index.unique else "",
                    _quote(index.name),
                    table,
                    _columnize(index.columns),
                )
            )
        return statements

    def _create_table(self, columns: list[ColumnState], foreign_keys: list[ForeignKeyState]) -> str:
        primary = [column.name for column in columns if column.primary]
        inline_primary = len(primary) == 1 and any(c.primary and c.auto_increment for c in columns)

        definitions = [self._declare(column, inline_primary) for column in columns]
        if primary and not inline_primary:
            definitions.append(f"PRIMARY KEY({_columnize(primary)})")

        for key in foreign_keys:
            sql = "FOREIGN KEY ({}) REFERENCES {} ({})".format(
                _columnize(key.columns), _quote(key.table), _columnize(key.references)
            )
            if key.on_delete:
                sql += f" ON DELETE {key.on_delete.upper()}"
            if key.on_update:
                sql += f" ON UPDATE {key.on_update.upper()}"
            definitions.append(sql)

        return f"CREATE TABLE {_quote(self.table)} ({', '.join(definitions)})"

    def _declare(self, column: ColumnState, inline_primary: bool) -> str:
        sql = f"{_quote(column.name)} {column.type}"
        if inline_primary and column.primary and column.auto_increment:
            sql += " PRIMARY KEY AUTOINCREMENT"
        if column.default is not None:
            sql += f" DEFAULT {column.default}"
        if not column.nullable:
            sql += " NOT NULL"
        elif column.default is None:
            sql += " DEFAULT NULL"
        if column.collation is not None and column.type.startswith(STRING_TYPES):
            sql += f' COLLATE "{column.collation}"'
        return sql


def _quote(name: str) -> str:
    return _preparer.quote(name)


def _columnize(names) -> str:
    return ", ".join(_quote(name) for name in names)


def _column_from_definition(column: ColumnDefinition) -> ColumnState:
    auto_increment = bool(column.get("auto_increment"))
    default = column.get("default")
    if column.get("use_current") and column.type in ("timestamp", "date_time"):
        default = Expression("CURRENT_TIMESTAMP")

    return ColumnState(
        name=column.get("rename_to") or column.name,
        type=_declared_type(column),
        nullable=bool(column.get("nullable")),
        default=None if default is None else _default_value(default),
        collation=column.get("collation"),
        auto_increment=auto_increment,
        primary=auto_increment or column.get("primary") is True,
    )


def _declared_type(column: ColumnDefinition) -> str:
    type_ = column.type
    if type_ == "string":
        return f"VARCHAR({column.get('length')})"
    if type_ == "char":
        return f"CHAR({column.get('length')})"
    if type_ in ("tiny_text", "text", "medium_text", "long_text", "json", "jsonb"):
        return "CLOB"
    if type_ in ("integer", "medium_integer", "big_integer", "small_integer", "tiny_integer"):
        if column.get("auto_increment"):
            return "INTEGER"
        base = {"big_integer": "BIGINT", "small_integer": "SMALLINT", "tiny_integer": "SMALLINT"}.get(
            type_, "INTEGER"
        )
        return base + (" UNSIGNED" if column.get("unsigned") else "")
    if type_ in ("float", "double"):
        return "DOUBLE PRECISION"
    if type_ == "decimal":
        return f"NUMERIC({column.get('total')}, {column.get('places')})"
    if type_ == "enum":
        return "VARCHAR(255)"
    if type_ == "uuid":
        return "CHAR(36)"
    return {
        "boolean": "BOOLEAN",
        "date": "DATE",
        "date_time": "DATETIME",
        "timestamp": "DATETIME",
        "time": "TIME",
        "binary": "BLOB",
    }.get(type_, type_.replace("_", "").upper())


def _normalize_type(declared: str) -> str:
    lowered = declared.strip().lower()
    if lowered == "varchar":
        return "VARCHAR(255)"
    if lowered == "float":
        return "DOUBLE PRECISION"
    if lowered == "text":
        return "CLOB"
    return declared.strip().upper()


def _default_value(value) -> str:
    if isinstance(value, Expression):
        return str(value.value)
    if isinstance(value, bool):
        return f"'{int(value)}'"
    return "'" + str(value).replace("'", "''") + "'"


def _find_collation(create_sql: str, column: str) -> Optional[str]:
    pattern = rf'(?:"{re.escape(column)}"|\b{re.escape(column)}\b)\s[^,]*?\bcollate\s+[\'"]?(\w+)'
    match = re.search(pattern, create_sql, re.IGNORECASE)
    return match.group(1) if match else None


def _action(value: Optional[str]) -> Optional[str]:
    if value is None or value.upper() == "NO ACTION":
        return None
    return value.lower()
