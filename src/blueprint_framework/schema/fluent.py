"""Fluent attribute containers used by blueprints.

Columns and commands are open-ended attribute bags: grammars read whatever
modifiers a dialect understands and ignore the rest.
"""

from typing import Any, Optional


class Expression:
    """Raw SQL fragment that grammars emit verbatim instead of quoting."""

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Expression) and other.value == self.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"Expression({self.value!r})"

    def __str__(self) -> str:
        return str(self.value)


class Fluent:
    """Attribute bag with chainable setters."""

    def __init__(self, **attributes: Any):
        self.attributes: dict[str, Any] = dict(attributes)

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get("name")

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def has(self, key: str) -> bool:
        """Whether the attribute was set at all, including to None."""
        return key in self.attributes

    def set(self, key: str, value: Any) -> "Fluent":
        self.attributes[key] = value
        return self

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.attributes!r})"


class Command(Fluent):
    """A single schema operation queued on a blueprint (create, index, rename_column...)."""


class ColumnDefinition(Fluent):
    """A column added to, or changed on, a table."""

    @property
    def type(self) -> str:
        return self.attributes["type"]

    def after(self, column: str) -> "ColumnDefinition":
        """Place the column after another column (MySQL)."""
        return self.set("after", column)

    def always(self, value: bool = True) -> "ColumnDefinition":
        """Use GENERATED ALWAYS for an identity column (PostgreSQL)."""
        return self.set("always", value)

    def auto_increment(self) -> "ColumnDefinition":
        return self.set("auto_increment", True)

    def change(self) -> "ColumnDefinition":
        """Modify the existing column instead of adding a new one."""
        return self.set("change", True)

    def charset(self, charset: str) -> "ColumnDefinition":
        return self.set("charset", charset)

    def collation(self, collation: str) -> "ColumnDefinition":
        return self.set("collation", collation)

    def comment(self, comment: str) -> "ColumnDefinition":
        return self.set("comment", comment)

    def default(self, value: Any) -> "ColumnDefinition":
        return self.set("default", value)

    def first(self) -> "ColumnDefinition":
        """Place the column first in the table (MySQL)."""
        return self.set("first", True)

    def starting_value(self, value: int) -> "ColumnDefinition":
        """Set the starting value of an auto-incrementing column."""
        return self.set("starting_value", value)

    def from_(self, value: int) -> "ColumnDefinition":
        return self.set("from", value)

    def full_text(self, name: str | bool = True) -> "ColumnDefinition":
        return self.set("fulltext", name)

    def generated_as(self, expression: str | bool = True) -> "ColumnDefinition":
        """Create an identity column (PostgreSQL)."""
        return self.set("generated_as", expression)

    def index(self, name: str | bool = True) -> "ColumnDefinition":
        return self.set("index", name)

    def invisible(self) -> "ColumnDefinition":
        return self.set("invisible", True)

    def is_geometry(self) -> "ColumnDefinition":
        """Use the geometry type instead of geography (PostgreSQL)."""
        return self.set("is_geometry", True)

    def nullable(self, value: bool = True) -> "ColumnDefinition":
        return self.set("nullable", value)

    def on_update(self, value: Any) -> "ColumnDefinition":
        return self.set("on_update", value)

    def persisted(self) -> "ColumnDefinition":
        """Mark a computed column as persisted (SQL Server)."""
        return self.set("persisted", True)

    def primary(self, value: bool = True) -> "ColumnDefinition":
        return self.set("primary", value)

    def projection(self, srid: int) -> "ColumnDefinition":
        return self.set("projection", srid)

    def rename_to(self, name: str) -> "ColumnDefinition":
        return self.set("rename_to", name)

    def spatial_index(self, name: str | bool = True) -> "ColumnDefinition":
        return self.set("spatial_index", name)

    def srid(self, srid: int) -> "ColumnDefinition":
        return self.set("srid", srid)

    def stored_as(self, expression: Optional[str]) -> "ColumnDefinition":
        """Generated stored column; None on a change drops the expression."""
        return self.set("stored_as", expression)

    def unique(self, name: str | bool = True) -> "ColumnDefinition":
        return self.set("unique", name)

    def unsigned(self) -> "ColumnDefinition":
        return self.set("unsigned", True)

    def use_current(self) -> "ColumnDefinition":
        """Default a timestamp column to CURRENT_TIMESTAMP."""
        return self.set("use_current", True)

    def use_current_on_update(self) -> "ColumnDefinition":
        return self.set("use_current_on_update", True)

    def virtual_as(self, expression: Optional[str]) -> "ColumnDefinition":
        return self.set("virtual_as", expression)


class ForeignIdColumnDefinition(ColumnDefinition):
    """Unsigned big integer column that can declare its own foreign key."""

    def __init__(self, blueprint, **attributes: Any):
        super().__init__(**attributes)
        self._blueprint = blueprint

    def constrained(
        self, table: Optional[str] = None, column: str = "id"
    ) -> "ForeignKeyDefinition":
        """Add a foreign key guessing the referenced table from the column name."""
        if table is None:
            table = _guess_table(self.name, column)
        return self.references(column).on(table)

    def references(self, column: str) -> "ForeignKeyDefinition":
        return self._blueprint.foreign(self.name).references(column)


class ForeignKeyDefinition(Command):
    """The `foreign` command, with chainable reference options."""

    def references(self, columns: str | list[str]) -> "ForeignKeyDefinition":
        return self.set("references", columns)

    def on(self, table: str) -> "ForeignKeyDefinition":
        return self.set("on", table)

    def on_delete(self, action: str) -> "ForeignKeyDefinition":
        return self.set("on_delete", action)

    def on_update(self, action: str) -> "ForeignKeyDefinition":
        return self.set("on_update", action)

    def cascade_on_delete(self) -> "ForeignKeyDefinition":
        return self.on_delete("cascade")

    def restrict_on_delete(self) -> "ForeignKeyDefinition":
        return self.on_delete("restrict")

    def null_on_delete(self) -> "ForeignKeyDefinition":
        return self.on_delete("set null")

    def cascade_on_update(self) -> "ForeignKeyDefinition":
        return self.on_update("cascade")


def _guess_table(column_name: str, key: str) -> str:
    base = column_name[: -len(f"_{key}")] if column_name.endswith(f"_{key}") else column_name
    if base.endswith("y") and not base.endswith(("ay", "ey", "oy", "uy")):
        return base[:-1] + "ies"
    if base.endswith("s"):
        return base
    return base + "s"
