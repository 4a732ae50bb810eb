"""Exceptions raised while compiling or applying schema blueprints."""


class SchemaError(Exception):
    """Raised when a schema operation cannot be compiled against the live database.

    Typical causes are a table or index that does not exist when the
    operation needs to read its current definition.
    """


class UnsupportedOperationError(SchemaError):
    """Raised when the connection or dialect cannot perform an operation.

    SQLite is the usual source: it cannot drop foreign keys, and without
    native schema operations it can only rebuild one dropped/renamed column
    set per modification.
    """
