"""Shared fixtures: an in-memory SQLite connection and its schema builder."""

import pytest

from blueprint_framework.config import ConnectionConfig
from blueprint_framework.database import Connection


@pytest.fixture
def sqlite_config():
    return ConnectionConfig(driver="sqlite", database=":memory:")


@pytest.fixture
def connection(sqlite_config):
    connection = Connection(sqlite_config)
    yield connection
    connection.disconnect()


@pytest.fixture
def schema(connection):
    return connection.get_schema_builder()


@pytest.fixture
def native_schema(connection, schema):
    """Schema builder with native ALTER TABLE rename/drop column enabled."""
    schema.use_native_schema_operations_if_possible()
    yield schema
    schema.use_native_schema_operations_if_possible(False)
