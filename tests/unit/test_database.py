"""Unit tests for Connection and DatabaseManager."""

import pytest
from sqlalchemy.exc import IntegrityError

from blueprint_framework.config import ConnectionConfig
from blueprint_framework.database import Connection, DatabaseManager
from blueprint_framework.schema import PostgresGrammar, SchemaBuilder, SQLiteGrammar


class TestConnection:
    """Test the connection wrapper"""

    def test_schema_grammar_matches_driver(self, connection):
        """Test the SQLite driver gets the SQLite grammar"""
        assert isinstance(connection.get_schema_grammar(), SQLiteGrammar)
        assert isinstance(connection.get_schema_builder(), SchemaBuilder)

    def test_grammar_carries_table_prefix(self, connection):
        """Test the grammar follows prefix changes"""
        connection.set_table_prefix("app_")

        assert connection.get_table_prefix() == "app_"
        assert connection.get_schema_grammar().table_prefix == "app_"

    def test_native_schema_operations(self, connection):
        """Test SQLite only uses native ALTER when asked"""
        assert not connection.uses_native_schema_operations()

        connection.use_native_schema_operations(True)

        assert connection.uses_native_schema_operations()

    def test_statement_and_select(self, connection):
        """Test executed statements are visible to queries"""
        connection.statement("create table items (name varchar)")
        connection.statement("insert into items (name) values ('one')")

        rows = connection.select("select name from items where name = :name", {"name": "one"})

        assert rows[0]["name"] == "one"

    def test_foreign_keys_can_be_disabled(self):
        """Test foreign_key_constraints=False leaves checks off"""
        connection = Connection(
            ConnectionConfig(driver="sqlite", database=":memory:", foreign_key_constraints=False)
        )

        assert connection.select("PRAGMA foreign_keys")[0]["foreign_keys"] == 0
        connection.disconnect()

    def test_transaction_commits_together(self, connection):
        """Test statements inside a transaction are committed at the end"""
        connection.statement("create table items (name varchar not null)")

        with connection.transaction():
            connection.statement("insert into items (name) values ('one')")
            connection.statement("insert into items (name) values ('two')")

        assert connection.select("select count(*) as total from items")[0]["total"] == 2

    def test_transaction_rolls_back_on_error(self, connection):
        """Test a failing statement undoes the whole transaction, DDL included"""
        connection.statement("create table items (name varchar not null)")

        with pytest.raises(IntegrityError):
            with connection.transaction():
                connection.statement("create table logs (line varchar)")
                connection.statement("insert into items (name) values ('one')")
                connection.statement("insert into items (name) values (null)")

        assert connection.select("select count(*) as total from items")[0]["total"] == 0
        assert not connection.get_schema_builder().has_table("logs")

    def test_reconnects_after_disconnect(self, connection):
        """Test a closed connection opens again on use"""
        connection.disconnect()

        assert connection.select("select 1 as one")[0]["one"] == 1

    def test_settings(self, connection):
        """Test connection settings accessors"""
        assert connection.get_driver_name() == "sqlite"
        assert connection.get_database_name() == ":memory:"
        assert connection.get_config("prefix_indexes") is True
        assert connection.get_config("missing", "fallback") == "fallback"


class TestDatabaseManager:
    """Test the named connection registry"""

    def test_default_connection(self, sqlite_config):
        """Test the default name is used when none is given"""
        manager = DatabaseManager()
        connection = manager.add_connection(sqlite_config)

        assert manager.connection() is connection
        manager.disconnect()

    def test_unknown_connection(self):
        """Test an unknown name raises KeyError"""
        with pytest.raises(KeyError):
            DatabaseManager().connection("missing")

    def test_replacing_connection(self, sqlite_config):
        """Test re-adding a name replaces the connection"""
        manager = DatabaseManager()
        first = manager.add_connection(sqlite_config, "main")
        second = manager.add_connection(sqlite_config, "main")

        assert manager.connection("main") is second
        assert first is not second
        assert list(manager.get_connections()) == ["main"]

    def test_from_yaml(self, tmp_path):
        """Test every configured connection is registered"""
        path = tmp_path / "database.yaml"
        path.write_text(
            "connections:\n"
            "  default:\n"
            "    driver: sqlite\n"
            "    database: ':memory:'\n"
            "  archive:\n"
            "    driver: sqlite\n"
            "    database: ':memory:'\n"
            "    prefix: old_\n"
        )

        manager = DatabaseManager.from_yaml(path)

        assert manager.connection("archive").get_table_prefix() == "old_"
        assert isinstance(manager.connection().get_schema_grammar(), SQLiteGrammar)

    def test_pgsql_connection_uses_postgres_grammar(self, monkeypatch):
        """Test the grammar table maps pgsql without opening a server connection"""
        config = ConnectionConfig(driver="pgsql", database="forge", host="db")
        monkeypatch.setattr(Connection, "_connect", lambda self: None)

        connection = Connection(config, engine=object())

        assert isinstance(connection.get_schema_grammar(), PostgresGrammar)
        assert connection.uses_native_schema_operations()
