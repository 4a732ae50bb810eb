"""Blueprint compilation against a live in-memory SQLite connection.

SQLite statements come from reading the real table; MySQL, PostgreSQL and
SQL Server output is checked as literal SQL.
"""

import copy

import pytest
from sqlalchemy.exc import IntegrityError

from blueprint_framework.exceptions import SchemaError, UnsupportedOperationError
from blueprint_framework.schema import (
    Blueprint,
    MySqlGrammar,
    PostgresGrammar,
    SQLiteGrammar,
    SqlServerGrammar,
)


class TestSqliteRebuilds:
    """Column changes on SQLite rebuild the table"""

    def test_renaming_and_changing_columns_work(self, connection, schema):
        """Test a change and a rename rebuild the table twice, the second on top of the first"""
        schema.create("users", lambda table: (table.string("name"), table.string("age")))

        blueprint = Blueprint("users", lambda table: (
            table.rename_column("name", "first_name"),
            table.integer("age").change(),
        ))

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT name, age FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (name VARCHAR(255) NOT NULL, age INTEGER NOT NULL)",
            "INSERT INTO users (name, age) SELECT name, age FROM __temp__users",
            "DROP TABLE __temp__users",
            "CREATE TEMPORARY TABLE __temp__users AS SELECT name, age FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (first_name VARCHAR(255) NOT NULL, age INTEGER NOT NULL)",
            "INSERT INTO users (first_name, age) SELECT name, age FROM __temp__users",
            "DROP TABLE __temp__users",
        ]

    def test_changing_column_with_collation_work(self, connection, schema):
        """Test collations are dropped from non-string columns"""
        schema.create("users", lambda table: table.string("age"))

        expected = [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT age FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (age INTEGER NOT NULL)",
            "INSERT INTO users (age) SELECT age FROM __temp__users",
            "DROP TABLE __temp__users",
        ]

        for collation in ("RTRIM", "NOCASE"):
            blueprint = Blueprint("users", lambda table: table.integer("age").collation(collation).change())
            assert blueprint.to_sql(connection, SQLiteGrammar()) == expected

    def test_changing_string_column_keeps_collation(self, connection, schema):
        """Test an explicit collation is declared on string columns"""
        schema.create("users", lambda table: table.string("name"))

        blueprint = Blueprint("users", lambda table: table.string("name", 100).collation("NOCASE").change())

        assert "CREATE TABLE users (name VARCHAR(100) NOT NULL COLLATE \"NOCASE\")" in blueprint.to_sql(
            connection, SQLiteGrammar()
        )

    def test_changing_char_columns_work(self, connection, schema):
        """Test char columns keep their length"""
        schema.create("users", lambda table: table.string("name"))

        blueprint = Blueprint("users", lambda table: table.char("name", 50).change())

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT name FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (name CHAR(50) NOT NULL)",
            "INSERT INTO users (name) SELECT name FROM __temp__users",
            "DROP TABLE __temp__users",
        ]

    def test_changing_primary_autoincrement_column_to_non_autoincrement(self, connection, schema):
        """Test the primary key survives as a table constraint"""
        schema.create("users", lambda table: table.increments("id"))

        blueprint = Blueprint("users", lambda table: table.binary("id").change())

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT id FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (id BLOB NOT NULL, PRIMARY KEY(id))",
            "INSERT INTO users (id) SELECT id FROM __temp__users",
            "DROP TABLE __temp__users",
        ]

    def test_changing_double_columns_work(self, connection, schema):
        """Test doubles become DOUBLE PRECISION"""
        schema.create("products", lambda table: table.integer("price"))

        blueprint = Blueprint("products", lambda table: table.double("price").change())

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__products AS SELECT price FROM products",
            "DROP TABLE products",
            "CREATE TABLE products (price DOUBLE PRECISION NOT NULL)",
            "INSERT INTO products (price) SELECT price FROM __temp__products",
            "DROP TABLE __temp__products",
        ]

    def test_unchanged_column_emits_nothing(self, connection, schema):
        """Test changing a column to its current definition is a no-op"""
        schema.create("users", lambda table: table.string("name").nullable())

        blueprint = Blueprint("users", lambda table: table.string("name").nullable().change())

        assert blueprint.to_sql(connection, SQLiteGrammar()) == []

    def test_rebuild_keeps_indexes_and_foreign_keys(self, connection, schema):
        """Test surviving indexes are recreated and foreign keys redeclared"""
        schema.create("users", lambda table: table.id())
        schema.create("posts", lambda table: (
            table.id(),
            table.foreign_id("user_id").constrained().cascade_on_delete(),
            table.string("title").index(),
        ))

        blueprint = Blueprint("posts", lambda table: table.integer("user_id").nullable().change())

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__posts AS SELECT id, user_id, title FROM posts",
            "DROP TABLE posts",
            "CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL, "
            "user_id INTEGER DEFAULT NULL, title VARCHAR(255) NOT NULL, "
            "FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE)",
            "INSERT INTO posts (id, user_id, title) SELECT id, user_id, title FROM __temp__posts",
            "DROP TABLE __temp__posts",
            "CREATE INDEX posts_title_index ON posts (title)",
        ]

    def test_dropping_column_drops_its_indexes(self, connection, schema):
        """Test a dropped column takes its indexes with it"""
        schema.create("users", lambda table: (
            table.string("name").unique(),
            table.string("email").index(),
        ))

        blueprint = Blueprint("users", lambda table: table.drop_column("name"))

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT email FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (email VARCHAR(255) NOT NULL)",
            "INSERT INTO users (email) SELECT email FROM __temp__users",
            "DROP TABLE __temp__users",
            "CREATE INDEX users_email_index ON users (email)",
        ]

    def test_rebuilding_missing_table_raises(self, connection):
        """Test a rebuild needs the table to exist"""
        blueprint = Blueprint("missing", lambda table: table.integer("age").change())

        with pytest.raises(SchemaError, match="does not exist"):
            blueprint.to_sql(connection, SQLiteGrammar())

    def test_changing_missing_column_raises(self, connection, schema):
        """Test a rebuild needs the changed column to exist"""
        schema.create("users", lambda table: table.string("name"))

        blueprint = Blueprint("users", lambda table: table.integer("age").change())

        with pytest.raises(SchemaError, match=r"Column \[age\]"):
            blueprint.to_sql(connection, SQLiteGrammar())

    def test_renaming_timestamps_runs(self, schema):
        """Test renaming a timestamp column rebuilds without errors"""
        schema.create("users", lambda table: table.timestamp("created_at"))

        schema.table("users", lambda table: table.rename_column("created_at", "new_created_at"))

        assert schema.has_column("users", "new_created_at")
        assert not schema.has_column("users", "created_at")

    def test_rebuild_preserves_rows(self, connection, schema):
        """Test data is copied through the temporary table"""
        schema.create("users", lambda table: (table.string("name"), table.string("age")))
        connection.statement("insert into users (name, age) values ('taylor', '30')")

        schema.table("users", lambda table: table.integer("age").change())

        rows = connection.select("select name, age from users")
        assert [dict(row) for row in rows] == [{"name": "taylor", "age": 30}]

    def test_renaming_to_a_keyword_quotes_it(self, connection, schema):
        """Test keyword column names are quoted in the rebuilt table"""
        schema.create("users", lambda table: table.string("name"))
        connection.statement("insert into users (name) values ('taylor')")

        blueprint = Blueprint("users", lambda table: table.rename_column("name", "order"))

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT name FROM users",
            "DROP TABLE users",
            'CREATE TABLE users ("order" VARCHAR(255) NOT NULL)',
            'INSERT INTO users ("order") SELECT name FROM __temp__users',
            "DROP TABLE __temp__users",
        ]

        blueprint.build(connection, SQLiteGrammar())

        rows = connection.select('select "order" from users')
        assert [row["order"] for row in rows] == ["taylor"]

    def test_changing_table_with_keyword_column(self, connection, schema):
        """Test a table that already has a keyword column can be rebuilt"""
        schema.create("items", lambda table: (table.string("order"), table.string("quantity")))
        connection.statement("insert into items (\"order\", quantity) values ('first', '3')")

        schema.table("items", lambda table: table.integer("quantity").change())

        rows = connection.select('select "order", quantity from items')
        assert [dict(row) for row in rows] == [{"order": "first", "quantity": 3}]

    def test_failed_rebuild_keeps_table(self, connection, schema):
        """Test a rebuild that fails halfway leaves the original table and rows"""
        schema.create("users", lambda table: table.string("nickname").nullable())
        connection.statement("insert into users (nickname) values (null)")

        # Existing null rows cannot be copied into a not null column
        with pytest.raises(IntegrityError):
            schema.table("users", lambda table: table.string("nickname").change())

        assert schema.has_table("users")
        columns = {column["name"]: column for column in schema.get_columns("users")}
        assert columns["nickname"]["nullable"] is True
        assert [row["nickname"] for row in connection.select("select nickname from users")] == [None]
        assert connection.select("select name from sqlite_temp_master where name = '__temp__users'") == []


class TestNativeSchemaOperations:
    """ALTER TABLE rename/drop column without a rebuild"""

    def test_renaming_columns_natively(self, connection, native_schema):
        """Test rename column SQL for all four dialects"""
        base = Blueprint("users", lambda table: table.rename_column("name", "new_name"))

        assert copy.deepcopy(base).to_sql(connection, MySqlGrammar()) == [
            "alter table `users` rename column `name` to `new_name`"
        ]
        assert copy.deepcopy(base).to_sql(connection, PostgresGrammar()) == [
            'alter table "users" rename column "name" to "new_name"'
        ]
        assert copy.deepcopy(base).to_sql(connection, SQLiteGrammar()) == [
            'alter table "users" rename column "name" to "new_name"'
        ]
        assert copy.deepcopy(base).to_sql(connection, SqlServerGrammar()) == [
            "sp_rename '\"users\".\"name\"', \"new_name\", 'COLUMN'"
        ]

    def test_multiple_native_renames_apply(self, native_schema):
        """Test several renames in one modification are allowed natively"""
        native_schema.create("test", lambda table: (table.string("foo"), table.string("baz")))

        native_schema.table("test", lambda table: (
            table.rename_column("foo", "bar"),
            table.rename_column("baz", "qux"),
        ))

        assert not native_schema.has_column("test", "foo")
        assert not native_schema.has_column("test", "baz")
        assert native_schema.has_columns("test", ["bar", "qux"])

    def test_changed_increment_column_keeps_other_indexes(self, connection, native_schema):
        """Test only the primary key is implied for a changed auto-increment column"""
        blueprint = Blueprint("users", lambda table: table.big_increments("id").unique().change())

        assert "alter table `users` add unique `users_id_unique`(`id`)" in blueprint.to_sql(
            connection, MySqlGrammar()
        )

    def test_dropping_columns_natively(self, connection, native_schema):
        """Test SQLite native drop column"""
        blueprint = Blueprint("users", lambda table: table.drop_column("name"))

        assert blueprint.to_sql(connection, SQLiteGrammar()) == ['alter table "users" drop column "name"']

    def test_native_column_modifying_on_mysql(self, connection, native_schema):
        """Test every MySQL change modifier in one statement"""
        blueprint = Blueprint("users", lambda table: (
            table.double("amount", 6, 2).nullable().invisible().after("name").change(),
            table.timestamp("added_at", 4).nullable(False).use_current().use_current_on_update().change(),
            table.enum("difficulty", ["easy", "hard"]).default("easy").charset("utf8mb4").collation("unicode").change(),
            table.multi_polygon("positions").srid(1234).stored_as("expression").change(),
            table.string("old_name", 50).rename_to("new_name").change(),
            table.big_increments("id").first().from_(10).comment("my comment").change(),
        ))

        assert blueprint.to_sql(connection, MySqlGrammar()) == [
            "alter table `users` "
            "modify `amount` double(6, 2) null invisible after `name`, "
            "modify `added_at` timestamp(4) not null default CURRENT_TIMESTAMP(4) on update CURRENT_TIMESTAMP(4), "
            "modify `difficulty` enum('easy', 'hard') character set utf8mb4 collate 'unicode' not null default 'easy', "
            "modify `positions` multipolygon as (expression) stored srid 1234, "
            "change `old_name` `new_name` varchar(50) not null, "
            "modify `id` bigint unsigned not null auto_increment primary key comment 'my comment' first",
            "alter table `users` auto_increment = 10",
        ]

    def test_native_column_modifying_on_postgres(self, connection, native_schema):
        """Test PostgreSQL alter column clauses, sequences and comments"""
        blueprint = Blueprint("users", lambda table: (
            table.integer("code").auto_increment().from_(10).comment("my comment").change()
        ))
        assert blueprint.to_sql(connection, PostgresGrammar()) == [
            'alter table "users" '
            'alter column "code" type serial, '
            'alter column "code" set not null, '
            'alter column "code" drop default, '
            'alter column "code" drop identity if exists',
            "alter sequence users_code_seq restart with 10",
            "comment on column \"users\".\"code\" is 'my comment'",
        ]

        blueprint = Blueprint("users", lambda table: (
            table.char("name", 40).nullable().default("easy").collation("unicode").change()
        ))
        assert blueprint.to_sql(connection, PostgresGrammar()) == [
            'alter table "users" '
            'alter column "name" type char(40) collate "unicode", '
            'alter column "name" drop not null, '
            "alter column \"name\" set default 'easy', "
            'alter column "name" drop identity if exists',
            'comment on column "users"."name" is NULL',
        ]

        blueprint = Blueprint("users", lambda table: (
            table.integer("foo").generated_as("expression").always().change()
        ))
        assert blueprint.to_sql(connection, PostgresGrammar()) == [
            'alter table "users" '
            'alter column "foo" type integer, '
            'alter column "foo" set not null, '
            'alter column "foo" drop default, '
            'alter column "foo" drop identity if exists, '
            'alter column "foo" add  generated always as identity (expression)',
            'comment on column "users"."foo" is NULL',
        ]

        blueprint = Blueprint("users", lambda table: (
            table.point("foo").is_geometry().projection(1234).change()
        ))
        assert blueprint.to_sql(connection, PostgresGrammar()) == [
            'alter table "users" '
            'alter column "foo" type geometry(point, 1234), '
            'alter column "foo" set not null, '
            'alter column "foo" drop default, '
            'alter column "foo" drop identity if exists',
            'comment on column "users"."foo" is NULL',
        ]

        blueprint = Blueprint("users", lambda table: (
            table.timestamp("added_at", 2).use_current().stored_as(None).change()
        ))
        assert blueprint.to_sql(connection, PostgresGrammar()) == [
            'alter table "users" '
            'alter column "added_at" type timestamp(2) without time zone, '
            'alter column "added_at" set not null, '
            'alter column "added_at" set default CURRENT_TIMESTAMP, '
            'alter column "added_at" drop expression if exists, '
            'alter column "added_at" drop identity if exists',
            'comment on column "users"."added_at" is NULL',
        ]

    def test_changing_generated_expression_on_postgres_raises(self, connection, native_schema):
        """Test PostgreSQL cannot modify a generated expression in place"""
        blueprint = Blueprint("users", lambda table: table.integer("total").stored_as("a + b").change())

        with pytest.raises(UnsupportedOperationError):
            blueprint.to_sql(connection, PostgresGrammar())

    def test_native_column_modifying_on_sqlserver(self, connection, native_schema):
        """Test SQL Server drops default constraints before altering columns"""

        def drop_defaults(column):
            return (
                "DECLARE @sql NVARCHAR(MAX) = '';SELECT @sql += 'ALTER TABLE [dbo].[users] DROP CONSTRAINT ' "
                "+ OBJECT_NAME([default_object_id]) + ';' FROM sys.columns WHERE [object_id] = "
                f"OBJECT_ID('[dbo].[users]') AND [name] in ('{column}') AND [default_object_id] <> 0;EXEC(@sql)"
            )

        blueprint = Blueprint("users", lambda table: (
            table.timestamp("added_at", 4).nullable(False).use_current().change()
        ))
        assert blueprint.to_sql(connection, SqlServerGrammar()) == [
            drop_defaults("added_at"),
            'alter table "users" alter column "added_at" datetime2(4) not null',
            'alter table "users" add default CURRENT_TIMESTAMP for "added_at"',
        ]

        blueprint = Blueprint("users", lambda table: (
            table.char("name", 40).nullable().default("easy").collation("unicode").change()
        ))
        assert blueprint.to_sql(connection, SqlServerGrammar()) == [
            drop_defaults("name"),
            'alter table "users" alter column "name" nchar(40) collate unicode null',
            "alter table \"users\" add default 'easy' for \"name\"",
        ]

        blueprint = Blueprint("users", lambda table: table.integer("foo").change())
        assert blueprint.to_sql(connection, SqlServerGrammar()) == [
            drop_defaults("foo"),
            'alter table "users" alter column "foo" int not null',
        ]


class TestIndexes:
    """Renaming, adding and dropping indexes"""

    def test_rename_index_works(self, connection, schema):
        """Test rename index SQL for all four dialects"""
        schema.create("users", lambda table: (table.string("name"), table.string("age")))
        schema.table("users", lambda table: table.index(["name"], "index1"))

        blueprint = Blueprint("users", lambda table: table.rename_index("index1", "index2"))

        assert blueprint.to_sql(connection, SQLiteGrammar()) == [
            "DROP INDEX index1",
            "CREATE INDEX index2 ON users (name)",
        ]
        assert blueprint.to_sql(connection, SqlServerGrammar()) == [
            "sp_rename N'\"users\".\"index1\"', \"index2\", N'INDEX'"
        ]
        assert blueprint.to_sql(connection, MySqlGrammar()) == [
            "alter table `users` rename index `index1` to `index2`"
        ]
        assert blueprint.to_sql(connection, PostgresGrammar()) == [
            'alter index "index1" rename to "index2"'
        ]

    def test_renamed_index_is_applied(self, schema):
        """Test the rebuilt index is visible afterwards"""
        schema.create("users", lambda table: table.string("name").unique("index1"))

        schema.table("users", lambda table: table.rename_index("index1", "index2"))

        assert schema.has_index("users", "index2", "unique")
        assert not schema.has_index("users", "index1")

    def test_renaming_missing_index_raises(self, connection, schema):
        """Test SQLite needs the index to exist to rename it"""
        schema.create("users", lambda table: table.string("name"))

        blueprint = Blueprint("users", lambda table: table.rename_index("missing", "other"))

        with pytest.raises(SchemaError, match=r"Index \[missing\]"):
            blueprint.to_sql(connection, SQLiteGrammar())

    def test_add_unique_index_without_name(self, connection, schema):
        """Test the conventional unique index name on every dialect"""
        schema.create("users", lambda table: table.string("name").nullable())

        expected = {
            MySqlGrammar: ["alter table `users` add unique `users_name_unique`(`name`)"],
            PostgresGrammar: ['alter table "users" add constraint "users_name_unique" unique ("name")'],
            SQLiteGrammar: ['create unique index "users_name_unique" on "users" ("name")'],
            SqlServerGrammar: ['create unique index "users_name_unique" on "users" ("name")'],
        }

        for grammar, statements in expected.items():
            blueprint = Blueprint("users", lambda table: table.string("name").nullable().unique().change())
            assert blueprint.to_sql(connection, grammar()) == statements

    def test_add_unique_index_with_name(self, connection, schema):
        """Test explicit index names, with a rebuild for the type change"""
        schema.create("users", lambda table: table.string("name").nullable())

        blueprint = Blueprint("users", lambda table: table.string("name").nullable().unique("index1").change())
        assert blueprint.to_sql(connection, MySqlGrammar()) == ["alter table `users` add unique `index1`(`name`)"]

        rebuild = [
            "CREATE TEMPORARY TABLE __temp__users AS SELECT name FROM users",
            "DROP TABLE users",
            "CREATE TABLE users (name INTEGER UNSIGNED DEFAULT NULL)",
            "INSERT INTO users (name) SELECT name FROM __temp__users",
            "DROP TABLE __temp__users",
        ]
        expected = {
            PostgresGrammar: 'alter table "users" add constraint "index1" unique ("name")',
            SQLiteGrammar: 'create unique index "index1" on "users" ("name")',
            SqlServerGrammar: 'create unique index "index1" on "users" ("name")',
        }

        for grammar, statement in expected.items():
            blueprint = Blueprint("users", lambda table: (
                table.unsigned_integer("name").nullable().unique("index1").change()
            ))
            assert blueprint.to_sql(connection, grammar()) == rebuild + [statement]

    def test_drop_index_on_column_change(self, connection, schema):
        """Test unique(False) on a changed column drops the conventional index"""
        schema.create("users", lambda table: table.string("name").nullable())

        expected = {
            MySqlGrammar: "alter table `users` drop index `users_name_unique`",
            PostgresGrammar: 'alter table "users" drop constraint "users_name_unique"',
            SQLiteGrammar: 'drop index "users_name_unique"',
            SqlServerGrammar: 'drop index "users_name_unique" on "users"',
        }

        for grammar, statement in expected.items():
            blueprint = Blueprint("users", lambda table: table.string("name").nullable().unique(False).change())
            assert statement in blueprint.to_sql(connection, grammar())


class TestSqliteLimitations:
    """Operations SQLite refuses before any SQL runs"""

    message = "SQLite doesn't support multiple calls to drop_column / rename_column in a single modification."

    def test_dropping_multiple_columns_raises(self, schema):
        """Test two drop_column calls are refused"""
        with pytest.raises(UnsupportedOperationError) as exc_info:
            schema.table("users", lambda table: (table.drop_column("name"), table.drop_column("email")))

        assert str(exc_info.value) == self.message

    def test_renaming_multiple_columns_raises(self, schema):
        """Test two rename_column calls are refused"""
        with pytest.raises(UnsupportedOperationError) as exc_info:
            schema.table("users", lambda table: (
                table.rename_column("name", "first_name"),
                table.rename_column("name2", "last_name"),
            ))

        assert str(exc_info.value) == self.message

    def test_renaming_and_dropping_columns_raises(self, schema):
        """Test a drop and a rename together are refused"""
        with pytest.raises(UnsupportedOperationError) as exc_info:
            schema.table("users", lambda table: (
                table.drop_column("name"),
                table.rename_column("name2", "last_name"),
            ))

        assert str(exc_info.value) == self.message

    def test_dropping_foreign_key_raises(self, schema):
        """Test SQLite cannot drop foreign keys"""
        with pytest.raises(UnsupportedOperationError) as exc_info:
            schema.table("users", lambda table: table.drop_foreign("something"))

        assert str(exc_info.value) == (
            "SQLite doesn't support dropping foreign keys (you would need to re-create the table)."
        )

    def test_spatial_index_raises(self, connection):
        """Test SQLite has no spatial indexes"""
        blueprint = Blueprint("places", lambda table: table.spatial_index("location"))

        with pytest.raises(UnsupportedOperationError):
            blueprint.to_sql(connection, SQLiteGrammar())
