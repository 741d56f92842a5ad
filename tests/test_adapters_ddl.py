"""
Tests for DDL generation and catalog queries of the dialect adapters
"""

import logging
import re

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from dbschema.database.adapters import RAW_SQL
from dbschema.database.models import DBColumnInfo
from dbschema.exceptions import CatalogError, ExecutionError
from dbschema.fields import prepare_schema_fields

from conftest import Account, User, UserV2


def squash(sql: str) -> str:
    return re.sub(r"\s+", " ", sql).strip()


class TestPostgreSQLDDL:
    def test_create_table(self, pg):
        sql = pg.prepare_create_table_stmt("users", prepare_schema_fields(User))
        assert sql == (
            'CREATE TABLE users (\n'
            '"id" bigint NOT NULL,\n'
            '"name" varchar(255) NULL,\n'
            'PRIMARY KEY ("id")\n'
            ');'
        )

    def test_add_columns(self, pg):
        new_fields = [f for f in prepare_schema_fields(UserV2) if f.db_name == "age"]
        sql = pg.prepare_add_columns_stmt("users", new_fields)
        assert squash(sql) == 'ALTER TABLE users ADD COLUMN "age" int NOT NULL;'

    def test_add_columns_is_one_statement(self, pg):
        fields = prepare_schema_fields(UserV2)
        statements = pg.add_columns_statements("users", fields)
        assert len(statements) == 1
        assert statements[0].count("ADD COLUMN") == 3

    def test_create_table_with_comments_defaults_and_unsigned(self, pg, caplog):
        with caplog.at_level(logging.WARNING):
            statements = pg.create_table_statements("accounts", prepare_schema_fields(Account))

        assert statements == [
            'CREATE TABLE accounts (\n'
            '"id" int NOT NULL,\n'
            '"email" varchar(128) NOT NULL,\n'
            '"balance" int NOT NULL DEFAULT 0,\n'
            '"legacy_code" text NULL,\n'
            '"meta" jsonb NULL,\n'
            'PRIMARY KEY ("id")\n'
            ');',
            'COMMENT ON COLUMN accounts."email" IS \'login e-mail\';',
        ]
        assert "unsigned" in caplog.text

    def test_composite_primary_key(self, pg):
        model = [
            ("user_id", int, {"db": "user_id", "type": "int", "key": "pk"}),
            ("role_id", int, {"db": "role_id", "type": "int", "key": "pk"}),
        ]
        sql = pg.prepare_create_table_stmt("user_roles", prepare_schema_fields(model))
        assert 'PRIMARY KEY ("user_id", "role_id")' in sql

    def test_comment_quotes_are_escaped(self, pg):
        model = [("note", str, {"db": "note", "type": "text", "comment": "user's note"})]
        statements = pg.create_table_statements("t", prepare_schema_fields(model))
        assert statements[-1] == "COMMENT ON COLUMN t.\"note\" IS 'user''s note';"


class TestMySQLDDL:
    def test_create_table(self, mysql):
        sql = mysql.prepare_create_table_stmt("accounts", prepare_schema_fields(Account))
        assert sql == (
            'CREATE TABLE `accounts` (\n'
            '`id` int unsigned NOT NULL,\n'
            '`email` varchar(128) NOT NULL COMMENT \'login e-mail\',\n'
            '`balance` int NOT NULL DEFAULT 0,\n'
            '`legacy_code` text NULL,\n'
            '`meta` jsonb NULL,\n'
            'PRIMARY KEY (`id`)\n'
            ') ENGINE=InnoDB DEFAULT CHARSET=utf8;'
        )

    def test_custom_engine(self, mysql):
        mysql.params.ext["engine"] = "MyISAM"
        sql = mysql.prepare_create_table_stmt("users", prepare_schema_fields(User))
        assert sql.endswith(") ENGINE=MyISAM DEFAULT CHARSET=utf8;")

    def test_add_columns_one_statement_per_column(self, mysql):
        fields = [f for f in prepare_schema_fields(UserV2) if f.db_name != "id"]
        assert mysql.add_columns_statements("users", fields) == [
            "ALTER TABLE `users` ADD COLUMN `name` varchar(255) NULL;",
            "ALTER TABLE `users` ADD COLUMN `age` int NOT NULL;",
        ]


class TestDDLExecution:
    def test_create_table_runs_raw_statements(self, pg, mock_engine):
        pg.engine = mock_engine
        pg.create_table("accounts", prepare_schema_fields(Account))

        calls = mock_engine.conn.exec_driver_sql.call_args_list
        assert len(calls) == 2
        assert calls[0].args[0].startswith("CREATE TABLE accounts")
        assert calls[1].args[0].startswith("COMMENT ON COLUMN")
        assert all(c.kwargs["execution_options"] == RAW_SQL for c in calls)

    def test_mysql_alter_runs_each_column(self, mysql, mock_engine):
        mysql.engine = mock_engine
        mysql.alter_table("users", [f for f in prepare_schema_fields(UserV2) if f.db_name != "id"])
        assert mock_engine.conn.exec_driver_sql.call_count == 2

    def test_ddl_failure(self, pg, mock_engine):
        pg.engine = mock_engine
        mock_engine.conn.exec_driver_sql.side_effect = SQLAlchemyError("syntax error")

        with pytest.raises(ExecutionError) as exc_info:
            pg.create_table("users", prepare_schema_fields(User))
        assert exc_info.value.details["database"] == "main"


class TestCatalog:
    def test_is_table_exists(self, pg, mock_engine):
        pg.engine = mock_engine
        mock_engine.conn.execute.return_value.scalar.return_value = True

        assert pg.is_table_exists("users")
        clause, params = mock_engine.conn.execute.call_args.args
        assert params == {"p1": "users"}
        assert "current_schema()" in clause.text
        assert ":p1" in clause.text

    def test_mysql_is_table_exists(self, mysql, mock_engine):
        mysql.engine = mock_engine
        mock_engine.conn.execute.return_value.scalar.return_value = 0

        assert not mysql.is_table_exists("users")
        clause, params = mock_engine.conn.execute.call_args.args
        assert params == {"p1": "users"}
        assert "DATABASE()" in clause.text

    def test_catalog_failure(self, pg, mock_engine):
        pg.engine = mock_engine
        mock_engine.conn.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(CatalogError):
            pg.is_table_exists("users")
        with pytest.raises(CatalogError):
            pg.get_columns_info("users")

    def test_get_columns_info(self, pg, mock_engine):
        pg.engine = mock_engine
        mock_engine.conn.execute.return_value.mappings.return_value.all.return_value = [
            {"name": "id", "type": "int8", "nullable": False, "length": 64, "default": None},
            {"name": "name", "type": "varchar", "nullable": True, "length": None, "default": "'x'"},
        ]

        assert pg.get_columns_info("users") == [
            DBColumnInfo(name="id", type="int8", nullable=False, length=64),
            DBColumnInfo(name="name", type="varchar", nullable=True, length=0, default="'x'"),
        ]
