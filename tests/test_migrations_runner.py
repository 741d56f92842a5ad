"""
Tests for the file-based migration runner, against SQLite
"""

import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from dbschema.database import adapters
from dbschema.database.migrations import MigrationRunner, split_statements
from dbschema.database.models import DatabaseParams, Driver
from dbschema.database.adapters import MySQLAdapter, PostgreSQLAdapter
from dbschema.exceptions import MigrationError


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'app.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def scripts(tmp_path):
    source = tmp_path / "migrations" / "app"
    source.mkdir(parents=True)
    (source / "1_create_items.up.sql").write_text(
        "CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT);\n"
        "INSERT INTO items (name) VALUES ('a;b');\n"
    )
    (source / "1_create_items.down.sql").write_text("DROP TABLE items;\n")
    (source / "2_seed.up.sql").write_text("INSERT INTO items (name) VALUES ('c:d');")
    (source / "README.md").write_text("not a migration")
    return source


def names(engine):
    with engine.connect() as conn:
        return [r[0] for r in conn.execute(text("SELECT name FROM items ORDER BY id"))]


def test_discover_orders_by_version(engine, scripts):
    (scripts / "10_late.up.sql").write_text("SELECT 1;")
    runner = MigrationRunner(engine, str(scripts))
    assert [(s.version, s.title) for s in runner.discover()] == [(1, "create_items"), (2, "seed"), (10, "late")]


def test_statements_split_at_line_ends(scripts):
    runner = MigrationRunner(None, str(scripts))
    assert runner.discover()[0].statements() == [
        "CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT)",
        "INSERT INTO items (name) VALUES ('a;b')",
    ]


def test_up_applies_pending_once(engine, scripts):
    runner = MigrationRunner(engine, str(scripts))

    assert runner.up() == [1, 2]
    assert names(engine) == ["a;b", "c:d"]

    assert runner.up() == []
    assert runner.applied_versions() == {1, 2}


def test_new_script_is_applied(engine, scripts):
    runner = MigrationRunner(engine, str(scripts))
    runner.up()

    (scripts / "3_more.up.sql").write_text("INSERT INTO items (name) VALUES ('e');\n")
    assert runner.up() == [3]
    assert names(engine)[-1] == "e"


def test_failed_script_leaves_dirty_version(engine, scripts):
    (scripts / "3_broken.up.sql").write_text("INSERT INTO missing_table VALUES (1);\n")
    runner = MigrationRunner(engine, str(scripts))

    with pytest.raises(OperationalError):
        runner.up()
    with pytest.raises(MigrationError):
        runner.up()


def test_duplicate_versions(engine, scripts):
    (scripts / "01_again.up.sql").write_text("SELECT 1;")
    with pytest.raises(MigrationError):
        MigrationRunner(engine, str(scripts)).discover()


def test_missing_directory(engine, tmp_path):
    with pytest.raises(MigrationError):
        MigrationRunner(engine, str(tmp_path / "nowhere")).discover()


def test_adapter_migrate_without_directory(tmp_path, caplog):
    db = PostgreSQLAdapter(DatabaseParams(
        name="main", driver=Driver.POSTGRESQL, connection_string="postgresql://u@h/main",
        migrations_path=str(tmp_path)
    ))
    with caplog.at_level(logging.WARNING):
        assert db.migrate() == []
    assert "No migrations directory" in caplog.text


def test_adapter_migrate_uses_db_name_directory(engine, scripts, tmp_path):
    db = MySQLAdapter(DatabaseParams(
        name="main", driver=Driver.MYSQL, connection_string="mysql://u@h/app",
        db_name="app", migrations_path=str(tmp_path / "migrations")
    ))
    db.engine = engine
    assert db.migrate() == [1, 2]


def test_trigger_body_is_one_statement(engine, scripts):
    (scripts / "3_audit.up.sql").write_text(
        "CREATE TABLE log (name TEXT);\n"
        "CREATE TRIGGER items_log AFTER INSERT ON items BEGIN\n"
        "    INSERT INTO log VALUES (NEW.name);\n"
        "END;\n"
        "INSERT INTO items (name) VALUES ('f');\n"
    )
    assert MigrationRunner(engine, str(scripts)).up() == [1, 2, 3]

    with engine.connect() as conn:
        assert [r[0] for r in conn.execute(text("SELECT name FROM log"))] == ["f"]


class TestSplitStatements:
    def test_dollar_quoted_function(self):
        sql = (
            "CREATE FUNCTION touch() RETURNS trigger AS $$\n"
            "BEGIN\n    NEW.updated_at := now();\n    RETURN NEW;\nEND;\n$$ LANGUAGE plpgsql;\n"
            "CREATE INDEX idx ON items (name);"
        )
        statements = split_statements(sql)
        assert len(statements) == 2
        assert statements[0].endswith("$$ LANGUAGE plpgsql")

    def test_tagged_dollar_quote(self):
        sql = "DO $body$ BEGIN PERFORM 1; END $body$;\nSELECT 2;"
        assert split_statements(sql) == ["DO $body$ BEGIN PERFORM 1; END $body$", "SELECT 2"]

    def test_case_end(self):
        sql = "UPDATE t SET a = CASE WHEN b THEN 1 ELSE 2 END;\nSELECT 1;"
        assert len(split_statements(sql)) == 2

    def test_control_flow_end_keeps_block_open(self):
        sql = (
            "CREATE PROCEDURE p() BEGIN\n"
            "  IF 1 THEN SELECT 1; END IF;\n"
            "  SELECT 2;\n"
            "END;\n"
            "CALL p();"
        )
        statements = split_statements(sql)
        assert len(statements) == 2
        assert statements[1] == "CALL p()"

    def test_transaction_statements(self):
        sql = "BEGIN;\nINSERT INTO t VALUES (1);\nCOMMIT;\nBEGIN TRANSACTION;\nCOMMIT;"
        assert split_statements(sql) == [
            "BEGIN", "INSERT INTO t VALUES (1)", "COMMIT", "BEGIN TRANSACTION", "COMMIT"
        ]

    def test_comments_and_literals(self):
        sql = "-- first; not a break\nSELECT 'end;' /* begin; */;\nSELECT \"a;b\";"
        assert split_statements(sql) == [
            "-- first; not a break\nSELECT 'end;' /* begin; */",
            'SELECT "a;b"',
        ]


def test_unsplit_script_is_one_statement(scripts):
    script = MigrationRunner(None, str(scripts)).discover()[0]
    assert script.statements(split=False) == [script.path.read_text()]


@pytest.mark.parametrize("adapter_cls, driver, split", [
    (PostgreSQLAdapter, Driver.POSTGRESQL, False),
    (MySQLAdapter, Driver.MYSQL, True),
])
def test_adapter_script_mode(adapter_cls, driver, split, scripts, tmp_path, monkeypatch):
    runner_cls = MagicMock()
    runner_cls.return_value.up.return_value = [1]
    monkeypatch.setattr(adapters, "MigrationRunner", runner_cls)

    db = adapter_cls(DatabaseParams(
        name="main", driver=driver, connection_string="x://u@h/app",
        db_name="app", migrations_path=str(tmp_path / "migrations")
    ))
    assert db.migrate() == [1]
    assert runner_cls.call_args.kwargs["split_statements"] is split
