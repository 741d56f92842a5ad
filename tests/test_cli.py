"""
Tests for the command line interface
"""

import textwrap

import pytest
from sqlalchemy.exc import OperationalError

from dbschema.cli import main_cli
from dbschema.cli.main_cli import main, parse_args

MODELS = textwrap.dedent('''
    from dataclasses import dataclass
    from typing import Optional

    from dbschema import SchemaParams, column, register_schema


    @dataclass
    class User:
        id: int = column("id", "bigint", key="pk", default=0)
        name: Optional[str] = column("name", "varchar", length=255, default=None)


    register_schema(SchemaParams("users", "main", "users", User))
''')


@pytest.fixture
def models(tmp_path, monkeypatch, request):
    """Importable models module with a name unique to the test"""
    name = f"models_{request.node.name}"
    (tmp_path / f"{name}.py").write_text(MODELS)
    monkeypatch.chdir(tmp_path)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.delenv("DBSCHEMA_DATABASES", raising=False)
    return name


def test_parse_args():
    args = parse_args(["migrate", "--models", "app.models", "--migrate-data"])
    assert (args.command, args.models, args.migrate_data) == ("migrate", "app.models", True)


def test_dialect_choices():
    with pytest.raises(SystemExit):
        parse_args(["ddl", "--models", "m", "--dialect", "oracle"])


def test_ddl_postgres(models, capsys):
    assert main(["ddl", "--models", models]) == 0
    out = capsys.readouterr().out
    assert 'CREATE TABLE users (\n"id" bigint NOT NULL,' in out


def test_ddl_mysql(models, capsys):
    assert main(["ddl", "--models", models, "--dialect", "mysql"]) == 0
    assert "ENGINE=InnoDB DEFAULT CHARSET=utf8;" in capsys.readouterr().out


def test_migrate_without_databases_fails(models, caplog):
    assert main(["migrate", "--models", models]) == 1
    assert "DatabaseNotFoundError" in caplog.text


def test_migrate_driver_error_fails(models, monkeypatch, caplog):
    monkeypatch.setenv("DBSCHEMA_DATABASES", "main")
    monkeypatch.setenv("DBSCHEMA_MAIN_DRIVER", "postgres")
    monkeypatch.setenv("DBSCHEMA_MAIN_URL", "postgresql://u:p@localhost/main")

    def broken_init(config):
        raise OperationalError("CREATE TRIGGER", {}, Exception("syntax error"))

    monkeypatch.setattr(main_cli, "init", broken_init)

    assert main(["migrate", "--models", models, "--migrate-data"]) == 1
    assert "OperationalError" in caplog.text
