"""
Command line interface: print DDL of models, migrate configured databases
"""

import argparse
import dataclasses
import importlib
import os
import sys
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import get_config, load_database_params
from ..core import init, register_databases, teardown
from ..database.factory import DatabaseFactory
from ..database.models import DatabaseParams, Driver
from ..exceptions import DBSchemaError
from .. import manager as schema_registry
from ..utils.logger import get_logger

logger = get_logger(__name__)


def load_models(module_name: str) -> None:
    """Import the module that registers schemas (register_schema calls)"""
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    importlib.import_module(module_name)


def print_ddl(dialect: str) -> None:
    """CREATE TABLE statements of all registered schemas, no connection needed"""
    driver = Driver.parse(dialect)
    adapters = {}

    for schema in schema_registry.manager.get_all().values():
        db = adapters.get(schema.database_name)
        if db is None:
            params = DatabaseParams(name=schema.database_name, driver=driver, connection_string="")
            db = adapters[schema.database_name] = DatabaseFactory.adapters[driver](params)

        print(f"-- schema {schema.name} ({schema.database_name})")
        print(db.prepare_create_table_stmt(schema.table_name, schema.fields))
        print()


def migrate(migrate_data: bool) -> None:
    config = get_config()
    if migrate_data:
        config = dataclasses.replace(config, is_migrate_data=True)

    try:
        init(config)
        print(f"✅ Migrated {len(schema_registry.manager.get_all())} schema(s)")
    finally:
        teardown()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="dbschema", description="Table schemas from annotated models")
    commands = parser.add_subparsers(dest="command", required=True)

    ddl = commands.add_parser("ddl", help="print CREATE TABLE statements")
    ddl.add_argument("--models", required=True, help="module that registers schemas")
    ddl.add_argument("--dialect", default=Driver.POSTGRESQL.value,
                     choices=DatabaseFactory.get_supported_types(), help="SQL dialect")

    mig = commands.add_parser("migrate", help="create/alter tables of databases from environment")
    mig.add_argument("--models", required=True, help="module that registers schemas")
    mig.add_argument("--migrate-data", action="store_true", help="also apply migration scripts")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        if args.command == "ddl":
            load_models(args.models)
            print_ddl(args.dialect)
        else:
            register_databases(*load_database_params())
            load_models(args.models)
            migrate(args.migrate_data)
    except (DBSchemaError, SQLAlchemyError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    return 0
