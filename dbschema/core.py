"""
Lifecycle of schemas and databases: registration, init, migration, teardown
"""

from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from . import manager as schema_registry
from .config import Config, get_config
from .database import manager as db_registry
from .database.adapters import DatabaseAdapter
from .database.factory import new_database
from .database.models import DatabaseParams, DBColumnInfo
from .exceptions import DBSchemaError
from .fields import SchemaField
from .schema import Schema, SchemaParams
from .utils.logger import get_logger, set_level

logger = get_logger(__name__)


def register_databases(*params: DatabaseParams) -> List[DatabaseAdapter]:
    """Create databases and store them in the registry. Connections are opened by init()."""
    dbs = [new_database(p) for p in params]
    db_registry.register(*dbs)
    return dbs


def get_database(name: str) -> DatabaseAdapter:
    return db_registry.get(name)


def new_schema(params: SchemaParams) -> Schema:
    """Schema for the model, not registered"""
    return Schema(params)


def register_schema(params: SchemaParams) -> Schema:
    """Create a schema and store it in the registry"""
    schema = new_schema(params)
    schema_registry.manager.register(schema)
    return schema


def get_schema(name: str) -> Schema:
    return schema_registry.manager.get(name)


def get_new_schema_fields(fields: Sequence[SchemaField], col_info: Sequence[DBColumnInfo]) -> List[SchemaField]:
    """Declared fields that have no column in the table yet, in declaration order"""
    existing = {c.name for c in col_info}
    return [f for f in fields if f.db_name not in existing]


def migrate_schema(schema: Schema) -> None:
    """
    Create the schema's table, or add the columns it lacks.
    Columns are never dropped or changed, and fields marked
    nomigrate are never added to an existing table.
    """
    db = schema.master

    if not db.is_table_exists(schema.table_name):
        db.create_table(schema.table_name, schema.fields)
        return

    col_info = db.get_columns_info(schema.table_name)
    new_fields = [f for f in get_new_schema_fields(schema.fields, col_info) if f.migratable]
    if new_fields:
        db.alter_table(schema.table_name, new_fields)
    else:
        logger.debug(f"Table {schema.table_name} on {db.get_params().name} is up to date")


def _apply_config(db: DatabaseAdapter, config: Config) -> None:
    """Fill database params left unset with the process-wide config"""
    params = db.get_params()
    if params.max_open_conns is None:
        params.max_open_conns = config.max_open_conns
    if params.migrations_path is None:
        params.migrations_path = config.migrations_path


def _bind_schema(schema: Schema) -> None:
    master = db_registry.get(schema.database_name)
    slave = db_registry.get(schema.slave_database_name) if schema.slave_database_name else None
    schema.bind(master, slave)


def init(config: Optional[Config] = None) -> None:
    """
    Connect registered databases, migrate registered schemas and freeze both
    registries. Any failure is logged and raised: the caller decides whether
    the process goes on.
    """
    config = config or get_config()
    set_level(config.log_level)

    try:
        for db in db_registry.get_all().values():
            _apply_config(db, config)
            if db.engine is None:
                db.connect()
        db_registry.manager.freeze()

        migrated = set()
        for schema in schema_registry.manager.get_all().values():
            _bind_schema(schema)
            migrate_schema(schema)

            if config.is_migrate_data and schema.database_name not in migrated:
                schema.master.migrate()
                migrated.add(schema.database_name)

        schema_registry.manager.freeze()
    except (DBSchemaError, SQLAlchemyError) as e:
        logger.error(f"dbschema init failed: {e}")
        raise

    logger.info(
        f"dbschema initialized: {len(db_registry.get_all())} database(s), "
        f"{len(schema_registry.manager.get_all())} schema(s)"
    )


def teardown() -> None:
    """Close all connection pools and empty both registries"""
    schema_registry.manager.reset()
    db_registry.manager.reset()
    logger.info("dbschema torn down")
