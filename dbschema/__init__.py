"""
Table schemas from annotated models: DDL migration and CRUD on PostgreSQL and MySQL
"""

from .core import (
    init,
    teardown,
    new_schema,
    register_schema,
    register_databases,
    get_schema,
    get_database,
    migrate_schema,
    get_new_schema_fields,
)
from .config import Config, get_config, reset_config, load_database_params
from .fields import SchemaField, ModelField, column, describe_model, prepare_schema_fields
from .schema import Schema, SchemaParams
from .manager import SchemaManager
from .database import (
    Driver,
    DatabaseParams,
    Query,
    AliasedQuery,
    UnionClause,
    Returning,
    ConflictClause,
    InsertExt,
    ON_CONFLICT_DO_NOTHING,
    Transaction,
)
from .exceptions import DBSchemaError

__version__ = "0.1.0"

__all__ = [
    'init',
    'teardown',
    'new_schema',
    'register_schema',
    'register_databases',
    'get_schema',
    'get_database',
    'migrate_schema',
    'get_new_schema_fields',
    'Config',
    'get_config',
    'reset_config',
    'load_database_params',
    'SchemaField',
    'ModelField',
    'column',
    'describe_model',
    'prepare_schema_fields',
    'Schema',
    'SchemaParams',
    'SchemaManager',
    'Driver',
    'DatabaseParams',
    'Query',
    'AliasedQuery',
    'UnionClause',
    'Returning',
    'ConflictClause',
    'InsertExt',
    'ON_CONFLICT_DO_NOTHING',
    'Transaction',
    'DBSchemaError'
]
