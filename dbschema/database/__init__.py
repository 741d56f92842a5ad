"""
Database adapters, query model and migrations
"""

from .models import (
    MAX_OPEN_CONNS,
    DEFAULT_MIGRATIONS_PATH,
    ON_CONFLICT_DO_NOTHING,
    Driver,
    DatabaseParams,
    DBColumnInfo,
    Returning,
    ConflictClause,
    InsertExt,
)
from .query import Query, AliasedQuery, UnionClause, prepare_query
from .prepared import PreparedData, prepare_data
from .adapters import DatabaseAdapter, PostgreSQLAdapter, MySQLAdapter, Transaction
from .factory import DatabaseFactory, new_database
from .manager import DatabaseManager
from .migrations import MigrationRunner

__all__ = [
    'MAX_OPEN_CONNS',
    'DEFAULT_MIGRATIONS_PATH',
    'ON_CONFLICT_DO_NOTHING',
    'Driver',
    'DatabaseParams',
    'DBColumnInfo',
    'Returning',
    'ConflictClause',
    'InsertExt',
    'Query',
    'AliasedQuery',
    'UnionClause',
    'prepare_query',
    'PreparedData',
    'prepare_data',
    'DatabaseAdapter',
    'PostgreSQLAdapter',
    'MySQLAdapter',
    'Transaction',
    'DatabaseFactory',
    'new_database',
    'DatabaseManager',
    'MigrationRunner'
]
