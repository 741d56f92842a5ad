"""
Data models for database params, catalog info and write extensions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional


MAX_OPEN_CONNS = 100                       # default max count of opened connections
DEFAULT_MIGRATIONS_PATH = "db/migrations"  # default root of migration scripts
DEFAULT_MYSQL_ENGINE = "InnoDB"

ON_CONFLICT_DO_NOTHING = 0


class Driver(str, Enum):
    """Supported database drivers"""
    POSTGRESQL = "postgres"
    MYSQL = "mysql"

    @classmethod
    def parse(cls, value: Any) -> "Driver":
        """Accept the enum itself or one of its common spellings"""
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().lower()
        if name in ("postgres", "postgresql", "pg"):
            return cls.POSTGRESQL
        if name == "mysql":
            return cls.MYSQL
        raise ValueError(f"Unsupported database type: {value}")


@dataclass
class DatabaseParams:
    """Connection identity of a registered database"""
    name: str                                  # name the database is registered under
    driver: Driver
    connection_string: str
    db_name: str = ""                          # physical database name, defaults to name
    max_open_conns: Optional[int] = None       # pool cap, None takes Config.max_open_conns
    ext: Dict[str, Any] = field(default_factory=dict)  # dialect specific info (MySQL engine etc)
    migrations_path: Optional[str] = None      # None takes Config.migrations_path


@dataclass
class DBColumnInfo:
    """Column info as reported by the database catalog"""
    name: str
    type: str
    nullable: bool
    length: int = 0
    default: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DBColumnInfo":
        return cls(
            name=row['name'],
            type=row['type'],
            nullable=bool(row['nullable']),
            length=int(row['length'] or 0),
            default=row.get('default')
        )


@dataclass
class Returning:
    """Columns of a RETURNING clause"""
    columns: str

    @property
    def names(self) -> List[str]:
        return [c.strip() for c in self.columns.split(',') if c.strip()]

    def __len__(self) -> int:
        return len(self.names)


@dataclass
class ConflictClause:
    """ON CONFLICT clause of INSERT statement"""
    target: str
    strategy: int = ON_CONFLICT_DO_NOTHING


@dataclass
class InsertExt:
    """Extended clauses of INSERT statement"""
    where_not_exists: str = ""                  # insert only if no row matches this predicate
    on_conflict: Optional[ConflictClause] = None  # PostgreSQL only
    returning: Optional[Returning] = None
