"""
Database adapters for different database types
"""

import dataclasses
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from ..exceptions import (
    CatalogError,
    DatabaseConnectionError,
    ExecutionError,
    InvalidDataError,
    MissingReturningError,
    UnsupportedConflictStrategyError,
    UnsupportedOnConflictError,
    UnsupportedReturningError,
)
from ..fields import SchemaField
from ..utils.logger import get_logger
from .migrations import MigrationRunner
from .models import (
    DEFAULT_MIGRATIONS_PATH,
    DEFAULT_MYSQL_ENGINE,
    MAX_OPEN_CONNS,
    ON_CONFLICT_DO_NOTHING,
    DatabaseParams,
    DBColumnInfo,
    Driver,
    InsertExt,
    Returning,
)
from .prepared import PreparedData
from .query import Query, prepare_query

logger = get_logger(__name__)

RAW_SQL = {"no_parameters": True}  # DDL goes to the driver untouched

# quoted literals and identifiers, placeholders are added per dialect
_PG_QUOTED = r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\""
_MYSQL_QUOTED = r"'(?:[^'\\]|\\.|'')*'|\"(?:[^\"\\]|\\.|\"\")*\"|`[^`]*`"


class Transaction:
    """Caller-owned transaction on one pooled connection"""

    def __init__(self, connection: Connection):
        self.connection = connection
        self._transaction = connection.begin()

    @property
    def is_active(self) -> bool:
        return self._transaction.is_active

    def commit(self) -> None:
        try:
            self._transaction.commit()
        finally:
            self.connection.close()

    def rollback(self) -> None:
        try:
            self._transaction.rollback()
        finally:
            self.connection.close()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.is_active:
            self.connection.close()
        elif exc_type is None:
            self.commit()
        else:
            self.rollback()


def split_type(db_type: str) -> Tuple[str, str]:
    """'int,unsigned' -> ('int', 'unsigned')"""
    parts = [p.strip() for p in db_type.split(",")]
    return parts[0], (parts[1] if len(parts) > 1 else "")


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class DatabaseAdapter(ABC):
    """Abstract base class for database adapters"""

    driver: Driver
    sqlalchemy_driver: str
    quote_char: str = '"'
    token_re: Pattern  # quoted text, placeholders and bare colons

    # optional capabilities, checked when a statement asks for them
    max_insert_returning: Optional[int] = None  # None means any number of columns
    supports_update_returning: bool = True
    supports_delete_returning: bool = True
    supports_on_conflict: bool = True
    multi_statement_scripts: bool = False  # driver runs a whole migration script in one call

    def __init__(self, params: DatabaseParams):
        if params.max_open_conns is not None and params.max_open_conns <= 0:
            params.max_open_conns = MAX_OPEN_CONNS
        if not params.db_name:
            params.db_name = params.name
        params.driver = self.driver
        self.params = params
        self.engine: Optional[Engine] = None

    # ------------------------------------------------------------------
    # connection
    # ------------------------------------------------------------------

    def get_params(self) -> DatabaseParams:
        return self.params

    def make_url(self) -> URL:
        """Connection string as SQLAlchemy URL bound to this adapter's driver"""
        url = make_url(self.params.connection_string)
        if "+" not in url.drivername:
            url = url.set(drivername=self.sqlalchemy_driver)
        return url

    def connect(self) -> Engine:
        """Create the connection pool and check that the database answers"""
        pool_size = self.params.max_open_conns or MAX_OPEN_CONNS
        try:
            self.engine = create_engine(
                self.make_url(),
                pool_size=pool_size,
                max_overflow=0,
                pool_pre_ping=True
            )
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"{self.driver.value} connection failed: {e}",
                {'database': self.params.name}
            ) from e

        logger.info(
            f"Connected to {self.params.name} ({self.driver.value}, "
            f"max {pool_size} connections)"
        )
        return self.engine

    def disconnect(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def begin_transaction(self) -> Transaction:
        return Transaction(self.engine.connect())

    # ------------------------------------------------------------------
    # statement binding & execution
    # ------------------------------------------------------------------

    @abstractmethod
    def placeholder(self, num: int) -> str:
        """Placeholder text of the num-th (1-based) bound value"""

    @abstractmethod
    def _bind_name(self, token: str, counter: List[int]) -> str:
        """Bind param name for a placeholder token"""

    def bind(self, sql: str, args: Sequence[Any] = ()) -> Tuple[TextClause, Dict[str, Any]]:
        """
        Turn dialect placeholders into SQLAlchemy named binds.
        `$n` refers to args[n-1]; `?` takes args in order of appearance.
        Literals and quoted identifiers are left alone.
        """
        counter = [0]

        def replace(match):
            token = match.group(0)
            if token == ":":
                return "\\:"
            if token[0] in "'\"`":
                return token.replace(":", "\\:")
            return ":" + self._bind_name(token, counter)

        bound_sql = self.token_re.sub(replace, sql)
        params = {f"p{i}": value for i, value in enumerate(args, start=1)}
        return text(bound_sql), params

    def _execute(self, conn: Connection, sql: str, args: Sequence[Any] = ()):
        clause, params = self.bind(sql, args)
        logger.debug(f"{self.params.name}: {sql} {list(args)}")
        return conn.execute(clause, params)

    def _in_connection(self, tx: Optional[Transaction], fn: Callable[[Connection], Any], write: bool = True):
        """Run fn on the transaction's connection, or on a pooled one"""
        if tx is not None:
            return fn(tx.connection)
        ctx = self.engine.begin() if write else self.engine.connect()
        with ctx as conn:
            return fn(conn)

    def _write(self, tx: Optional[Transaction], sql: str, args: Sequence[Any], returning: bool = False):
        def run(conn):
            result = self._execute(conn, sql, args)
            if returning:
                row = result.fetchone()
                return tuple(row) if row is not None else None
            return result.rowcount

        return self._in_connection(tx, run)

    def _execute_ddl(self, statements: List[str], table_name: str) -> None:
        try:
            with self.engine.begin() as conn:
                for statement in statements:
                    logger.debug(f"{self.params.name}: {statement}")
                    conn.exec_driver_sql(statement, execution_options=RAW_SQL)
        except SQLAlchemyError as e:
            logger.error(f"DDL for table {table_name} failed on {self.params.name}: {e}")
            raise ExecutionError(
                f"DDL for table {table_name} failed: {e}",
                {'database': self.params.name, 'statements': statements}
            ) from e

    # ------------------------------------------------------------------
    # catalog
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def table_exists_sql(self) -> str:
        pass

    @property
    @abstractmethod
    def columns_info_sql(self) -> str:
        pass

    def is_table_exists(self, table_name: str) -> bool:
        """A failing catalog query raises CatalogError, the migration pass can't go on without the answer"""
        try:
            with self.engine.connect() as conn:
                return bool(self._execute(conn, self.table_exists_sql, [table_name]).scalar())
        except SQLAlchemyError as e:
            logger.error(f"Can't check table {table_name} on {self.params.name}: {e}")
            raise CatalogError(
                f"table existence check for {table_name} failed: {e}",
                {'database': self.params.name, 'table': table_name}
            ) from e

    def get_columns_info(self, table_name: str) -> List[DBColumnInfo]:
        try:
            with self.engine.connect() as conn:
                rows = self._execute(conn, self.columns_info_sql, [table_name]).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Can't read columns of {table_name} on {self.params.name}: {e}")
            raise CatalogError(
                f"columns info query for {table_name} failed: {e}",
                {'database': self.params.name, 'table': table_name}
            ) from e
        return [DBColumnInfo.from_row(dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def quote(self, name: str) -> str:
        return f"{self.quote_char}{name}{self.quote_char}"

    @abstractmethod
    def prepare_column(self, field: SchemaField) -> str:
        """Column definition of CREATE TABLE / ADD COLUMN"""

    @abstractmethod
    def create_table_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        pass

    @abstractmethod
    def add_columns_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        pass

    def prepare_create_table_stmt(self, table_name: str, fields: Sequence[SchemaField]) -> str:
        return "\n".join(self.create_table_statements(table_name, fields))

    def prepare_add_columns_stmt(self, table_name: str, fields: Sequence[SchemaField]) -> str:
        return "\n".join(self.add_columns_statements(table_name, fields))

    def _primary_key_clause(self, fields: Sequence[SchemaField]) -> Optional[str]:
        pks = [self.quote(f.db_name) for f in fields if f.is_primary_key]
        if not pks:
            return None
        return f"PRIMARY KEY ({', '.join(pks)})"

    def create_table(self, table_name: str, fields: Sequence[SchemaField]) -> None:
        self._execute_ddl(self.create_table_statements(table_name, fields), table_name)
        logger.info(f"Created table {table_name} on {self.params.name}")

    def alter_table(self, table_name: str, fields: Sequence[SchemaField]) -> None:
        """Adds new columns. Existing columns are never changed or dropped."""
        self._execute_ddl(self.add_columns_statements(table_name, fields), table_name)
        logger.info(
            f"Added columns {', '.join(f.db_name for f in fields)} to {table_name} on {self.params.name}"
        )

    # ------------------------------------------------------------------
    # data migrations
    # ------------------------------------------------------------------

    def migrations_dir(self) -> str:
        return os.path.join(self.params.migrations_path or DEFAULT_MIGRATIONS_PATH, self.params.db_name)

    def migrate(self) -> List[int]:
        """Apply migration scripts of this database. Errors propagate as raised."""
        source_dir = self.migrations_dir()
        if not os.path.isdir(source_dir):
            logger.warning(f"No migrations directory {source_dir} for {self.params.name}")
            return []

        runner = MigrationRunner(self.engine, source_dir, split_statements=not self.multi_statement_scripts)
        applied = runner.up()
        if applied:
            logger.info(f"Applied migrations {applied} on {self.params.name}")
        return applied

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def select(self, tx: Optional[Transaction], query: Query, args: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Execute a SELECT statement and return all rows"""
        sql = prepare_query(query)

        def run(conn):
            return [dict(r) for r in self._execute(conn, sql, args).mappings().all()]

        return self._in_connection(tx, run, write=False)

    def get(self, tx: Optional[Transaction], query: Query, args: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Execute a SELECT statement limited to one row, None if nothing matched"""
        sql = prepare_query(dataclasses.replace(query, limit=1))

        def run(conn):
            row = self._execute(conn, sql, args).mappings().first()
            return dict(row) if row is not None else None

        return self._in_connection(tx, run, write=False)

    def check_returning(self, statement: str, returning: Optional[Returning]) -> None:
        if returning is None:
            return
        if len(returning) == 0:
            raise MissingReturningError("missing columns for RETURNING clause")

        if statement == "INSERT":
            limit = self.max_insert_returning
            if limit is not None and len(returning) > limit:
                raise UnsupportedReturningError(
                    f"{self.driver.value} supports RETURNING of {limit} column(s) on INSERT, got {len(returning)}"
                )
        elif statement == "UPDATE" and not self.supports_update_returning:
            raise UnsupportedReturningError(f"{self.driver.value} doesn't support RETURNING on UPDATE")
        elif statement == "DELETE" and not self.supports_delete_returning:
            raise UnsupportedReturningError(f"{self.driver.value} doesn't support RETURNING on DELETE")

    def check_on_conflict(self, ext: Optional[InsertExt]) -> None:
        if ext is None or ext.on_conflict is None:
            return
        if not self.supports_on_conflict:
            raise UnsupportedOnConflictError(f"{self.driver.value} doesn't support ON CONFLICT clause")
        if ext.on_conflict.strategy != ON_CONFLICT_DO_NOTHING:
            raise UnsupportedConflictStrategyError(
                f"wrong ON CONFLICT strategy: {ext.on_conflict.strategy}"
            )

    def _insert_columns(self, prepared: PreparedData) -> List[str]:
        columns = [self.quote(c) for c in list(prepared.db_fields) + list(prepared.queries)]
        if not columns and prepared.query is None:
            raise InvalidDataError("nothing to insert: no known columns in data")
        return columns

    def _computed_values(self, prepared: PreparedData) -> List[str]:
        return [f"({prepare_query(q)})" for q in prepared.queries.values()]

    def _set_clause(self, prepared: PreparedData, first_arg: int) -> str:
        assignments = [
            f"{self.quote(name)} = {self.placeholder(first_arg + i)}"
            for i, name in enumerate(prepared.db_fields)
        ]
        assignments += [
            f"{self.quote(name)} = ({prepare_query(q)})" for name, q in prepared.queries.items()
        ]
        if not assignments:
            raise InvalidDataError("nothing to update: no known columns in data")
        return ", ".join(assignments)

    @abstractmethod
    def prepare_insert_stmt(self, table_name: str, prepared: PreparedData,
                            args_len: int = 0, ext: Optional[InsertExt] = None) -> str:
        pass

    @abstractmethod
    def prepare_update_stmt(self, table_name: str, prepared: PreparedData, where: str,
                            args_len: int = 0, returning: Optional[Returning] = None) -> str:
        pass

    @abstractmethod
    def prepare_delete_stmt(self, table_name: str, where: str,
                            returning: Optional[Returning] = None) -> str:
        pass

    @abstractmethod
    def insert(self, tx: Optional[Transaction], prepared: PreparedData, table_name: str,
               ext: Optional[InsertExt] = None, args: Sequence[Any] = ()):
        """INSERT the prepared data. Returns the RETURNING row if asked, else the row count."""

    @abstractmethod
    def update(self, tx: Optional[Transaction], prepared: PreparedData, table_name: str, where: str,
               returning: Optional[Returning] = None, args: Sequence[Any] = ()):
        """UPDATE rows matching where. Returns the RETURNING row if asked, else the row count."""

    @abstractmethod
    def delete(self, tx: Optional[Transaction], table_name: str, where: str,
               returning: Optional[Returning] = None, args: Sequence[Any] = ()):
        """DELETE rows matching where. Returns the RETURNING row if asked, else the row count."""


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter"""

    driver = Driver.POSTGRESQL
    sqlalchemy_driver = "postgresql+psycopg2"
    quote_char = '"'
    token_re = re.compile(_PG_QUOTED + r"|\$\d+|:")
    multi_statement_scripts = True

    table_exists_sql = """SELECT EXISTS (
    SELECT t.table_name FROM information_schema."tables" t
    WHERE t.table_name = $1 AND t.table_schema = current_schema()
);"""

    columns_info_sql = """SELECT c.column_name AS "name", c.udt_name AS "type",
    (CASE c.is_nullable WHEN 'YES' THEN true WHEN 'NO' THEN false END) AS "nullable",
    COALESCE(c.character_maximum_length, c.numeric_precision, 0) AS "length",
    c.column_default AS "default"
FROM information_schema."columns" c
WHERE c.table_name = $1 AND c.table_schema = current_schema()
ORDER BY c.ordinal_position;"""

    def placeholder(self, num: int) -> str:
        return f"${num}"

    def _bind_name(self, token: str, counter: List[int]) -> str:
        return f"p{token[1:]}"

    def prepare_column(self, field: SchemaField) -> str:
        db_type, qualifier = split_type(field.db_type)
        if qualifier:
            logger.warning(f"{qualifier} qualifier of column {field.db_name} is ignored by postgres")

        column = f"{self.quote(field.db_name)} {db_type}"
        if field.length > 0:
            column += f"({field.length})"
        column += " NULL" if field.nullable else " NOT NULL"
        if field.default:
            column += f" DEFAULT {field.default}"
        return column

    def _comment_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        return [
            f"COMMENT ON COLUMN {table_name}.{self.quote(f.db_name)} IS {quote_literal(f.comment)};"
            for f in fields if f.comment
        ]

    def create_table_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        clauses = [self.prepare_column(f) for f in fields]
        pk = self._primary_key_clause(fields)
        if pk:
            clauses.append(pk)

        create = f"CREATE TABLE {table_name} (\n" + ",\n".join(clauses) + "\n);"
        return [create] + self._comment_statements(table_name, fields)

    def add_columns_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        # one statement for all columns
        columns = ",\n".join(f"ADD COLUMN {self.prepare_column(f)}" for f in fields)
        alter = f"ALTER TABLE {table_name}\n{columns};"
        return [alter] + self._comment_statements(table_name, fields)

    def prepare_insert_stmt(self, table_name: str, prepared: PreparedData,
                            args_len: int = 0, ext: Optional[InsertExt] = None) -> str:
        self.check_on_conflict(ext)
        columns = self._insert_columns(prepared)
        sql = f"INSERT INTO {table_name}"
        if columns:
            sql += f" ({', '.join(columns)})"

        # value placeholders follow the caller's WHERE args
        values = [self.placeholder(args_len + i) for i in range(1, len(prepared.values) + 1)]
        values += self._computed_values(prepared)

        if prepared.query is not None:
            sql += f"\n{prepare_query(prepared.query)}"
        elif ext is not None and ext.where_not_exists:
            sql += (
                f"\nSELECT {', '.join(values)} WHERE NOT EXISTS"
                f"\n(SELECT * FROM {table_name} WHERE {ext.where_not_exists})"
            )
        else:
            sql += f" VALUES ({', '.join(values)})"

        if ext is not None:
            if ext.on_conflict is not None:
                sql += f" ON CONFLICT ({ext.on_conflict.target}) DO NOTHING"
            if ext.returning is not None:
                sql += f"\nRETURNING {ext.returning.columns}"

        return sql + ";"

    def prepare_update_stmt(self, table_name: str, prepared: PreparedData, where: str,
                            args_len: int = 0, returning: Optional[Returning] = None) -> str:
        sql = f"UPDATE {table_name} SET {self._set_clause(prepared, args_len + 1)} WHERE {where}"
        if returning is not None:
            sql += f" RETURNING {returning.columns}"
        return sql + ";"

    def prepare_delete_stmt(self, table_name: str, where: str,
                            returning: Optional[Returning] = None) -> str:
        sql = f"DELETE FROM {table_name} WHERE {where}"
        if returning is not None:
            sql += f" RETURNING {returning.columns}"
        return sql + ";"

    def insert(self, tx: Optional[Transaction], prepared: PreparedData, table_name: str,
               ext: Optional[InsertExt] = None, args: Sequence[Any] = ()):
        returning = ext.returning if ext is not None else None
        self.check_returning("INSERT", returning)
        sql = self.prepare_insert_stmt(table_name, prepared, len(args), ext)
        # 1 - args of WHERE NOT EXISTS, 2 - inserted values
        all_args = list(args) + list(prepared.values)
        return self._write(tx, sql, all_args, returning=returning is not None)

    def update(self, tx: Optional[Transaction], prepared: PreparedData, table_name: str, where: str,
               returning: Optional[Returning] = None, args: Sequence[Any] = ()):
        self.check_returning("UPDATE", returning)
        sql = self.prepare_update_stmt(table_name, prepared, where, len(args), returning)
        # 1 - args of WHERE, 2 - values for updating
        all_args = list(args) + list(prepared.values)
        return self._write(tx, sql, all_args, returning=returning is not None)

    def delete(self, tx: Optional[Transaction], table_name: str, where: str,
               returning: Optional[Returning] = None, args: Sequence[Any] = ()):
        self.check_returning("DELETE", returning)
        sql = self.prepare_delete_stmt(table_name, where, returning)
        return self._write(tx, sql, list(args), returning=returning is not None)


class MySQLAdapter(DatabaseAdapter):
    """MySQL database adapter"""

    driver = Driver.MYSQL
    sqlalchemy_driver = "mysql+pymysql"
    quote_char = "`"
    token_re = re.compile(_MYSQL_QUOTED + r"|\?|:")

    max_insert_returning = 1  # only the last insert id
    supports_update_returning = False
    supports_delete_returning = False
    supports_on_conflict = False

    table_exists_sql = """SELECT EXISTS (
    SELECT TABLE_NAME FROM information_schema.TABLES
    WHERE TABLE_NAME = ? AND TABLE_SCHEMA = DATABASE()
);"""

    columns_info_sql = """SELECT COLUMN_NAME AS `name`, COLUMN_TYPE AS `type`,
    (CASE IS_NULLABLE WHEN 'YES' THEN true WHEN 'NO' THEN false END) AS `nullable`,
    COALESCE(CHARACTER_MAXIMUM_LENGTH, NUMERIC_PRECISION, 0) AS `length`,
    COLUMN_DEFAULT AS `default`
FROM information_schema.COLUMNS
WHERE TABLE_NAME = ? AND TABLE_SCHEMA = DATABASE()
ORDER BY ORDINAL_POSITION;"""

    def __init__(self, params: DatabaseParams):
        super().__init__(params)
        self.params.ext.setdefault("engine", DEFAULT_MYSQL_ENGINE)

    def placeholder(self, num: int) -> str:
        return "?"

    def _bind_name(self, token: str, counter: List[int]) -> str:
        counter[0] += 1
        return f"p{counter[0]}"

    def prepare_column(self, field: SchemaField) -> str:
        db_type, qualifier = split_type(field.db_type)

        column = f"{self.quote(field.db_name)} {db_type}"
        if field.length > 0:
            column += f"({field.length})"
        if qualifier:  # unsigned
            column += f" {qualifier}"
        column += " NULL" if field.nullable else " NOT NULL"
        if field.default:
            column += f" DEFAULT {field.default}"
        if field.comment:
            column += f" COMMENT {quote_literal(field.comment)}"
        return column

    def create_table_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        clauses = [self.prepare_column(f) for f in fields]
        pk = self._primary_key_clause(fields)
        if pk:
            clauses.append(pk)

        create = f"CREATE TABLE {self.quote(table_name)} (\n" + ",\n".join(clauses) + "\n)"
        engine = self.params.ext.get("engine")
        if engine:
            create += f" ENGINE={engine}"
        return [create + " DEFAULT CHARSET=utf8;"]

    def add_columns_statements(self, table_name: str, fields: Sequence[SchemaField]) -> List[str]:
        # one statement per column
        return [
            f"ALTER TABLE {self.quote(table_name)} ADD COLUMN {self.prepare_column(f)};"
            for f in fields
        ]

    def prepare_insert_stmt(self, table_name: str, prepared: PreparedData,
                            args_len: int = 0, ext: Optional[InsertExt] = None) -> str:
        self.check_on_conflict(ext)
        columns = self._insert_columns(prepared)
        sql = f"INSERT INTO {self.quote(table_name)}"
        if columns:
            sql += f" ({', '.join(columns)})"

        values = [self.placeholder(i) for i in range(1, len(prepared.values) + 1)]
        values += self._computed_values(prepared)

        if prepared.query is not None:
            sql += f"\n{prepare_query(prepared.query)}"
        elif ext is not None and ext.where_not_exists:
            sql += (
                f"\nSELECT {', '.join(values)} FROM DUAL WHERE NOT EXISTS"
                f"\n(SELECT * FROM {self.quote(table_name)} WHERE {ext.where_not_exists})"
            )
        else:
            sql += f" VALUES ({', '.join(values)})"

        return sql + ";"

    def prepare_update_stmt(self, table_name: str, prepared: PreparedData, where: str,
                            args_len: int = 0, returning: Optional[Returning] = None) -> str:
        return f"UPDATE {self.quote(table_name)} SET {self._set_clause(prepared, 1)} WHERE {where};"

    def prepare_delete_stmt(self, table_name: str, where: str,
                            returning: Optional[Returning] = None) -> str:
        return f"DELETE FROM {self.quote(table_name)} WHERE {where};"

    def insert(self, tx: Optional[Transaction], prepared: PreparedData, table_name: str,
               ext: Optional[InsertExt] = None, args: Sequence[Any] = ()):
        returning = ext.returning if ext is not None else None
        self.check_returning("INSERT", returning)
        sql = self.prepare_insert_stmt(table_name, prepared, len(args), ext)
        # values are written before the WHERE NOT EXISTS predicate
        all_args = list(prepared.values) + list(args)

        if returning is None:
            return self._write(tx, sql, all_args)

        def run(conn):
            self._execute(conn, sql, all_args)
            return (self._execute(conn, "SELECT LAST_INSERT_ID();").scalar(),)

        # engine.begin() rolls the insert back if reading the id fails
        return self._in_connection(tx, run)

    def update(self, tx: Optional[Transaction], prepared: PreparedData, table_name: str, where: str,
               returning: Optional[Returning] = None, args: Sequence[Any] = ()):
        self.check_returning("UPDATE", returning)
        sql = self.prepare_update_stmt(table_name, prepared, where)
        # SET values come before the WHERE args
        all_args = list(prepared.values) + list(args)
        return self._write(tx, sql, all_args)

    def delete(self, tx: Optional[Transaction], table_name: str, where: str,
               returning: Optional[Returning] = None, args: Sequence[Any] = ()):
        self.check_returning("DELETE", returning)
        return self._write(tx, self.prepare_delete_stmt(table_name, where), list(args))
