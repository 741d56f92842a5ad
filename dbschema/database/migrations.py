"""
File-based versioned migrations

Scripts live in <migrations_path>/<db_name>/ and are named
`<version>_<title>.up.sql`. Applied versions are tracked in the
`schema_migrations` table; a version is marked dirty before its script runs
and clean after, so a script that failed halfway blocks further runs until
an operator fixes the database and the version row.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Set

from sqlalchemy import MetaData, Table, Column, BigInteger, Boolean, select, update
from sqlalchemy.engine import Engine

from ..exceptions import MigrationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

VERSION_TABLE = "schema_migrations"
MIGRATION_FILE_RE = re.compile(r"^(\d+)_(.+)\.up\.sql$")

STATEMENT_TOKEN_RE = re.compile(
    r"'(?:[^'\\]|\\.|'')*'"                # string literal
    r'|"(?:[^"]|"")*"'                     # quoted identifier
    r"|`[^`]*`"
    r"|--[^\n]*"                           # line comment
    r"|/\*.*?\*/"                          # block comment
    r"|(?P<dollar>\$(?:[A-Za-z_]\w*)?\$)"  # opening tag of a dollar-quoted body
    r"|\b(?P<word>BEGIN|CASE|END)\b"
    r"|;",
    re.IGNORECASE | re.DOTALL
)
TRANSACTION_BEGIN_RE = re.compile(r"\s*(?:;|$|(?:TRANSACTION|WORK)\b)", re.IGNORECASE)
CONTROL_END_RE = re.compile(r"\s+(?:IF|LOOP|WHILE|REPEAT)\b", re.IGNORECASE)


def split_statements(sql: str) -> List[str]:
    """
    Split a script at top-level semicolons. Semicolons inside literals,
    comments, dollar-quoted bodies and BEGIN ... END / CASE ... END blocks
    don't end a statement.
    """
    statements = []
    depth = 0
    start = pos = 0

    while True:
        match = STATEMENT_TOKEN_RE.search(sql, pos)
        if match is None:
            break
        pos = match.end()

        if match.group('dollar'):
            tag = match.group('dollar')
            close = sql.find(tag, pos)
            pos = len(sql) if close < 0 else close + len(tag)
        elif match.group('word'):
            word = match.group('word').upper()
            if word == "END":
                if depth and not CONTROL_END_RE.match(sql, pos):
                    depth -= 1
            elif word == "CASE" or not TRANSACTION_BEGIN_RE.match(sql, pos):
                depth += 1
        elif match.group(0) == ";" and depth == 0:
            statements.append(sql[start:match.start()])
            start = pos

    statements.append(sql[start:])
    return [s.strip() for s in statements if s.strip()]


@dataclass
class MigrationScript:
    version: int
    title: str
    path: Path

    def statements(self, split: bool = True) -> List[str]:
        """Statements of the script, or the whole script as one when split is off"""
        sql = self.path.read_text(encoding='utf-8')
        if not split:
            return [sql] if sql.strip() else []
        return split_statements(sql)


class MigrationRunner:
    """
    Apply pending migration scripts of one database.
    With split_statements off every script goes to the driver in one call,
    for drivers that run multi-statement strings (psycopg2).
    """

    def __init__(self, engine: Engine, source_dir: str, table_name: str = VERSION_TABLE,
                 split_statements: bool = True):
        self.engine = engine
        self.source_dir = Path(source_dir)
        self.split_statements = split_statements
        self.metadata = MetaData()
        self.table = Table(
            table_name, self.metadata,
            Column('version', BigInteger, primary_key=True, autoincrement=False),
            Column('dirty', Boolean, nullable=False, default=False),
        )

    def discover(self) -> List[MigrationScript]:
        """Migration scripts found in the source directory, ordered by version"""
        if not self.source_dir.is_dir():
            raise MigrationError(
                f"migrations directory {self.source_dir} does not exist",
                {'path': str(self.source_dir)}
            )

        scripts = {}
        for path in self.source_dir.iterdir():
            if path.name.endswith(".down.sql"):
                continue
            match = MIGRATION_FILE_RE.match(path.name)
            if not match:
                continue
            version = int(match.group(1))
            if version in scripts:
                raise MigrationError(
                    f"duplicate migration version {version}",
                    {'files': [scripts[version].path.name, path.name]}
                )
            scripts[version] = MigrationScript(version, match.group(2), path)

        return [scripts[v] for v in sorted(scripts)]

    def applied_versions(self) -> Set[int]:
        self.metadata.create_all(self.engine, checkfirst=True)

        with self.engine.connect() as conn:
            rows = conn.execute(select(self.table.c.version, self.table.c.dirty)).all()

        dirty = [r.version for r in rows if r.dirty]
        if dirty:
            raise MigrationError(
                f"database is dirty at version {dirty[0]}, fix it and clean the version row",
                {'versions': dirty}
            )
        return {r.version for r in rows}

    def pending(self) -> List[MigrationScript]:
        applied = self.applied_versions()
        return [s for s in self.discover() if s.version not in applied]

    def up(self) -> List[int]:
        """Apply all pending scripts. Returns applied versions, empty when up to date."""
        applied = []

        for script in self.pending():
            with self.engine.begin() as conn:
                conn.execute(self.table.insert().values(version=script.version, dirty=True))

            with self.engine.begin() as conn:
                for statement in script.statements(self.split_statements):
                    logger.debug(f"migration {script.version}: {statement}")
                    conn.exec_driver_sql(statement, execution_options={"no_parameters": True})
                conn.execute(
                    update(self.table)
                    .where(self.table.c.version == script.version)
                    .values(dirty=False)
                )

            logger.info(f"Applied migration {script.version} ({script.title})")
            applied.append(script.version)

        return applied
