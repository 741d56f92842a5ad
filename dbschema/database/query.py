"""
Dialect-neutral SELECT statement model and its SQL compiler
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..exceptions import MissingAliasError, InvalidFromClauseError


@dataclass
class Query:
    """A SELECT statement, possibly with WITH and UNION parts"""
    select: str = ""
    from_: Union[str, "AliasedQuery", None] = None
    join: str = ""
    where: str = ""
    group: str = ""
    having: str = ""
    order: str = ""
    limit: int = 0
    offset: int = 0
    with_: List["AliasedQuery"] = field(default_factory=list)
    union: Optional["UnionClause"] = None

    def set_defaults(self, table_name: str) -> "Query":
        """Fill in obligatory clauses: `*` projection and the table as FROM target"""
        if not self.select:
            self.select = "*"
        if self.from_ is None:
            self.from_ = table_name
        return self

    def compile(self) -> str:
        return prepare_query(self)


@dataclass
class AliasedQuery:
    """A subquery used in WITH or FROM"""
    alias: str
    query: Query


@dataclass
class UnionClause:
    """Next link of a UNION chain"""
    query: Query
    all: bool = False


def _prepare_from_clause(parts: List[str], target) -> None:
    if isinstance(target, str):
        parts.append(f"FROM {target}")
    elif isinstance(target, AliasedQuery):
        if not target.alias:
            raise MissingAliasError("the subquery in the FROM clause must have an alias")
        parts.append(f"FROM ({prepare_query(target.query)}) AS {target.alias}")
    else:
        raise InvalidFromClauseError(
            "FROM clause must be a table name or an AliasedQuery",
            {'type': type(target).__name__}
        )


def _prepare_select_statement(parts: List[str], query: Query) -> None:
    parts.append(f"SELECT {query.select}")
    _prepare_from_clause(parts, query.from_)

    if query.join:
        parts.append(query.join)
    if query.where:
        parts.append(f"WHERE {query.where}")
    if query.group:
        parts.append(f"GROUP BY {query.group}")
        if query.having:
            parts.append(f"HAVING {query.having}")
    if query.order:
        parts.append(f"ORDER BY {query.order}")
    if query.limit > 0:
        parts.append(f"LIMIT {query.limit}")
    if query.offset > 0:
        parts.append(f"OFFSET {query.offset}")


def _prepare_with_clause(parts: List[str], entries: List[AliasedQuery]) -> None:
    compiled = []
    for entry in entries:
        if not entry.alias:
            raise MissingAliasError("the subquery in the WITH clause must have an alias")
        compiled.append(f"{entry.alias} AS ({prepare_query(entry.query)})")
    parts.append("WITH " + ",\n".join(compiled))


def _prepare_union_clause(parts: List[str], clause: UnionClause) -> None:
    # links are flattened so long chains don't grow the call stack
    while clause is not None:
        linked = clause.query
        parts.append("UNION ALL" if clause.all else "UNION")
        if linked.with_:
            # a link with its own WITH goes in parentheses
            sub: List[str] = []
            _prepare_with_clause(sub, linked.with_)
            _prepare_select_statement(sub, linked)
            parts.append("(" + "\n".join(sub) + ")")
        else:
            _prepare_select_statement(parts, linked)
        clause = linked.union


def prepare_query(query: Query) -> str:
    """Compile the query into SQL text. Placeholders are left as written."""
    parts: List[str] = []

    if query.with_:
        _prepare_with_clause(parts, query.with_)

    _prepare_select_statement(parts, query)

    if query.union is not None:
        _prepare_union_clause(parts, query.union)

    return "\n".join(parts)
