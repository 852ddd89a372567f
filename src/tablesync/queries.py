"""
Statement rendering for synchronization clients.

Renders the ordered SELECT every endpoint reads through, and for
destinations the INSERT, the NULL-safe full-row DELETE, and one
NULL-safe DELETE per configured unique key. Write statements are
prepared once and re-executed for every row.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .collist import ColumnSet
from .config import EndpointConfig
from .errors import InvalidKeyColumn
from .schema import ColumnSchema

if TYPE_CHECKING:
    from .dialects.base import Dialect

logger = logging.getLogger(__name__)


class StatementKind(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    DELETE = "delete"
    UNIQUE_DELETE = "delete_uniq"


@dataclass
class PreparedStatement:
    """
    Rendered SQL plus its execution handle.

    ``params`` names the row column bound at each placeholder position.
    Delete statements name every compared column twice (equality test,
    then the both-NULL test). Their ``match_sql`` counts the rows the
    delete would remove and binds the same params.
    """

    kind: StatementKind
    sql: str
    params: tuple[str, ...] = ()
    match_sql: str | None = None
    key: tuple[str, ...] | None = None
    long_columns: frozenset[str] = frozenset()
    cursor: Any = field(default=None, repr=False)

    @property
    def is_open(self) -> bool:
        return self.cursor is not None

    def bind(self, row: Mapping[str, Any]) -> tuple:
        """Bind values for a row keyed by output column name."""
        return tuple(row.get(param) for param in self.params)

    def close(self) -> None:
        if self.cursor is not None:
            cursor, self.cursor = self.cursor, None
            cursor.close()


@dataclass
class StatementSet:
    """All statements owned by one client."""

    select: PreparedStatement
    insert: PreparedStatement | None = None
    delete: PreparedStatement | None = None
    unique_deletes: list[PreparedStatement] = field(default_factory=list)

    def __iter__(self):
        yield self.select
        if self.insert is not None:
            yield self.insert
        if self.delete is not None:
            yield self.delete
        yield from self.unique_deletes

    @property
    def writes(self) -> list[PreparedStatement]:
        return [stmt for stmt in self if stmt.kind is not StatementKind.SELECT]


def _from_clause(config: EndpointConfig) -> str:
    clause = f"FROM {config.table}"
    if config.alias:
        clause += f" {config.alias}"
    if config.where:
        clause += f" WHERE {config.where}"
    return clause


def render_select(column_set: ColumnSet, config: EndpointConfig) -> str:
    """SELECT [DISTINCT] cols FROM table [alias] [WHERE pred] ORDER BY sort."""
    qry = "SELECT"
    if config.no_dups:
        qry += " DISTINCT"
    qry += f" {', '.join(column_set.select_columns)} {_from_clause(config)}"
    if column_set.sort_columns:
        qry += f" ORDER BY {', '.join(column_set.sort_columns)}"
    else:
        logger.warning(f"No sortable columns for {config.table}; rows will not be ordered")
    return qry


def render_count(config: EndpointConfig) -> str:
    return f"SELECT COUNT(*) {_from_clause(config)}"


def render_probe(config: EndpointConfig) -> str:
    """Zero-row query exposing the column metadata of the endpoint."""
    source = config.table
    if config.alias:
        source += f" {config.alias}"
    if config.where:
        return f"SELECT * FROM {source} WHERE ({config.where}) AND 1=0"
    return f"SELECT * FROM {source} WHERE 1=0"


def render_insert(column_set: ColumnSet, config: EndpointConfig, dialect: "Dialect") -> PreparedStatement:
    placeholders = ", ".join(dialect.placeholder(i) for i in range(len(column_set.insert_columns)))
    sql = (
        f"INSERT INTO {config.table} ({', '.join(column_set.insert_columns)}) "
        f"VALUES ({placeholders})"
    )
    return PreparedStatement(StatementKind.INSERT, sql, params=column_set.output_column_names)


def render_delete(
    columns: Sequence[str],
    long_values: Iterable[str],
    config: EndpointConfig,
    dialect: "Dialect",
    kind: StatementKind = StatementKind.DELETE,
    single_row: bool = False,
) -> PreparedStatement:
    """
    Render a delete matching ``columns`` NULL-safely.

    Each column contributes ``(col = ? OR (? IS NULL AND col IS NULL))``;
    long-value columns use the dialect's content comparison instead of ``=``.
    """
    long_values = frozenset(long_values)
    clauses = []
    params: list[str] = []
    for col in columns:
        clauses.append(dialect.null_safe_equality(col, col in long_values, len(params)))
        params.extend((col, col))

    where = " AND ".join(clauses)
    if single_row:
        sql = dialect.single_row_delete(config.table, where)
    else:
        sql = f"DELETE FROM {config.table} WHERE {where}"

    return PreparedStatement(
        kind,
        sql,
        params=tuple(params),
        match_sql=f"SELECT COUNT(*) FROM {config.table} WHERE {where}",
        key=tuple(columns) if kind is StatementKind.UNIQUE_DELETE else None,
        long_columns=long_values & frozenset(columns),
    )


def build_statements(
    schema: ColumnSchema,
    column_set: ColumnSet,
    config: EndpointConfig,
    dialect: "Dialect",
) -> StatementSet:
    """
    Render every statement an endpoint needs.

    Sources get only the select. Destinations also get the insert, the
    full-row delete and one delete per non-empty unique key, in the order
    the keys were configured.

    Raises:
        InvalidKeyColumn: If a unique key names a column that is not retained
    """
    statements = StatementSet(select=PreparedStatement(StatementKind.SELECT, render_select(column_set, config)))
    if not config.is_destination:
        return statements

    long_values = schema.long_values

    statements.insert = render_insert(column_set, config, dialect)

    for key in config.unique_keys:
        if not key:
            continue
        for col in key:
            if col not in column_set.positions:
                raise InvalidKeyColumn(col)
        statements.unique_deletes.append(
            render_delete(key, long_values, config, dialect, kind=StatementKind.UNIQUE_DELETE)
        )

    statements.delete = render_delete(
        column_set.output_column_names,
        long_values,
        config,
        dialect,
        single_row=config.no_dups,
    )
    return statements
