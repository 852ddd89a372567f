"""
Dialect capability set.

A Dialect bundles everything that differs between database engines:
quoting, placeholders, NULL ordering, long-value comparison, single-row
delete limiting, type-name lookup and classification, session setup and
the driver calls used to toggle auto-commit and run statements. A client
holds exactly one dialect, chosen when it is constructed.
"""

import logging
from abc import ABC
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from utils.database_types import DatabaseType

from ..errors import UnsupportedColumnType
from ..schema import ColumnType

if TYPE_CHECKING:
    from ..queries import PreparedStatement

logger = logging.getLogger(__name__)

# (substrings of the upper-cased type name, semantic type, excluded, long value)
Rule = tuple[tuple[str, ...], ColumnType, bool, bool]

STRING_LIKE = ("CHAR", "TIME", "DATE", "BIN", "INTERVAL")
NUMERIC_LIKE = ("DEC", "INT", "NUM", "DOUBLE", "FLOAT")
# names the substring rules would misread (POINT contains INT)
UNSUPPORTED = ("POINT",)


class Dialect(ABC):
    """Engine-specific behavior shared by every client of one engine."""

    database_type: DatabaseType = DatabaseType.UNKNOWN
    identifier_quote: str = ""
    # Exceptions raised by the DB-API driver
    driver_errors: tuple[type[BaseException], ...] = ()
    string_patterns: tuple[str, ...] = STRING_LIKE
    numeric_patterns: tuple[str, ...] = NUMERIC_LIKE
    unsupported_patterns: tuple[str, ...] = UNSUPPORTED

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    # -- classification -------------------------------------------------

    def classification_rules(self) -> Sequence[Rule]:
        """Ordered rules; the first rule with a matching substring wins."""
        return (
            (self.string_patterns, ColumnType.STRING, False, False),
            (("RAW",), ColumnType.UNKNOWN, True, False),
            (("LONG", "CLOB"), ColumnType.STRING, False, True),
            (("BFILE",), ColumnType.UNKNOWN, True, False),
            (self.numeric_patterns, ColumnType.NUMERIC, False, False),
        )

    def classify(self, column: str, type_code: Any, type_name: str) -> tuple[ColumnType, bool, bool]:
        """
        Classify a column by its native type name.

        Returns:
            (semantic type, excluded, long value)

        Raises:
            UnsupportedColumnType: If no rule matches, or the name is known
                to be unsupported
        """
        if any(pattern in type_name for pattern in self.unsupported_patterns):
            raise UnsupportedColumnType(column, type_code, type_name)
        for patterns, column_type, excluded, long_value in self.classification_rules():
            if any(pattern in type_name for pattern in patterns):
                return column_type, excluded, long_value
        raise UnsupportedColumnType(column, type_code, type_name)

    def load_type_names(self, connection: Any, table: str) -> Mapping[Any, str]:
        """Load the engine's type-code to type-name table (once per init)."""
        return {}

    def type_name(self, type_names: Mapping[Any, str], column: str, type_code: Any) -> str:
        """Canonical upper-case type name for a probed column."""
        return str(type_names.get(type_code, "")).upper()

    # -- SQL rendering --------------------------------------------------

    def quote_identifier(self, name: str) -> str:
        if not self.identifier_quote:
            return name
        return f"{self.identifier_quote}{name}{self.identifier_quote}"

    def quote_literal(self, value: Any) -> str:
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"

    def placeholder(self, index: int) -> str:
        """Bind placeholder for the parameter at 0-based ``index``."""
        return "%s"

    def masked_expression(self, literal: str, column: str) -> str:
        """Select-list expression that replaces a column with a fixed literal."""
        return f"{self.quote_literal(literal)} AS {self.quote_identifier(column)}"

    def sort_expressions(self, column: str) -> list[str]:
        """ORDER BY terms for one column."""
        return [self.quote_identifier(column)]

    def long_value_equality(self, column: str, placeholder: str) -> str:
        return f"{column} = {placeholder}"

    def null_safe_equality(self, column: str, long_value: bool, index: int) -> str:
        """
        Equality test that also matches NULL against NULL.

        Consumes two placeholders, ``index`` and ``index + 1``; both bind
        the same column value.
        """
        quoted = self.quote_identifier(column)
        value = self.placeholder(index)
        null_test = self.placeholder(index + 1)
        if long_value:
            equality = self.long_value_equality(quoted, value)
        else:
            equality = f"{quoted} = {value}"
        return f"({equality} OR ({null_test} IS NULL AND {quoted} IS NULL))"

    def single_row_delete(self, table: str, where: str) -> str:
        """DELETE limited to at most one matching row."""
        return f"DELETE FROM {table} WHERE {where} LIMIT 1"

    # -- driver calls ---------------------------------------------------

    def setup_session(self, connection: Any) -> None:
        """Prepare a connection for comparison reads and writes."""
        return None

    def set_autocommit(self, connection: Any, enabled: bool) -> None:
        connection.autocommit = enabled

    def open_cursor(self, connection: Any, sql: str, args: Sequence[Any] = ()) -> Any:
        cursor = connection.cursor()
        try:
            cursor.execute(sql, tuple(args))
        except self.driver_errors:
            cursor.close()
            raise
        return cursor

    def open_select(self, connection: Any, sql: str, args: Sequence[Any] = ()) -> Any:
        """Open the ordered row cursor."""
        return self.open_cursor(connection, sql, args)

    def prepare(self, connection: Any, statement: "PreparedStatement") -> None:
        """Attach a reusable execution handle to ``statement``."""
        statement.cursor = connection.cursor()

    def execute(self, statement: "PreparedStatement", params: Sequence[Any]) -> int:
        """Execute a prepared statement and return the affected-row count."""
        statement.cursor.execute(statement.sql, tuple(params))
        return statement.cursor.rowcount

    def fix_row(self, row: Sequence[Any]) -> tuple:
        """Normalize a fetched row before it is handed to the caller."""
        return tuple(row)
