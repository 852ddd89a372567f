"""
PostgreSQL dialect (psycopg2 driver).
"""

from collections.abc import Mapping, Sequence
from typing import Any

import psycopg2
from psycopg2.extensions import TRANSACTION_STATUS_IDLE

from utils.database_types import DatabaseType

from .base import STRING_LIKE, Dialect

TYPE_NAME_QUERY = "SELECT oid, typname FROM pg_catalog.pg_type"


class PostgreSQLDialect(Dialect):
    """
    PostgreSQL: unquoted (case-folded) identifiers, native NULL ordering,
    type names looked up from pg_type by oid.
    """

    database_type = DatabaseType.POSTGRESQL
    driver_errors = (psycopg2.Error,)
    string_patterns = STRING_LIKE + ("TEXT", "BYTEA", "BOOL", "UUID")

    def load_type_names(self, connection: Any, table: str) -> Mapping[Any, str]:
        cursor = connection.cursor()
        try:
            cursor.execute(TYPE_NAME_QUERY)
            return {oid: typname for oid, typname in cursor.fetchall()}
        finally:
            cursor.close()

    def quote_literal(self, value: Any) -> str:
        escaped = str(value).replace("'", "''").replace("%", "%%")
        return f"'{escaped}'"

    def single_row_delete(self, table: str, where: str) -> str:
        # DELETE has no LIMIT clause in PostgreSQL
        return f"DELETE FROM {table} WHERE ctid IN (SELECT ctid FROM {table} WHERE {where} LIMIT 1)"

    def setup_session(self, connection: Any) -> None:
        connection.set_client_encoding("UTF8")

    def set_autocommit(self, connection: Any, enabled: bool) -> None:
        if connection.autocommit == enabled:
            return
        # psycopg2 refuses to switch modes inside a transaction
        if connection.info.transaction_status != TRANSACTION_STATUS_IDLE:
            connection.rollback()
        connection.autocommit = enabled

    def fix_row(self, row: Sequence[Any]) -> tuple:
        # bytea arrives as memoryview, which does not compare by value
        return tuple(bytes(value) if isinstance(value, memoryview) else value for value in row)
