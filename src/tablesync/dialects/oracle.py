"""
Oracle dialect (python-oracledb driver).
"""

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import oracledb

from utils.database_types import DatabaseType

from .base import Dialect

if TYPE_CHECKING:
    from ..queries import PreparedStatement

logger = logging.getLogger(__name__)

SESSION_SETUP = (
    "ALTER SESSION SET NLS_DATE_FORMAT='YYYY-MM-DD HH24:MI:SS'",
    "ALTER SESSION SET NLS_TIMESTAMP_FORMAT='YYYY-MM-DD HH24:MI:SS.FF'",
)

# oracledb DbType names (without the DB_TYPE_ prefix) that differ from SQL names
ORACLE_TYPE_ALIASES = {
    "BINARY_FLOAT": "FLOAT",
    "BINARY_DOUBLE": "DOUBLE",
    "BINARY_INTEGER": "INTEGER",
    "LONG_RAW": "LONG RAW",
    "LONG_NVARCHAR": "LONG",
    "NCLOB": "CLOB",
    "TIMESTAMP_TZ": "TIMESTAMP WITH TIME ZONE",
    "TIMESTAMP_LTZ": "TIMESTAMP WITH LOCAL TIME ZONE",
}


def _fetch_lobs_inline(cursor, metadata):
    """Output type handler returning CLOB/NCLOB values as str."""
    if metadata.type_code is oracledb.DB_TYPE_CLOB:
        return cursor.var(oracledb.DB_TYPE_LONG, arraysize=cursor.arraysize)
    if metadata.type_code is oracledb.DB_TYPE_NCLOB:
        return cursor.var(oracledb.DB_TYPE_LONG_NVARCHAR, arraysize=cursor.arraysize)
    return None


class OracleDialect(Dialect):
    """
    Oracle: unquoted identifiers, numbered binds, ``dbms_lob.compare`` for
    long values, ROWNUM row limiting and fixed session date formats.
    """

    database_type = DatabaseType.ORACLE
    driver_errors = (oracledb.Error,)

    def type_name(self, type_names: Mapping[Any, str], column: str, type_code: Any) -> str:
        name = getattr(type_code, "name", None) or str(type_code)
        name = name.upper().removeprefix("DB_TYPE_")
        return ORACLE_TYPE_ALIASES.get(name, name)

    def placeholder(self, index: int) -> str:
        return f":{index + 1}"

    def long_value_equality(self, column: str, placeholder: str) -> str:
        return f"dbms_lob.compare({column}, {placeholder}) = 0"

    def single_row_delete(self, table: str, where: str) -> str:
        return f"DELETE FROM {table} WHERE {where} AND ROWNUM = 1"

    def setup_session(self, connection: Any) -> None:
        cursor = connection.cursor()
        try:
            for statement in SESSION_SETUP:
                logger.debug(f"Session setup: {statement}")
                cursor.execute(statement)
        finally:
            cursor.close()

    def open_select(self, connection: Any, sql: str, args: Sequence[Any] = ()) -> Any:
        cursor = connection.cursor()
        cursor.outputtypehandler = _fetch_lobs_inline
        try:
            cursor.execute(sql, tuple(args))
        except self.driver_errors:
            cursor.close()
            raise
        return cursor

    def prepare(self, connection: Any, statement: "PreparedStatement") -> None:
        cursor = connection.cursor()
        try:
            cursor.prepare(statement.sql)
            if statement.long_columns:
                # bind long values as CLOB so comparisons past 4000 chars work
                cursor.setinputsizes(*[
                    oracledb.DB_TYPE_CLOB if param in statement.long_columns else None
                    for param in statement.params
                ])
        except self.driver_errors:
            cursor.close()
            raise
        statement.cursor = cursor

    def execute(self, statement: "PreparedStatement", params: Sequence[Any]) -> int:
        statement.cursor.execute(None, list(params))
        return statement.cursor.rowcount
