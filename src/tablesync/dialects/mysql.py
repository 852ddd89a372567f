"""
MySQL dialect (PyMySQL driver).
"""

from collections.abc import Mapping
from typing import Any

import pymysql
from pymysql.constants import FIELD_TYPE

from utils.database_types import DatabaseType

from .base import STRING_LIKE, NUMERIC_LIKE, Dialect

# PyMySQL reports wire-protocol field codes; TEXT columns arrive as BLOB codes
MYSQL_TYPE_NAMES = {
    FIELD_TYPE.DECIMAL: "DECIMAL",
    FIELD_TYPE.NEWDECIMAL: "DECIMAL",
    FIELD_TYPE.TINY: "TINYINT",
    FIELD_TYPE.SHORT: "SMALLINT",
    FIELD_TYPE.LONG: "INTEGER",
    FIELD_TYPE.INT24: "MEDIUMINT",
    FIELD_TYPE.LONGLONG: "BIGINT",
    FIELD_TYPE.FLOAT: "FLOAT",
    FIELD_TYPE.DOUBLE: "DOUBLE",
    FIELD_TYPE.YEAR: "YEAR",
    FIELD_TYPE.BIT: "BIT",
    FIELD_TYPE.TIMESTAMP: "TIMESTAMP",
    FIELD_TYPE.DATE: "DATE",
    FIELD_TYPE.NEWDATE: "DATE",
    FIELD_TYPE.TIME: "TIME",
    FIELD_TYPE.DATETIME: "DATETIME",
    FIELD_TYPE.VARCHAR: "VARCHAR",
    FIELD_TYPE.VAR_STRING: "VARCHAR",
    FIELD_TYPE.STRING: "CHAR",
    FIELD_TYPE.ENUM: "CHAR",
    FIELD_TYPE.SET: "CHAR",
    FIELD_TYPE.TINY_BLOB: "TINYBLOB",
    FIELD_TYPE.MEDIUM_BLOB: "MEDIUMBLOB",
    FIELD_TYPE.LONG_BLOB: "LONGBLOB",
    FIELD_TYPE.BLOB: "BLOB",
    FIELD_TYPE.JSON: "JSON",
    FIELD_TYPE.GEOMETRY: "GEOMETRY",
}


class MySQLDialect(Dialect):
    """
    MySQL: backtick quoting, blob/text compared as plain strings,
    explicit ``col IS NULL, col`` ordering pairs.
    """

    database_type = DatabaseType.MYSQL
    identifier_quote = "`"
    driver_errors = (pymysql.Error,)
    string_patterns = STRING_LIKE + ("BLOB",)
    numeric_patterns = NUMERIC_LIKE + ("YEAR",)

    def load_type_names(self, connection: Any, table: str) -> Mapping[Any, str]:
        return MYSQL_TYPE_NAMES

    def quote_literal(self, value: Any) -> str:
        escaped = str(value).replace("\\", "\\\\").replace("'", "''").replace("%", "%%")
        return f"'{escaped}'"

    def sort_expressions(self, column: str) -> list[str]:
        # MySQL sorts NULL first ascending; the pair puts NULLs after values
        # like PostgreSQL and Oracle do by default
        quoted = self.quote_identifier(column)
        return [f"{quoted} IS NULL", quoted]

    def set_autocommit(self, connection: Any, enabled: bool) -> None:
        connection.autocommit(enabled)
