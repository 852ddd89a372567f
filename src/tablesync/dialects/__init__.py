"""
Database dialects for synchronization clients.

Usage:
    from tablesync.dialects import get_dialect

    dialect = get_dialect("postgresql")
"""

from utils.database_types import DatabaseType

from .base import Dialect
from .mysql import MySQLDialect
from .oracle import OracleDialect
from .postgresql import PostgreSQLDialect

_DIALECTS: dict[DatabaseType, type[Dialect]] = {
    DatabaseType.MYSQL: MySQLDialect,
    DatabaseType.POSTGRESQL: PostgreSQLDialect,
    DatabaseType.ORACLE: OracleDialect,
}


def get_dialect(database: "str | DatabaseType | Dialect") -> Dialect:
    """
    Resolve a dialect by engine name or DatabaseType.

    Raises:
        ValueError: If the engine is not supported
    """
    if isinstance(database, Dialect):
        return database

    db_type = database if isinstance(database, DatabaseType) else DatabaseType.from_name(database)
    try:
        return _DIALECTS[db_type]()
    except KeyError:
        raise ValueError(f"Unsupported database type: {database}") from None


__all__ = [
    "Dialect",
    "MySQLDialect",
    "OracleDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
