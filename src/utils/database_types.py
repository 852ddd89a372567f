"""
Database type enumeration for type-safe engine identification.

Replaces hardcoded 'mysql', 'postgresql' and 'oracle' strings throughout the codebase.
"""

from enum import Enum
from typing import Any


class DatabaseType(str, Enum):
    """
    Enumeration of supported database types.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    ORACLE = "oracle"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "DatabaseType":
        """
        Resolve a database type from a user-supplied engine name.

        Accepts common aliases ("pg", "postgres", "mariadb", "ora").

        Args:
            name: Engine name

        Returns:
            DatabaseType enum value (UNKNOWN if not recognized)
        """
        aliases = {
            "mysql": cls.MYSQL,
            "mariadb": cls.MYSQL,
            "postgresql": cls.POSTGRESQL,
            "postgres": cls.POSTGRESQL,
            "pg": cls.POSTGRESQL,
            "oracle": cls.ORACLE,
            "ora": cls.ORACLE,
        }
        return aliases.get(name.strip().lower(), cls.UNKNOWN)

    @classmethod
    def from_connection(cls, connection: Any) -> "DatabaseType":
        """
        Detect database type from a DB-API connection's driver module.

        Args:
            connection: Database connection object

        Returns:
            DatabaseType enum value
        """
        module = type(connection).__module__.lower()

        if "psycopg" in module:
            return cls.POSTGRESQL
        elif "pymysql" in module or "mysql" in module:
            return cls.MYSQL
        elif "oracledb" in module or "cx_oracle" in module:
            return cls.ORACLE
        else:
            return cls.UNKNOWN
