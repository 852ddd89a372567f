"""
Cross-database table synchronization client.

Provides:
- SyncClient: one endpoint (source or destination) of a table sync
- EndpointConfig: immutable endpoint configuration
- Dialects for MySQL, PostgreSQL and Oracle
- Typed errors latched on the client as ``client.error``
"""

from .client import SyncClient
from .config import MAX_PENDING, EndpointConfig, Role
from .dialects import Dialect, MySQLDialect, OracleDialect, PostgreSQLDialect, get_dialect
from .errors import (
    CeilingTripped,
    ClientStateError,
    CommitFailure,
    FetchFailure,
    InvalidKeyColumn,
    RollbackFailure,
    SchemaProbeFailure,
    SessionSetupFailure,
    StatementPrepareFailure,
    SyncClientError,
    UnsupportedColumnType,
    WriteFailure,
)
from .schema import ColumnType

__version__ = "1.0.0"
__all__ = [
    "MAX_PENDING",
    "CeilingTripped",
    "ClientStateError",
    "ColumnType",
    "CommitFailure",
    "Dialect",
    "EndpointConfig",
    "FetchFailure",
    "InvalidKeyColumn",
    "MySQLDialect",
    "OracleDialect",
    "PostgreSQLDialect",
    "Role",
    "RollbackFailure",
    "SchemaProbeFailure",
    "SessionSetupFailure",
    "StatementPrepareFailure",
    "SyncClient",
    "SyncClientError",
    "UnsupportedColumnType",
    "WriteFailure",
    "get_dialect",
]
