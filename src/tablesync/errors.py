"""
Error types raised by synchronization clients.

Every error raised by a SyncClient is also latched on the client as
``client.error`` before it propagates; the latched value is always the
most recent failure.
"""


class SyncClientError(Exception):
    """Base exception for synchronization client errors."""

    pass


class ClientStateError(SyncClientError):
    """Raised when a client is used out of order (before init, after close)."""

    pass


class SessionSetupFailure(SyncClientError):
    """Raised when dialect session preparation is rejected by the database."""

    pass


class SchemaProbeFailure(SyncClientError):
    """Raised when the zero-row schema probe cannot be executed."""

    pass


class UnsupportedColumnType(SyncClientError):
    """Raised when a column's native type cannot be compared."""

    def __init__(self, column: str, type_code, type_name: str):
        super().__init__(
            f"don't know how to compare {column} (type {type_code} [{type_name}])"
        )
        self.column = column
        self.type_code = type_code
        self.type_name = type_name


class InvalidKeyColumn(SyncClientError):
    """Raised when a unique key or sort key names a column that is not retained."""

    def __init__(self, column: str):
        super().__init__(f"invalid column name for key ({column})")
        self.column = column


class StatementPrepareFailure(SyncClientError):
    """Raised when a statement cannot be prepared against the live connection."""

    pass


class FetchFailure(SyncClientError):
    """Raised when fetching the next row fails. End of data is not an error."""

    pass


class WriteFailure(SyncClientError):
    """Raised when an insert or delete is rejected by the database."""

    pass


class CeilingTripped(SyncClientError):
    """
    Raised when a destructive operation would exceed its configured ceiling.

    Recoverable: the client stays structurally valid, but every further
    call against the same ceiling keeps failing.
    """

    def __init__(self, ceiling: str, limit: int):
        label = ceiling.replace("_", " ")
        super().__init__(f"{label} reached ({limit})")
        self.ceiling = ceiling
        self.limit = limit


class CommitFailure(SyncClientError):
    """Raised when a commit is rejected."""

    pass


class RollbackFailure(SyncClientError):
    """Raised when a rollback is rejected."""

    pass
