"""
Synchronization client for one endpoint of a table sync.

A SyncClient binds an EndpointConfig to a dialect and one or two DB-API
connections. After ``init`` it streams rows in a deterministic order
(``fetch_row``) and, for destinations, applies inserts and deletes under
the commit batching and ceilings of its BackpressureController.

Two clients built over structurally equivalent tables expose identical
``column_names``, so the rows they fetch are positionally comparable by
whatever merge driver sits on top of them.

Every failure raises a SyncClientError subclass and is latched as
``client.error`` before it propagates.
"""

import logging
from collections.abc import Sequence
from contextlib import contextmanager
from typing import Any

from utils.database_types import DatabaseType
from utils.logging import ContextLogger
from utils.tracing import add_span_attributes, trace_operation

from .collist import ColumnSet, build_column_set
from .config import EndpointConfig
from .dialects import Dialect, get_dialect
from .errors import (
    ClientStateError,
    FetchFailure,
    SchemaProbeFailure,
    SessionSetupFailure,
    StatementPrepareFailure,
    SyncClientError,
    WriteFailure,
)
from .metrics import ROWS_DELETED, ROWS_INSERTED
from .queries import PreparedStatement, StatementSet, build_statements, render_count, render_probe
from .schema import ColumnSchema, ColumnType, analyze_columns
from .transaction import MAX_DELETES, MAX_INSERTS, BackpressureController, TransactionState

_SELECTORS = {"read": "read", "read_db": "read", "write": "write", "write_db": "write"}


class SyncClient:
    """
    One endpoint (source or destination) of a table synchronization.

    Usage:
        source = SyncClient("postgresql", EndpointConfig("people"), pg_conn)
        dest = SyncClient(
            "mysql",
            EndpointConfig("people", role=Role.DESTINATION, unique_keys=[("id",)]),
            mysql_conn,
        )
        source.init()
        dest.init()
        row = source.fetch_row()
        dest.insert_row(*row)
        dest.check_pending()
        dest.close()
    """

    def __init__(
        self,
        dialect: "str | DatabaseType | Dialect",
        config: EndpointConfig,
        connection: Any,
        write_connection: Any = None,
    ):
        self.dialect = get_dialect(dialect)
        self.config = config
        self.read_db = connection
        self.write_db = write_connection if write_connection is not None else connection

        self.error: SyncClientError | None = None
        self.controller = BackpressureController(config, self.dialect, self.write_db)
        self.log = ContextLogger(__name__, table=config.table, role=config.role.value)

        self._column_info: list[tuple] = []
        self._schema: ColumnSchema | None = None
        self._column_set: ColumnSet | None = None
        self._statements: StatementSet | None = None
        self._initialized = False
        self._closed = False

    @classmethod
    def for_connection(
        cls,
        config: EndpointConfig,
        connection: Any,
        write_connection: Any = None,
    ) -> "SyncClient":
        """Build a client whose dialect is inferred from the connection's driver."""
        db_type = DatabaseType.from_connection(connection)
        return cls(db_type, config, connection, write_connection)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.dialect!r}, table={self.config.table!r}, "
            f"role={self.config.role.value!r})"
        )

    def __enter__(self) -> "SyncClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self._initialized or self._closed:
            return
        if exc_type is None:
            self.close()
            return

        # the body's exception propagates; cleanup failures are only logged
        try:
            self.roll_back()
        except SyncClientError as err:
            self.log.error(f"Rollback after {exc_type.__name__} failed: {err}")
        finally:
            try:
                self.close()
            except SyncClientError as err:
                self.log.error(f"Close after {exc_type.__name__} failed: {err}")

    # -- internals ------------------------------------------------------

    @contextmanager
    def _latching(self):
        """Latch any client error raised inside the block as ``self.error``."""
        try:
            yield
        except SyncClientError as err:
            self.error = err
            raise

    def _note(self, msg: str) -> None:
        """Progress note: INFO for debug-flagged clients, DEBUG otherwise."""
        self.log.log(logging.INFO if self.config.debug else logging.DEBUG, msg)

    def _require_ready(self) -> None:
        if not self._initialized:
            raise ClientStateError(f"client for {self.config.table} is not initialized")
        if self._closed:
            raise ClientStateError(f"client for {self.config.table} is closed")

    def _require_destination(self, action: str) -> None:
        self._require_ready()
        if not self.config.is_destination:
            raise ClientStateError(f"{action} requires a destination client")

    def _row_mapping(self, values: Sequence[Any]) -> dict[str, Any]:
        names = self._column_set.output_column_names
        if len(values) != len(names):
            raise WriteFailure(f"expected {len(names)} values, got {len(values)}")
        return self._column_set.row_mapping(values)

    def _execute_write(self, statement: PreparedStatement | None, row: dict[str, Any], action: str) -> int:
        if statement is None or not statement.is_open:
            raise ClientStateError(f"{action} query not built")
        if self.config.dry_run:
            return 0
        try:
            count = self.dialect.execute(statement, statement.bind(row))
        except self.dialect.driver_errors as err:
            raise WriteFailure(f"unable to {action} row - {err}") from err
        return max(count or 0, 0)

    def _count_matches(self, statement: PreparedStatement, row: dict[str, Any]) -> int:
        """Rows a delete would remove, for dry runs that must not execute it."""
        try:
            cursor = self.dialect.open_cursor(self.write_db, statement.match_sql, statement.bind(row))
            try:
                (count,) = cursor.fetchone()
            finally:
                cursor.close()
        except self.dialect.driver_errors as err:
            raise WriteFailure(f"unable to match row - {err}") from err
        return int(count)

    def _setup_sessions(self) -> None:
        connections = [self.read_db]
        if self.config.is_destination and self.write_db is not self.read_db:
            connections.append(self.write_db)
        for conn in connections:
            try:
                self.dialect.setup_session(conn)
            except self.dialect.driver_errors as err:
                raise SessionSetupFailure(f"session setup failed ({self.config.table}): {err}") from err

    def _probe(self) -> list[tuple]:
        sql = render_probe(self.config)
        self._note(f"Schema probe: {sql}")
        try:
            cursor = self.dialect.open_cursor(self.read_db, sql, self.config.args)
        except self.dialect.driver_errors as err:
            raise SchemaProbeFailure(f"describe schema failed ({self.config.table}): {err}") from err
        try:
            return [tuple(entry) for entry in cursor.description or ()]
        finally:
            cursor.close()

    def _prepare_writes(self) -> None:
        for statement in self._statements.writes:
            self._note(f"Preparing {statement.kind.value}: {statement.sql}")
            try:
                self.dialect.prepare(self.write_db, statement)
            except self.dialect.driver_errors as err:
                self._close_statements()
                raise StatementPrepareFailure(
                    f"unable to prepare {statement.kind.value} query ({self.config.table}): {err}"
                ) from err

    def _close_statements(self) -> None:
        if self._statements is None:
            return
        for statement in self._statements:
            try:
                statement.close()
            except self.dialect.driver_errors as err:
                self.log.warning(f"Unable to close {statement.kind.value} query: {err}")

    def _restore_autocommit(self) -> None:
        if not self.config.is_destination or self.config.dry_run:
            return
        try:
            self.dialect.set_autocommit(self.write_db, True)
        except self.dialect.driver_errors as err:
            self.log.error(f"Unable to restore autocommit: {err}")

    # -- lifecycle ------------------------------------------------------

    def init(self) -> None:
        """
        Probe the schema and build every column list and statement.

        Raises:
            ClientStateError: If the client was already initialized
            SessionSetupFailure: If dialect session setup is rejected
            SchemaProbeFailure: If the zero-row probe fails
            UnsupportedColumnType: If a column's type cannot be compared
            InvalidKeyColumn: If a key names a column that is not retained
            StatementPrepareFailure: If a write statement cannot be prepared
        """
        with self._latching(), trace_operation(
            "tablesync.init", table=self.config.table, role=self.config.role.value
        ) as span:
            if self._initialized:
                raise ClientStateError(f"client for {self.config.table} already initialized")

            self._setup_sessions()
            self._column_info = self._probe()

            try:
                type_names = self.dialect.load_type_names(self.read_db, self.config.table)
            except self.dialect.driver_errors as err:
                raise SchemaProbeFailure(f"unable to load type names: {err}") from err

            self._schema = analyze_columns(self._column_info, type_names, self.config, self.dialect)
            self._column_set = build_column_set(self._schema, self.config, self.dialect)
            self._statements = build_statements(self._schema, self._column_set, self.config, self.dialect)
            self.log.update_context(columns=len(self._column_set.output_column_names))
            self._note(f"Select: {self._statements.select.sql}")

            self._prepare_writes()

            if self.config.is_destination and not self.config.dry_run:
                try:
                    self.dialect.set_autocommit(self.write_db, False)
                except self.dialect.driver_errors as err:
                    self._close_statements()
                    raise SessionSetupFailure(f"unable to disable autocommit: {err}") from err

            self._initialized = True
            span.set_attribute("columns", len(self._column_set.output_column_names))
            span.set_attribute("skipped", len(self._schema.skipped))

    def close(self) -> None:
        """
        Finish the endpoint.

        Issues a final commit for pending destination work, or rolls it
        back if an error is latched, then closes every statement and
        restores autocommit on the destination connection. Cleanup runs
        even if the commit or rollback fails.

        Raises:
            ClientStateError: If the client was never initialized or is already closed
            CommitFailure: If the final commit is rejected
            RollbackFailure: If discarding work after an error is rejected
        """
        with self._latching(), trace_operation("tablesync.close", table=self.config.table):
            if not self._initialized:
                raise ClientStateError("no queries defined")
            if self._closed:
                raise ClientStateError(f"client for {self.config.table} already closed")
            self._closed = True

            try:
                self.controller.finalize(error_latched=self.error is not None)
            finally:
                try:
                    self._close_statements()
                finally:
                    self._restore_autocommit()

            add_span_attributes(inserts=self.inserts, deletes=self.deletes, commits=self.commits)
            self._note(
                f"Closed: {self.inserts} inserts, {self.deletes} deletes, {self.commits} commits"
            )

    # -- reads ----------------------------------------------------------

    def fetch_row(self) -> tuple | None:
        """
        Fetch the next row in sort order.

        The select cursor is opened on the first call and reused after.

        Returns:
            Values in ``column_names`` order, or None at end of data

        Raises:
            FetchFailure: If the select cannot be opened or the fetch fails
        """
        with self._latching():
            self._require_ready()
            select = self._statements.select

            if not select.is_open:
                try:
                    select.cursor = self.dialect.open_select(self.read_db, select.sql, self.config.args)
                except self.dialect.driver_errors as err:
                    raise FetchFailure(f"unable to open select ({self.config.table}) - {err}") from err

            try:
                row = select.cursor.fetchone()
            except self.dialect.driver_errors as err:
                raise FetchFailure(f"unable to fetch row ({self.config.table}) - {err}") from err

            if row is None:
                return None
            return self.dialect.fix_row(row)

    def row_count(self, selector: str = "write") -> int:
        """
        Count the endpoint's rows, honoring its predicate.

        Args:
            selector: "read" or "write" ("read_db"/"write_db" also accepted)

        Raises:
            ClientStateError: If the selector is unknown
            FetchFailure: If the count query fails
        """
        with self._latching(), trace_operation(
            "tablesync.row_count", table=self.config.table, selector=selector
        ):
            which = _SELECTORS.get(selector)
            if which is None:
                raise ClientStateError(f"unknown db key ({selector})")
            conn = self.read_db if which == "read" else self.write_db

            sql = render_count(self.config)
            try:
                cursor = self.dialect.open_cursor(conn, sql, self.config.args)
                try:
                    (count,) = cursor.fetchone()
                finally:
                    cursor.close()
            except self.dialect.driver_errors as err:
                raise FetchFailure(f"unable to retrieve row count: {err}") from err
            return int(count)

    def describe_schema(self) -> str:
        """Text dump of the probed column metadata, one line per column."""
        with self._latching():
            if self._schema is None:
                raise ClientStateError(f"client for {self.config.table} is not initialized")
            return self._schema.describe()

    # -- writes ---------------------------------------------------------

    def insert_row(self, *values: Any) -> None:
        """
        Insert one row given in ``column_names`` order.

        Raises:
            CeilingTripped: If max_inserts is reached and force is not set
            WriteFailure: If the insert is rejected
        """
        with self._latching():
            self._require_destination("insert_row")
            row = self._row_mapping(values)
            self.controller.check_ceiling(MAX_INSERTS)
            self._execute_write(self._statements.insert, row, "insert")
            self.controller.record_insert()
            if not self.config.dry_run:
                ROWS_INSERTED.labels(table=self.config.table).inc()

    def delete_row(self, *values: Any) -> int:
        """
        Delete rows matching every retained column NULL-safely.

        Limited to a single row when duplicate suppression is on.

        Returns:
            Rows affected; 0 means no match and is not an error

        Raises:
            CeilingTripped: If max_deletes is reached and force is not set
            WriteFailure: If the delete is rejected
        """
        with self._latching():
            self._require_destination("delete_row")
            row = self._row_mapping(values)
            self.controller.check_ceiling(MAX_DELETES)
            count = self._execute_write(self._statements.delete, row, "delete")
            self.controller.record_delete()
            if count:
                ROWS_DELETED.labels(table=self.config.table, strategy="row").inc(count)
            return count

    def delete_by_unique_keys(self, *values: Any) -> int:
        """
        Delete rows matching any configured unique key.

        Each key's delete runs in configuration order. Pending work grows
        by one if anything matched, however many rows or keys did. Dry runs
        count the matching rows instead, so pending moves as it would for
        real.

        Returns:
            Total rows affected across all keys (0 in dry-run)

        Raises:
            WriteFailure: If any of the deletes is rejected
        """
        with self._latching():
            self._require_destination("delete_by_unique_keys")
            row = self._row_mapping(values)

            total = matched = 0
            for statement in self._statements.unique_deletes:
                total += self._execute_write(statement, row, "delete")
                if self.config.dry_run:
                    matched += self._count_matches(statement, row)

            self.controller.record_unique_delete(matched if self.config.dry_run else total)
            if total:
                ROWS_DELETED.labels(table=self.config.table, strategy="unique_key").inc(total)
            return total

    # -- transactions ---------------------------------------------------

    def check_pending(self) -> bool:
        """
        Commit if pending work exceeds the batch threshold.

        Returns:
            True if a commit was issued

        Raises:
            CommitFailure: If the commit is rejected
        """
        with self._latching():
            return self.controller.check_pending()

    def roll_back(self) -> None:
        """
        Discard uncommitted work and clear ``pending``.

        No-op for sources; dry runs never reach the connection.

        Raises:
            RollbackFailure: If the rollback is rejected
        """
        with self._latching():
            self.controller.roll_back()

    # -- accessors ------------------------------------------------------

    @property
    def column_info(self) -> list[tuple]:
        """Raw DB-API description of the schema probe."""
        return list(self._column_info)

    @property
    def column_names(self) -> list[str]:
        if self._column_set is None:
            return []
        return list(self._column_set.output_column_names)

    @property
    def column_types(self) -> list[ColumnType]:
        """Semantic type of each output column, in ``column_names`` order."""
        if self._schema is None:
            return []
        return [self._schema[name].column_type for name in self._column_set.output_column_names]

    @property
    def skipped_columns(self) -> set[str]:
        return self._schema.skipped if self._schema is not None else set()

    @property
    def long_value_columns(self) -> set[str]:
        return self._schema.long_values if self._schema is not None else set()

    @property
    def select_sql(self) -> str | None:
        return self._statements.select.sql if self._statements is not None else None

    @property
    def statements(self) -> StatementSet | None:
        return self._statements

    @property
    def state(self) -> TransactionState:
        return self.controller.state

    @property
    def inserts(self) -> int:
        return self.controller.state.inserts

    @property
    def deletes(self) -> int:
        return self.controller.state.deletes

    @property
    def commits(self) -> int:
        return self.controller.state.commits

    @property
    def pending(self) -> int:
        return self.controller.state.pending
