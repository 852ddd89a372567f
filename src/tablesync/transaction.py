"""
Transaction bookkeeping and backpressure for destination endpoints.

Every successful insert/delete adds to ``pending``; check_pending commits
once the batch threshold is exceeded so no single transaction grows
without bound. Ceilings refuse destructive work past a configured count
and roll back whatever is uncommitted. A client closing with a latched
error rolls back instead of committing. In dry-run mode counters move
exactly as in a real run, but nothing is committed or rolled back.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from utils.tracing import add_span_event, trace_operation

from .config import EndpointConfig
from .errors import CeilingTripped, CommitFailure, RollbackFailure
from .metrics import CEILING_TRIPS, COMMITS

if TYPE_CHECKING:
    from .dialects.base import Dialect

logger = logging.getLogger(__name__)

MAX_INSERTS = "max_inserts"
MAX_DELETES = "max_deletes"


@dataclass
class TransactionState:
    """Counters for one client. ``hit_max_*`` latch the first ceiling trip."""

    pending: int = 0
    commits: int = 0
    inserts: int = 0
    deletes: int = 0
    hit_max_inserts: bool = False
    hit_max_deletes: bool = False


class BackpressureController:
    """Commit batching and ceiling enforcement for one client."""

    def __init__(self, config: EndpointConfig, dialect: "Dialect", connection: Any):
        self.config = config
        self.dialect = dialect
        self.connection = connection
        self.state = TransactionState()

    @property
    def _physical(self) -> bool:
        """Whether commits/rollbacks reach the database."""
        return self.config.is_destination and not self.config.dry_run

    def check_ceiling(self, ceiling: str) -> None:
        """
        Refuse a destructive operation once its ceiling is met.

        Raises:
            CeilingTripped: If the ceiling is reached and force is not set
        """
        if ceiling == MAX_INSERTS:
            limit, done = self.config.max_inserts, self.state.inserts
        else:
            limit, done = self.config.max_deletes, self.state.deletes

        if self.config.force or not limit or done < limit:
            return

        latch = f"hit_{ceiling}"
        if not getattr(self.state, latch):
            setattr(self.state, latch, True)
            CEILING_TRIPS.labels(table=self.config.table, ceiling=ceiling).inc()
            add_span_event("tablesync.ceiling_tripped", ceiling=ceiling, limit=limit)
            logger.warning(f"{ceiling.replace('_', ' ')} reached ({limit}) on {self.config.table}")

        if self._physical:
            logger.info(f"Rolling back uncommitted changes on {self.config.table}")
            try:
                self.connection.rollback()
            except self.dialect.driver_errors as err:
                logger.error(f"Rollback after {ceiling} failed on {self.config.table}: {err}")

        raise CeilingTripped(ceiling, limit)

    def record_insert(self) -> None:
        self.state.pending += 1
        self.state.inserts += 1

    def record_delete(self) -> None:
        self.state.pending += 1
        self.state.deletes += 1

    def record_unique_delete(self, affected: int) -> None:
        # one pending unit per call, however many keys matched
        if affected:
            self.state.pending += 1

    def commit(self, reason: str) -> None:
        """
        Commit uncommitted work and count it.

        Raises:
            CommitFailure: If the database rejects the commit
        """
        with trace_operation("tablesync.commit", table=self.config.table, reason=reason):
            if self._physical:
                try:
                    self.connection.commit()
                except self.dialect.driver_errors as err:
                    raise CommitFailure(f"unable to commit - {err}") from err
            self.state.pending = 0
            self.state.commits += 1
            COMMITS.labels(table=self.config.table).inc()

    def check_pending(self) -> bool:
        """
        Commit when pending work exceeds the batch threshold.

        Returns:
            True if a commit was issued (or simulated in dry-run)
        """
        if not self.config.is_destination or self.state.pending <= self.config.commit_threshold:
            return False

        logger.debug(f"{self.state.pending} pending changes on {self.config.table}, committing")
        self.commit("batch")
        return True

    def roll_back(self) -> None:
        """
        Discard uncommitted work and clear ``pending``.

        Nothing reaches the database for sources and dry runs.

        Raises:
            RollbackFailure: If the database rejects the rollback
        """
        if not self.config.is_destination:
            return
        if self._physical:
            try:
                self.connection.rollback()
            except self.dialect.driver_errors as err:
                raise RollbackFailure(f"unable to roll back - {err}") from err
        self.state.pending = 0

    def finalize(self, error_latched: bool) -> bool:
        """
        Issue the final commit for pending work unless an error is latched.

        With an error latched, pending work is rolled back so that
        restoring autocommit afterwards cannot commit it.

        Returns:
            True if a final commit was issued

        Raises:
            CommitFailure: If the final commit is rejected
            RollbackFailure: If discarding latched work is rejected
        """
        if not self.state.pending or not self._physical:
            return False
        if error_latched:
            logger.warning(
                f"Discarding {self.state.pending} pending changes on {self.config.table} after an error"
            )
            self.roll_back()
            return False
        logger.debug(f"{self.state.pending} pending changes on {self.config.table}, issuing final commit")
        self.commit("close")
        return True
