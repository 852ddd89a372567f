"""
Unit tests for transaction bookkeeping and backpressure.
"""

import logging
from unittest.mock import MagicMock

import psycopg2
import pytest

from tablesync.config import EndpointConfig, Role
from tablesync.dialects import PostgreSQLDialect
from tablesync.errors import CeilingTripped, CommitFailure, RollbackFailure
from tablesync.transaction import (
    MAX_DELETES,
    MAX_INSERTS,
    BackpressureController,
    TransactionState,
)


def _controller(**overrides) -> tuple[BackpressureController, MagicMock]:
    overrides.setdefault("role", Role.DESTINATION)
    config = EndpointConfig(table="accounts", **overrides)
    connection = MagicMock()
    return BackpressureController(config, PostgreSQLDialect(), connection), connection


class TestTransactionState:
    """Test TransactionState defaults."""

    def test_initial_state(self):
        state = TransactionState()

        assert state.pending == 0
        assert state.commits == 0
        assert state.inserts == 0
        assert state.deletes == 0
        assert state.hit_max_inserts is False
        assert state.hit_max_deletes is False


class TestRecording:
    """Test counter updates."""

    def test_insert_and_delete(self):
        controller, _ = _controller()

        controller.record_insert()
        controller.record_insert()
        controller.record_delete()

        assert controller.state.inserts == 2
        assert controller.state.deletes == 1
        assert controller.state.pending == 3

    def test_unique_delete_counts_once(self):
        controller, _ = _controller()

        controller.record_unique_delete(5)
        controller.record_unique_delete(0)

        assert controller.state.pending == 1
        assert controller.state.deletes == 0


class TestCheckPending:
    """Test batch commits."""

    def test_commits_only_above_threshold(self):
        controller, connection = _controller(commit_threshold=3)
        for _ in range(3):
            controller.record_insert()

        assert controller.check_pending() is False
        connection.commit.assert_not_called()

        controller.record_insert()
        assert controller.check_pending() is True

        connection.commit.assert_called_once()
        assert controller.state.pending == 0
        assert controller.state.commits == 1

    def test_source_never_commits(self):
        controller, connection = _controller(role=Role.SOURCE, commit_threshold=1)
        controller.state.pending = 10

        assert controller.check_pending() is False
        connection.commit.assert_not_called()

    def test_dry_run_advances_counters_without_commit(self):
        controller, connection = _controller(dry_run=True, commit_threshold=1)
        controller.record_insert()
        controller.record_insert()

        assert controller.check_pending() is True

        connection.commit.assert_not_called()
        assert controller.state.pending == 0
        assert controller.state.commits == 1

    def test_commit_failure(self):
        controller, connection = _controller(commit_threshold=1)
        connection.commit.side_effect = psycopg2.OperationalError("server closed the connection")
        controller.record_insert()
        controller.record_insert()

        with pytest.raises(CommitFailure, match="server closed the connection"):
            controller.check_pending()

        assert controller.state.pending == 2
        assert controller.state.commits == 0


class TestCeilings:
    """Test ceiling enforcement."""

    def test_below_ceiling(self):
        controller, connection = _controller(max_inserts=2)
        controller.record_insert()

        controller.check_ceiling(MAX_INSERTS)

        connection.rollback.assert_not_called()

    def test_zero_or_none_disables(self):
        controller, _ = _controller(max_inserts=0)
        controller.state.inserts = 1000

        controller.check_ceiling(MAX_INSERTS)
        controller.check_ceiling(MAX_DELETES)

    def test_trip_latches_and_rolls_back(self, caplog):
        controller, connection = _controller(max_deletes=1)
        controller.record_delete()

        with caplog.at_level(logging.WARNING, logger="tablesync.transaction"):
            for _ in range(2):
                with pytest.raises(CeilingTripped) as exc_info:
                    controller.check_ceiling(MAX_DELETES)

        assert exc_info.value.ceiling == MAX_DELETES
        assert exc_info.value.limit == 1
        assert str(exc_info.value) == "max deletes reached (1)"
        assert controller.state.hit_max_deletes is True
        assert controller.state.hit_max_inserts is False
        assert connection.rollback.call_count == 2
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1

    def test_force_bypasses(self):
        controller, connection = _controller(max_inserts=1, force=True)
        controller.record_insert()

        controller.check_ceiling(MAX_INSERTS)

        assert controller.state.hit_max_inserts is False
        connection.rollback.assert_not_called()

    def test_dry_run_trip_skips_rollback(self):
        controller, connection = _controller(max_inserts=1, dry_run=True)
        controller.record_insert()

        with pytest.raises(CeilingTripped):
            controller.check_ceiling(MAX_INSERTS)

        assert controller.state.hit_max_inserts is True
        connection.rollback.assert_not_called()

    def test_rollback_failure_still_trips(self):
        controller, connection = _controller(max_inserts=1)
        connection.rollback.side_effect = psycopg2.InterfaceError("connection already closed")
        controller.record_insert()

        with pytest.raises(CeilingTripped):
            controller.check_ceiling(MAX_INSERTS)


class TestRollBackAndFinalize:
    """Test explicit rollback and the final commit."""

    def test_roll_back_destination(self):
        controller, connection = _controller()
        controller.record_insert()

        controller.roll_back()

        connection.rollback.assert_called_once()
        assert controller.state.pending == 0
        assert controller.state.inserts == 1

    def test_dry_run_roll_back_clears_pending(self):
        controller, connection = _controller(dry_run=True)
        controller.record_delete()

        controller.roll_back()

        connection.rollback.assert_not_called()
        assert controller.state.pending == 0

    def test_roll_back_source_and_dry_run_are_noops(self):
        for overrides in ({"role": Role.SOURCE}, {"dry_run": True}):
            controller, connection = _controller(**overrides)
            controller.roll_back()
            connection.rollback.assert_not_called()

    def test_roll_back_failure(self):
        controller, connection = _controller()
        connection.rollback.side_effect = psycopg2.OperationalError("terminated")

        with pytest.raises(RollbackFailure, match="terminated"):
            controller.roll_back()

    def test_finalize_commits_pending(self):
        controller, connection = _controller()
        controller.record_insert()

        assert controller.finalize(error_latched=False) is True

        connection.commit.assert_called_once()
        assert controller.state.commits == 1

    def test_finalize_skips(self):
        cases = [
            ({}, 0, False),
            ({"dry_run": True}, 1, False),
            ({"dry_run": True}, 1, True),
            ({"role": Role.SOURCE}, 1, False),
        ]
        for overrides, pending, latched in cases:
            controller, connection = _controller(**overrides)
            controller.state.pending = pending

            assert controller.finalize(error_latched=latched) is False
            connection.commit.assert_not_called()
            connection.rollback.assert_not_called()

    def test_finalize_with_latched_error_rolls_back(self, caplog):
        controller, connection = _controller()
        controller.record_insert()

        assert controller.finalize(error_latched=True) is False

        connection.commit.assert_not_called()
        connection.rollback.assert_called_once()
        assert controller.state.pending == 0
        assert "Discarding 1 pending changes on accounts" in caplog.text

    def test_finalize_rollback_failure(self):
        controller, connection = _controller()
        connection.rollback.side_effect = psycopg2.InterfaceError("connection already closed")
        controller.record_insert()

        with pytest.raises(RollbackFailure, match="already closed"):
            controller.finalize(error_latched=True)

        assert controller.state.pending == 1
