"""
Pytest configuration and fixtures for synchronization client tests.

Provides an in-memory SQLite dialect so client behavior (ordering,
NULL-safe deletes, masking, commit batching) runs against a real
database engine without any server.
"""

import sqlite3
from collections.abc import Mapping
from typing import Any

import pytest

from tablesync.config import EndpointConfig, Role
from tablesync.dialects.base import STRING_LIKE, Dialect


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class SQLiteDialect(Dialect):
    """
    SQLite stand-in for the server dialects.

    sqlite3 reports no type codes, so declared types come from
    ``PRAGMA table_info`` keyed by column name.
    """

    driver_errors = (sqlite3.Error,)
    string_patterns = STRING_LIKE + ("TEXT",)

    def load_type_names(self, connection: Any, table: str) -> Mapping[Any, str]:
        cursor = connection.cursor()
        try:
            cursor.execute(f"PRAGMA table_info({table})")
            return {row[1].lower(): row[2].upper() for row in cursor.fetchall()}
        finally:
            cursor.close()

    def type_name(self, type_names: Mapping[Any, str], column: str, type_code: Any) -> str:
        return type_names.get(column, "")

    def placeholder(self, index: int) -> str:
        return "?"

    def single_row_delete(self, table: str, where: str) -> str:
        return f"DELETE FROM {table} WHERE rowid IN (SELECT rowid FROM {table} WHERE {where} LIMIT 1)"

    def set_autocommit(self, connection: Any, enabled: bool) -> None:
        connection.autocommit_calls.append(enabled)
        connection.events.append(f"autocommit={enabled}")


class CountingConnection:
    """sqlite3 connection wrapper recording transaction calls, in order."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.commit_calls = 0
        self.rollback_calls = 0
        self.autocommit_calls: list[bool] = []
        self.events: list[str] = []

    def cursor(self):
        return self.conn.cursor()

    def execute(self, sql: str, params=()):
        return self.conn.execute(sql, params)

    def commit(self) -> None:
        self.commit_calls += 1
        self.events.append("commit")
        self.conn.commit()

    def rollback(self) -> None:
        self.rollback_calls += 1
        self.events.append("rollback")
        self.conn.rollback()

    def close(self) -> None:
        self.conn.close()


PEOPLE_ROWS = [
    (1, "Alice", "secret"),
    (2, "Bob", None),
    (3, None, "note"),
]


@pytest.fixture
def sqlite_dialect() -> SQLiteDialect:
    return SQLiteDialect()


@pytest.fixture
def people_db():
    """In-memory database holding a small ``people`` table."""
    conn = CountingConnection(sqlite3.connect(":memory:"))
    conn.execute("CREATE TABLE people (id INTEGER, name VARCHAR(50), note TEXT)")
    conn.conn.executemany("INSERT INTO people VALUES (?, ?, ?)", PEOPLE_ROWS)
    conn.conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def empty_people_db():
    conn = CountingConnection(sqlite3.connect(":memory:"))
    conn.execute("CREATE TABLE people (id INTEGER, name VARCHAR(50), note TEXT)")
    conn.conn.commit()
    yield conn
    conn.close()


def _people_config(role: Role, overrides: dict) -> EndpointConfig:
    return EndpointConfig(table=overrides.pop("table", "people"), role=role, **overrides)


@pytest.fixture
def source_config():
    """Factory for source configs over the people table."""
    return lambda **overrides: _people_config(Role.SOURCE, overrides)


@pytest.fixture
def dest_config():
    """Factory for destination configs over the people table."""
    return lambda **overrides: _people_config(Role.DESTINATION, overrides)
