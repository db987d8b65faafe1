"""
Pytest configuration and shared fixtures for relite tests.

This module provides shared fixtures and utilities for testing all relite components.
"""

import sqlite3
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from relite.database.connection import ConnectionConfig
from relite.database.driver import SqliteDriver
from relite.database.query_runner import ExecutionResult, SqliteQueryRunner
from relite.schema.ddl import DdlBuilder


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def db_path(tmp_path) -> str:
    """Path of an empty SQLite database file."""
    return str(tmp_path / "relite_test.db")


@pytest.fixture
def connection_config(db_path) -> ConnectionConfig:
    """Connection configuration pointing at the temporary database."""
    return ConnectionConfig(path=db_path)


@pytest.fixture
def driver(connection_config) -> SqliteDriver:
    """SQLite driver for the temporary database."""
    return SqliteDriver(connection_config)


@pytest.fixture
def builder(driver) -> DdlBuilder:
    """DDL builder using the driver's type mapping."""
    return DdlBuilder(driver)


@pytest_asyncio.fixture
async def runner(driver) -> SqliteQueryRunner:
    """Query runner on the temporary database, released after the test."""
    query_runner = await driver.create_query_runner()
    yield query_runner
    if not query_runner.is_released:
        await query_runner.release()


@pytest.fixture
def seed_database(db_path):
    """Run raw SQL against the temporary database outside of relite."""
    def seed(*statements: str) -> None:
        connection = sqlite3.connect(db_path)
        try:
            for statement in statements:
                connection.execute(statement)
            connection.commit()
        finally:
            connection.close()
    return seed


@pytest.fixture
def read_rows(db_path):
    """Read rows from the temporary database as dicts."""
    def read(query: str) -> List[Dict[str, Any]]:
        connection = sqlite3.connect(db_path)
        connection.row_factory = sqlite3.Row
        try:
            return [dict(row) for row in connection.execute(query).fetchall()]
        finally:
            connection.close()
    return read


# ============================================================================
# Mock Fixtures
# ============================================================================

def _make_fetcher(responses: Dict[str, List[Dict[str, Any]]]) -> MagicMock:
    """Mock runner whose ``fetch`` answers by query prefix."""
    async def fetch(query: str, parameters: Optional[List[Any]] = None):
        for prefix, rows in responses.items():
            if query.startswith(prefix):
                return [dict(row) for row in rows]
        return []

    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(side_effect=fetch)
    return fetcher


@pytest.fixture
def make_fetcher():
    """Factory for mock runners answering catalog queries by prefix."""
    return _make_fetcher


@pytest.fixture
def mock_executor() -> MagicMock:
    """Statement executor recording every statement it is given."""
    executor = MagicMock()
    executor.query = AsyncMock(return_value=ExecutionResult())
    executor.fetch = AsyncMock(return_value=[])
    return executor

