"""
Query runner for relite.

Runs queries on a single SQLite connection and exposes the schema
operations. Structural changes (columns, primary keys, foreign keys) are
all carried out by rebuilding the table, see ``relite.schema.recreation``.

Composite primary keys together with an autoincrement column are not
supported by SQLite and fail when the table is created.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

from .connection import DatabaseConnection
from .introspection import SchemaIntrospector
from .logger import QueryLogger
from ..exceptions import (
    QueryFailedError,
    QueryRunnerAlreadyReleasedError,
    TransactionAlreadyStartedError,
    TransactionNotStartedError,
)
from ..schema.ddl import DdlBuilder
from ..schema.descriptors import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    MappedType,
    TableSchema,
)
from ..schema.naming import NamingStrategy
from ..schema.recreation import RecreationResult, TableRecreator

if TYPE_CHECKING:
    from .driver import SqliteDriver


logger = logging.getLogger(__name__)


Row = Dict[str, Any]


class RunnerState(str, Enum):
    """Lifecycle of a query runner."""

    ACTIVE = "active"
    RELEASED = "released"


@dataclass
class ExecutionResult:
    """Result of a statement that returns no rows."""

    last_insert_id: Optional[int] = None
    rows_affected: int = -1


@dataclass
class ColumnChange:
    """A column to be replaced by a new definition."""

    old_column: ColumnSchema
    new_column: ColumnSchema


class SqliteQueryRunner:
    """Runs queries and schema operations on one SQLite connection."""

    def __init__(
        self,
        database_connection: DatabaseConnection,
        driver: "SqliteDriver",
        query_logger: Optional[QueryLogger] = None,
    ):
        self.database_connection = database_connection
        self.driver = driver
        self.query_logger = query_logger or QueryLogger()
        self.state = RunnerState.ACTIVE

        self.builder = DdlBuilder(driver)
        self.introspector = SchemaIntrospector(self)
        self.recreator = TableRecreator(self, self.builder)

    @property
    def is_released(self) -> bool:
        return self.state == RunnerState.RELEASED

    def _ensure_active(self) -> None:
        if self.state == RunnerState.RELEASED:
            raise QueryRunnerAlreadyReleasedError()

    async def __aenter__(self) -> "SqliteQueryRunner":
        self._ensure_active()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if not self.is_released:
            await self.release()

    # ------------------------------------------------------------------
    # Lifecycle and transactions
    # ------------------------------------------------------------------

    async def release(self) -> None:
        """Release the connection; the runner rejects every call afterwards."""
        self._ensure_active()
        self.state = RunnerState.RELEASED
        if self.database_connection.release_callback:
            await self.database_connection.release_callback()

    async def clear_database(self) -> None:
        """Remove all tables from the connected database."""
        self._ensure_active()

        drop_queries = await self.fetch(
            "SELECT 'DROP TABLE \"' || name || '\";' AS query FROM sqlite_master "
            "WHERE type = 'table' AND name != 'sqlite_sequence'"
        )
        await asyncio.gather(*(self.query(row["query"]) for row in drop_queries))

    async def begin_transaction(self) -> None:
        self._ensure_active()
        if self.database_connection.is_transaction_active:
            raise TransactionAlreadyStartedError()

        await self.query("BEGIN TRANSACTION")
        self.database_connection.is_transaction_active = True

    async def commit_transaction(self) -> None:
        self._ensure_active()
        if not self.database_connection.is_transaction_active:
            raise TransactionNotStartedError()

        await self.query("COMMIT")
        self.database_connection.is_transaction_active = False

    async def rollback_transaction(self) -> None:
        self._ensure_active()
        if not self.database_connection.is_transaction_active:
            raise TransactionNotStartedError()

        await self.query("ROLLBACK")
        self.database_connection.is_transaction_active = False

    def is_transaction_active(self) -> bool:
        return self.database_connection.is_transaction_active

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    async def query(
        self, query: str, parameters: Optional[Sequence[Any]] = None
    ) -> Union[List[Row], ExecutionResult]:
        """Execute a statement.

        Returns the rows as dicts when the statement produces a result set,
        otherwise an ExecutionResult with the last insert id and row count.
        Engine failures are logged and raised as QueryFailedError.
        """
        self._ensure_active()

        parameters = list(parameters or [])
        self.query_logger.log_query(query, parameters)
        try:
            async with self.database_connection.connection.execute(
                query, parameters
            ) as cursor:
                if cursor.description is not None:
                    rows = await cursor.fetchall()
                    return [dict(row) for row in rows]
                return ExecutionResult(
                    last_insert_id=cursor.lastrowid, rows_affected=cursor.rowcount
                )
        except sqlite3.Error as e:
            self.query_logger.log_failed_query(query, parameters)
            self.query_logger.log_query_error(e)
            raise QueryFailedError(query, parameters, cause=e) from e

    async def fetch(
        self, query: str, parameters: Optional[Sequence[Any]] = None
    ) -> List[Row]:
        """Execute a statement and always return a list of rows."""
        result = await self.query(query, parameters)
        return result if isinstance(result, list) else []

    # ------------------------------------------------------------------
    # Data manipulation
    # ------------------------------------------------------------------

    async def insert(
        self,
        table_name: str,
        values: Dict[str, Any],
        generated_column: Optional[ColumnSchema] = None,
    ) -> Optional[int]:
        """Insert a row; returns the new rowid when a generated column is given."""
        self._ensure_active()

        keys = list(values.keys())
        columns = ", ".join(self.driver.escape_column_name(key) for key in keys)
        placeholders = ", ".join("?" for _ in keys)
        sql = (
            f"INSERT INTO {self.driver.escape_table_name(table_name)}({columns}) "
            f"VALUES ({placeholders})"
        )
        result = await self.query(sql, [values[key] for key in keys])

        if generated_column is not None and isinstance(result, ExecutionResult):
            return result.last_insert_id
        return None

    async def update(
        self,
        table_name: str,
        values: Dict[str, Any],
        conditions: Dict[str, Any],
    ) -> None:
        """Update rows matching every condition."""
        self._ensure_active()

        update_values = ", ".join(self._parametrize(values))
        condition_string = " AND ".join(self._parametrize(conditions))
        sql = f"UPDATE {self.driver.escape_table_name(table_name)} SET {update_values}"
        if condition_string:
            sql += f" WHERE {condition_string}"
        parameters = list(values.values()) + list(conditions.values())
        await self.query(sql, parameters)

    async def delete(self, table_name: str, conditions: Dict[str, Any]) -> None:
        """Delete rows matching every condition."""
        self._ensure_active()

        condition_string = " AND ".join(self._parametrize(conditions))
        sql = f"DELETE FROM {self.driver.escape_table_name(table_name)}"
        if condition_string:
            sql += f" WHERE {condition_string}"
        await self.query(sql, list(conditions.values()))

    async def insert_into_closure_table(
        self, table_name: str, new_entity_id: Any, parent_id: Any, has_level: bool
    ) -> int:
        """Insert the ancestor rows of a new tree node; returns its level."""
        self._ensure_active()

        table = self.driver.escape_table_name(table_name)
        if has_level:
            sql = (
                f"INSERT INTO {table}(ancestor, descendant, level) "
                f"SELECT ancestor, ?, level + 1 FROM {table} WHERE descendant = ? "
                f"UNION ALL SELECT ?, ?, 1"
            )
        else:
            sql = (
                f"INSERT INTO {table}(ancestor, descendant) "
                f"SELECT ancestor, ? FROM {table} WHERE descendant = ? "
                f"UNION ALL SELECT ?, ?"
            )
        await self.query(sql, [new_entity_id, parent_id, new_entity_id, new_entity_id])

        if not has_level:
            return 1
        rows = await self.fetch(
            f"SELECT MAX(level) AS level FROM {table} WHERE descendant = ?", [parent_id]
        )
        if rows and rows[0]["level"]:
            return int(rows[0]["level"]) + 1
        return 1

    def _parametrize(self, values: Dict[str, Any]) -> List[str]:
        return [f"{self.driver.escape_column_name(key)} = ?" for key in values]

    # ------------------------------------------------------------------
    # Schema introspection
    # ------------------------------------------------------------------

    async def load_schema_tables(
        self,
        table_names: Sequence[str],
        naming_strategy: Optional[NamingStrategy] = None,
    ) -> List[TableSchema]:
        """Load descriptors of the given tables from the catalog."""
        self._ensure_active()
        return await self.introspector.load_schema_tables(table_names, naming_strategy)

    async def has_table(self, table_name: str) -> bool:
        self._ensure_active()
        return await self.introspector.has_table(table_name)

    # ------------------------------------------------------------------
    # Schema operations
    # ------------------------------------------------------------------

    async def create_table(self, table: TableSchema) -> None:
        """Create a table from its descriptor, together with its indices."""
        self._ensure_active()

        await self.query(self.builder.build_create_table(table, if_not_exists=True))
        for index in table.indices:
            await self.create_index(index)

    async def create_columns(
        self, table: TableSchema, columns: Sequence[ColumnSchema]
    ) -> RecreationResult:
        """Add columns to the table."""
        self._ensure_active()

        new_table = table.clone()
        new_table.add_columns(column.clone() for column in columns)
        return await self.recreator.recreate(new_table)

    async def change_columns(
        self,
        table: TableSchema,
        changed_columns: Sequence[Union[ColumnChange, Tuple[ColumnSchema, ColumnSchema]]],
    ) -> RecreationResult:
        """Replace column definitions; each change is (old column, new column).

        Data follows column names, so a renamed column starts out empty.
        """
        self._ensure_active()

        new_table = table.clone()
        for change in changed_columns:
            if isinstance(change, ColumnChange):
                old_column, new_column = change.old_column, change.new_column
            else:
                old_column, new_column = change
            new_table.replace_column(old_column.name, new_column.clone())
        return await self.recreator.recreate(new_table)

    async def drop_columns(
        self, table: TableSchema, columns: Sequence[Union[ColumnSchema, str]]
    ) -> RecreationResult:
        """Drop columns, along with keys and indices that use them."""
        self._ensure_active()

        new_table = table.clone()
        new_table.remove_columns(columns)
        return await self.recreator.recreate(new_table)

    async def update_primary_keys(self, table: TableSchema) -> RecreationResult:
        """Rebuild the table so its primary key matches the column flags."""
        self._ensure_active()

        return await self.recreator.recreate(table.clone())

    async def create_foreign_keys(
        self, table: TableSchema, foreign_keys: Sequence[ForeignKeySchema]
    ) -> RecreationResult:
        self._ensure_active()

        new_table = table.clone()
        new_table.add_foreign_keys(foreign_keys)
        return await self.recreator.recreate(new_table)

    async def drop_foreign_keys(
        self,
        table: TableSchema,
        foreign_keys: Sequence[Union[ForeignKeySchema, str]],
    ) -> RecreationResult:
        self._ensure_active()

        new_table = table.clone()
        new_table.remove_foreign_keys(foreign_keys)
        return await self.recreator.recreate(new_table)

    async def create_index(self, index: IndexSchema) -> None:
        self._ensure_active()
        await self.query(self.builder.build_create_index(index))

    async def drop_index(self, table_name: str, index_name: str) -> None:
        self._ensure_active()
        await self.query(self.builder.build_drop_index(index_name))

    def normalize_type(self, column_type: MappedType) -> str:
        """Type name used in DDL for a logical column type."""
        self._ensure_active()
        return self.driver.normalize_type(column_type)
