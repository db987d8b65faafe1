"""
SQLite driver for relite.

Opens connections, hands out query runners and owns the SQLite-specific
formatting concerns: identifier escaping and logical type mapping.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .connection import ConnectionConfig, DatabaseConnection
from .logger import QueryLogger
from .query_runner import SqliteQueryRunner
from ..exceptions import DataTypeNotSupportedError
from ..schema.descriptors import MappedType


logger = logging.getLogger(__name__)


class SqliteDriver:
    """Creates query runners bound to a SQLite database."""

    def __init__(
        self,
        config: ConnectionConfig,
        query_logger: Optional[QueryLogger] = None,
    ):
        self.config = config
        self.query_logger = query_logger or QueryLogger()

    async def create_query_runner(self) -> SqliteQueryRunner:
        """Open a dedicated connection and wrap it in a query runner."""
        connection = await DatabaseConnection.open(self.config)
        return SqliteQueryRunner(connection, self, self.query_logger)

    @asynccontextmanager
    async def query_runner(self) -> AsyncIterator[SqliteQueryRunner]:
        """Query runner released on exit."""
        runner = await self.create_query_runner()
        async with runner:
            yield runner

    def escape_table_name(self, table_name: str) -> str:
        return '"' + table_name + '"'

    def escape_column_name(self, column_name: str) -> str:
        return '"' + column_name + '"'

    def escape_alias(self, alias: str) -> str:
        return '"' + alias + '"'

    def normalize_type(self, column_type: MappedType) -> str:
        """Map a logical column type to the type name used in DDL."""
        data_type = column_type.data_type.lower()

        if data_type == "string":
            return f"character varying({column_type.length or 255})"
        elif data_type == "text":
            return "text"
        elif data_type == "boolean":
            return "boolean"
        elif data_type in ("integer", "int"):
            return "integer"
        elif data_type == "smallint":
            return "smallint"
        elif data_type == "bigint":
            return "bigint"
        elif data_type == "float":
            return "real"
        elif data_type in ("double", "number"):
            return "double precision"
        elif data_type == "decimal":
            if column_type.precision and column_type.scale:
                return f"decimal({column_type.precision},{column_type.scale})"
            elif column_type.scale:
                return f"decimal({column_type.scale})"
            elif column_type.precision:
                return f"decimal({column_type.precision})"
            return "decimal"
        elif data_type == "date":
            return "date"
        elif data_type == "time":
            if column_type.timezone:
                return "time with time zone"
            return "time without time zone"
        elif data_type == "datetime":
            if column_type.timezone:
                return "timestamp with time zone"
            return "timestamp without time zone"
        elif data_type == "json":
            return "json"
        elif data_type == "simple_array":
            if column_type.length:
                return f"character varying({column_type.length})"
            return "text"

        raise DataTypeNotSupportedError(column_type.data_type, "SQLite")
