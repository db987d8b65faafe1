"""
Database integration package for relite.

This package provides:
- aiosqlite connection handling
- Query runners with transaction and CRUD helpers
- Catalog introspection into table descriptors
"""

from .connection import ConnectionConfig, DatabaseConnection
from .driver import SqliteDriver
from .introspection import SchemaIntrospector
from .logger import QueryLogger
from .query_runner import SqliteQueryRunner, RunnerState, ExecutionResult, ColumnChange

__all__ = [
    "ConnectionConfig",
    "DatabaseConnection",
    "SqliteDriver",
    "SchemaIntrospector",
    "QueryLogger",
    "SqliteQueryRunner",
    "RunnerState",
    "ExecutionResult",
    "ColumnChange",
]
