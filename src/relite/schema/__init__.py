"""
Schema management package for relite.

This package provides:
- Table, column, key and index descriptors
- DDL rendering from descriptors
- Autoincrement column detection from creation text
- Table recreation emulating ALTER TABLE
"""

from .descriptors import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    MappedType,
    PrimaryKeySchema,
    RawType,
    TableSchema,
)
from .autoincrement import find_autoincrement_column
from .ddl import DdlBuilder
from .naming import DefaultNamingStrategy, NamingStrategy
from .recreation import RecreationResult, RecreationStage, TableRecreator

__all__ = [
    "ColumnSchema",
    "ForeignKeySchema",
    "IndexSchema",
    "MappedType",
    "PrimaryKeySchema",
    "RawType",
    "TableSchema",
    "find_autoincrement_column",
    "DdlBuilder",
    "DefaultNamingStrategy",
    "NamingStrategy",
    "RecreationResult",
    "RecreationStage",
    "TableRecreator",
]
