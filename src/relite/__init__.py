"""
relite: schema introspection and table recreation for SQLite.

relite reads table structures back from the SQLite catalog and emulates
the ALTER TABLE operations SQLite lacks by rebuilding tables while
carrying their data over.
"""

__version__ = "0.1.0"
__author__ = "relite Contributors"
__email__ = "contributors@relite.dev"

from .config import ReliteConfig
from .exceptions import (
    ReliteError,
    ConfigurationError,
    DatabaseError,
    QueryFailedError,
    SchemaError,
)

__all__ = [
    "__version__",
    "ReliteConfig",
    "ReliteError",
    "ConfigurationError",
    "DatabaseError",
    "QueryFailedError",
    "SchemaError",
]
