"""
Database connection management for relite.

Wraps a single aiosqlite connection together with the transaction flag
and the callback used to hand the connection back when a query runner
is released.
"""

import logging
import sqlite3
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

import aiosqlite
from pydantic import BaseModel, Field, field_validator

from ..config import DatabaseConfig
from ..exceptions import ConfigurationError, DatabaseConnectionError


logger = logging.getLogger(__name__)


ReleaseCallback = Callable[[], Awaitable[None]]


class ConnectionConfig(BaseModel):
    """SQLite connection configuration."""

    path: str = Field(":memory:", description="Database file path")
    timeout: float = Field(5.0, description="Busy timeout in seconds")
    foreign_keys: bool = Field(False, description="Enable foreign key enforcement")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        if not v or not v.strip():
            raise ValueError("Database path is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Create configuration from a ``sqlite:///path`` URL."""
        parsed = urlparse(url)

        if parsed.scheme != "sqlite":
            raise ConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        path = parsed.path
        # sqlite:///relative.db -> "/relative.db", sqlite:////abs.db -> "//abs.db"
        if path.startswith("/"):
            path = path[1:]

        if not path:
            path = ":memory:"

        return cls(path=path)

    @classmethod
    def from_database_config(cls, config: DatabaseConfig) -> "ConnectionConfig":
        return cls(
            path=config.path,
            timeout=config.timeout,
            foreign_keys=config.foreign_keys,
        )


class DatabaseConnection:
    """A single open SQLite connection and its transaction state."""

    def __init__(
        self,
        connection: aiosqlite.Connection,
        release_callback: Optional[ReleaseCallback] = None,
    ):
        self.connection = connection
        self.release_callback = release_callback
        self.is_transaction_active = False

    @classmethod
    async def open(cls, config: ConnectionConfig) -> "DatabaseConnection":
        """Open an autocommit connection; transactions are started explicitly."""
        try:
            logger.info(f"Opening SQLite connection to {config.path}")
            connection = await aiosqlite.connect(
                config.path, timeout=config.timeout, isolation_level=None
            )
            connection.row_factory = sqlite3.Row
            if config.foreign_keys:
                await connection.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to open SQLite connection to {config.path}: {e}")
            raise DatabaseConnectionError(
                f"Failed to open SQLite connection to {config.path}: {e}"
            ) from e

        database_connection = cls(connection)
        database_connection.release_callback = database_connection.close
        return database_connection

    async def close(self) -> None:
        logger.info("Closing SQLite connection")
        await self.connection.close()
