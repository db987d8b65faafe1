"""
Exception classes for relite.
"""

from typing import Any, Dict, List, Optional


class ReliteError(Exception):
    """Base exception for all relite errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(ReliteError):
    """Raised when there's an error in configuration."""

    pass


class DatabaseError(ReliteError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a database connection cannot be opened or is unusable."""

    pass


class QueryFailedError(DatabaseError):
    """Raised when SQLite rejects a statement.

    The native engine error is kept as ``cause`` (and chained with ``from``).
    """

    def __init__(
        self,
        query: str,
        parameters: Optional[List[Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(f"Query failed: {query}", cause=cause)
        self.query = query
        self.parameters = list(parameters or [])


class QueryRunnerError(ReliteError):
    """Raised when a query runner is used incorrectly."""

    pass


class QueryRunnerAlreadyReleasedError(QueryRunnerError):
    """Raised when an operation is attempted on a released query runner."""

    def __init__(self) -> None:
        super().__init__(
            "Query runner already released, cannot run queries anymore"
        )


class TransactionAlreadyStartedError(QueryRunnerError):
    """Raised when a transaction is started while another one is active."""

    def __init__(self) -> None:
        super().__init__("Transaction already started for the given connection")


class TransactionNotStartedError(QueryRunnerError):
    """Raised when commit or rollback is called without an active transaction."""

    def __init__(self) -> None:
        super().__init__("Transaction is not started yet, start transaction first")


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class DataTypeNotSupportedError(SchemaError):
    """Raised when a logical column type has no SQLite type mapping."""

    def __init__(self, data_type: str, database: str = "SQLite") -> None:
        super().__init__(
            f"Data type \"{data_type}\" is not supported by {database}",
            {"data_type": data_type},
        )
        self.data_type = data_type
        self.database = database
