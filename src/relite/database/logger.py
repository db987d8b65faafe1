"""
Query logging sink for relite.
"""

import logging
from typing import Any, List, Optional

from ..config import LoggingConfig


logger = logging.getLogger(__name__)


class QueryLogger:
    """Logs executed queries, failed queries and raw engine errors."""

    def __init__(
        self,
        log_queries: bool = True,
        log_failed_queries: bool = True,
        target: Optional[logging.Logger] = None,
    ):
        self.log_queries = log_queries
        self.log_failed_queries = log_failed_queries
        self._logger = target or logger

    @classmethod
    def from_config(cls, config: LoggingConfig) -> "QueryLogger":
        return cls(
            log_queries=config.log_queries,
            log_failed_queries=config.log_failed_queries,
        )

    def log_query(self, query: str, parameters: Optional[List[Any]] = None) -> None:
        if not self.log_queries:
            return
        if parameters:
            self._logger.debug(f"query: {query} -- parameters: {parameters}")
        else:
            self._logger.debug(f"query: {query}")

    def log_failed_query(
        self, query: str, parameters: Optional[List[Any]] = None
    ) -> None:
        if not self.log_failed_queries:
            return
        if parameters:
            self._logger.error(f"query failed: {query} -- parameters: {parameters}")
        else:
            self._logger.error(f"query failed: {query}")

    def log_query_error(self, error: Exception) -> None:
        if not self.log_failed_queries:
            return
        self._logger.error(f"error: {error}")
