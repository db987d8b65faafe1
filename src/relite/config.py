"""
Configuration system for relite using Pydantic.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError


class DatabaseConfig(BaseModel):
    """SQLite database configuration."""

    path: str = Field(":memory:", description="Database file path")
    timeout: float = Field(5.0, description="Busy timeout in seconds")
    foreign_keys: bool = Field(
        False, description="Enable foreign key enforcement (PRAGMA foreign_keys)"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")
    log_queries: bool = Field(True, description="Log every executed query")
    log_failed_queries: bool = Field(True, description="Log failed queries and errors")

    def configure(self, logger_name: str = "relite") -> logging.Logger:
        """Install a handler on the package logger according to this config."""
        logger = logging.getLogger(logger_name)
        logger.setLevel(self.level)

        if self.file:
            handler: logging.Handler = logging.handlers.RotatingFileHandler(
                self.file, maxBytes=self.max_size, backupCount=self.backup_count
            )
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(self.format))

        for existing in list(logger.handlers):
            logger.removeHandler(existing)
        logger.addHandler(handler)
        return logger


class ReliteConfig(BaseSettings):
    """Main relite configuration."""

    debug: bool = Field(False, description="Enable debug mode")

    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_prefix="RELITE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReliteConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True), f, default_flow_style=False, indent=2
            )
