"""
Unit tests for the relite CLI interface.
"""

import logging
import sqlite3
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from relite import __version__
from relite.cli import handle_errors, main
from relite.database.connection import ConnectionConfig
from relite.exceptions import SchemaError


@pytest.fixture
def cli_runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop the handlers the CLI installs on the package logger."""
    yield
    logger = logging.getLogger("relite")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def database(seed_database, db_path):
    seed_database(
        'CREATE TABLE "users" ("id" integer PRIMARY KEY AUTOINCREMENT, '
        '"email" text UNIQUE, "name" text NOT NULL, "status" text DEFAULT \'new\')',
        'CREATE INDEX "idx_users_name" ON "users"("name")',
        'CREATE TABLE "posts" ("id" integer PRIMARY KEY, "user_id" integer, '
        'FOREIGN KEY("user_id") REFERENCES "users"("id") ON DELETE CASCADE)',
        "INSERT INTO users (email, name) VALUES ('a@example.com', 'Ann'), ('b@example.com', 'Bob')",
    )
    return db_path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "relite.yaml"
    path.write_text(
        """
database:
  path: app.db
  timeout: 3
logging:
  level: WARNING
"""
    )
    return str(path)


def table_columns(db_path, table):
    connection = sqlite3.connect(db_path)
    try:
        return [row[1] for row in connection.execute(f'PRAGMA table_info("{table}")')]
    finally:
        connection.close()


class TestCLIMain:
    """Test main CLI functionality."""

    def test_cli_help(self, cli_runner):
        result = cli_runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "SQLite schema introspection and table recreation" in result.output

    def test_cli_version(self, cli_runner):
        result = cli_runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_commands_listed(self, cli_runner):
        result = cli_runner.invoke(main, ["--help"])
        for command in ("inspect", "show-ddl", "drop-column", "clear", "validate-config"):
            assert command in result.output


class TestInspectCommand:
    """Test the inspect command."""

    def test_inspect_all_tables(self, cli_runner, database):
        result = cli_runner.invoke(main, ["inspect", database])

        assert result.exit_code == 0
        assert "Table posts" in result.output
        assert "Table users" in result.output
        assert "autoincrement" in result.output
        assert "idx_users_name" in result.output
        assert "on delete CASCADE" in result.output

    def test_inspect_selected_table(self, cli_runner, database):
        result = cli_runner.invoke(main, ["inspect", database, "posts"])

        assert result.exit_code == 0
        assert "Table posts" in result.output
        assert "Table users" not in result.output

    def test_inspect_unknown_table(self, cli_runner, database):
        result = cli_runner.invoke(main, ["inspect", database, "missing"])

        assert result.exit_code == 0
        assert "No tables found" in result.output

    def test_inspect_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(main, ["inspect", str(tmp_path / "missing.db")])
        assert result.exit_code != 0


class TestShowDdlCommand:
    """Test the show-ddl command."""

    def test_show_ddl(self, cli_runner, database):
        result = cli_runner.invoke(main, ["show-ddl", database, "users"])

        assert result.exit_code == 0
        assert 'CREATE TABLE "users"' in result.output
        assert "AUTOINCREMENT" in result.output
        assert 'CREATE INDEX "idx_users_name"' in result.output

    def test_show_ddl_unknown_table(self, cli_runner, database):
        result = cli_runner.invoke(main, ["show-ddl", database, "missing"])

        assert result.exit_code == 1
        assert "Table 'missing' not found" in result.output


class TestDropColumnCommand:
    """Test the drop-column command."""

    def test_drop_column(self, cli_runner, database, read_rows):
        result = cli_runner.invoke(main, ["drop-column", database, "users", "status"])

        assert result.exit_code == 0
        assert "Rebuilt table users" in result.output
        assert table_columns(database, "users") == ["id", "email", "name"]
        assert read_rows("SELECT id, name FROM users ORDER BY id") == [
            {"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"},
        ]

    def test_drop_unknown_column(self, cli_runner, database):
        result = cli_runner.invoke(main, ["drop-column", database, "users", "nope"])

        assert result.exit_code == 1
        assert "has no column(s): nope" in result.output
        assert table_columns(database, "users") == ["id", "email", "name", "status"]

    def test_drop_column_requires_columns(self, cli_runner, database):
        result = cli_runner.invoke(main, ["drop-column", database, "users"])
        assert result.exit_code != 0


class TestClearCommand:
    """Test the clear command."""

    def test_clear_confirmed(self, cli_runner, database, read_rows):
        result = cli_runner.invoke(main, ["clear", database, "--yes"])

        assert result.exit_code == 0
        assert "All tables dropped" in result.output
        assert read_rows(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        ) == []

    def test_clear_declined(self, cli_runner, database):
        result = cli_runner.invoke(main, ["clear", database], input="n\n")

        assert result.exit_code == 0
        assert table_columns(database, "users") == ["id", "email", "name", "status"]


class TestValidateConfigCommand:
    """Test the validate-config command."""

    def test_validate_config(self, cli_runner, config_file):
        result = cli_runner.invoke(main, ["validate-config", "-c", config_file])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "app.db" in result.output

    def test_validate_invalid_config(self, cli_runner, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("logging:\n  level: LOUD\n")

        result = cli_runner.invoke(main, ["validate-config", "-c", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_global_config_option(self, cli_runner, config_file, database):
        result = cli_runner.invoke(main, ["-c", config_file, "inspect", database, "users"])

        assert result.exit_code == 0
        assert logging.getLogger("relite").level == logging.WARNING

    def test_database_settings_reach_connection(self, cli_runner, config_file, database):
        """Test that configured settings apply with the path taken from the argument."""
        with patch.object(
            ConnectionConfig,
            "from_database_config",
            wraps=ConnectionConfig.from_database_config,
        ) as from_database_config:
            result = cli_runner.invoke(main, ["-c", config_file, "inspect", database])

        assert result.exit_code == 0
        [database_config] = from_database_config.call_args.args
        assert database_config.path == database
        assert database_config.timeout == 3


class TestHandleErrors:
    """Test the error handling decorator."""

    def test_relite_error_exits(self):
        @handle_errors
        def failing():
            raise SchemaError("broken table")

        with pytest.raises(SystemExit) as exc_info:
            failing()
        assert exc_info.value.code == 1

    def test_keyboard_interrupt(self):
        @handle_errors
        def interrupted():
            raise KeyboardInterrupt()

        with pytest.raises(SystemExit) as exc_info:
            interrupted()
        assert exc_info.value.code == 0

    def test_passes_result_through(self):
        @handle_errors
        def succeeding():
            return 42

        assert succeeding() == 42
