"""
Command-line interface for relite.
"""

import asyncio
import sys
from functools import wraps
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ReliteConfig
from .database.connection import ConnectionConfig
from .database.driver import SqliteDriver
from .database.logger import QueryLogger
from .exceptions import ReliteError, SchemaError
from .schema.ddl import index_statements
from .schema.descriptors import TableSchema


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ReliteError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    default=None,
    help="Configuration file path",
)
@click.pass_context
@handle_errors
def main(ctx, debug: bool, config: Optional[str]):
    """relite: SQLite schema introspection and table recreation."""
    ctx.ensure_object(dict)

    relite_config = ReliteConfig.from_yaml(config) if config else ReliteConfig()
    if debug:
        relite_config.debug = True
        relite_config.logging.level = "DEBUG"
    relite_config.logging.configure()

    ctx.obj["debug"] = debug
    ctx.obj["config"] = relite_config


def _create_driver(ctx: click.Context, database: str) -> SqliteDriver:
    relite_config: ReliteConfig = ctx.obj["config"]
    connection_config = ConnectionConfig.from_database_config(
        relite_config.database.model_copy(update={"path": database})
    )
    return SqliteDriver(connection_config, QueryLogger.from_config(relite_config.logging))


async def _load_table(driver: SqliteDriver, table_name: str) -> TableSchema:
    async with driver.query_runner() as runner:
        tables = await runner.load_schema_tables([table_name])
    if not tables:
        raise SchemaError(f"Table '{table_name}' not found")
    return tables[0]


@main.command()
@click.argument("database", type=click.Path(exists=True, dir_okay=False))
@click.argument("tables", nargs=-1)
@click.pass_context
@handle_errors
def inspect(ctx, database: str, tables: Tuple[str, ...]):
    """Show the structure of tables in DATABASE."""
    driver = _create_driver(ctx, database)

    async def run_inspect() -> List[TableSchema]:
        async with driver.query_runner() as runner:
            names = list(tables) or await runner.introspector.list_tables()
            return await runner.load_schema_tables(names)

    schemas = asyncio.run(run_inspect())
    if not schemas:
        console.print("[yellow]No tables found[/yellow]")
        return

    for schema in schemas:
        _display_table(schema)


@main.command("show-ddl")
@click.argument("database", type=click.Path(exists=True, dir_okay=False))
@click.argument("table")
@click.pass_context
@handle_errors
def show_ddl(ctx, database: str, table: str):
    """Print the statements that rebuild TABLE."""
    driver = _create_driver(ctx, database)

    async def run_show_ddl() -> List[str]:
        async with driver.query_runner() as runner:
            schema = await runner.load_schema_tables([table])
            if not schema:
                raise SchemaError(f"Table '{table}' not found")
            statements = [runner.builder.build_create_table(schema[0])]
            statements.extend(index_statements(runner.builder, schema[0]))
            return statements

    for statement in asyncio.run(run_show_ddl()):
        console.print(f"{statement};", highlight=False)


@main.command("drop-column")
@click.argument("database", type=click.Path(exists=True, dir_okay=False))
@click.argument("table")
@click.argument("columns", nargs=-1, required=True)
@click.pass_context
@handle_errors
def drop_column(ctx, database: str, table: str, columns: Tuple[str, ...]):
    """Drop COLUMNS from TABLE by rebuilding it."""
    driver = _create_driver(ctx, database)

    async def run_drop():
        schema = await _load_table(driver, table)
        missing = [name for name in columns if not schema.has_column(name)]
        if missing:
            raise SchemaError(
                f"Table '{table}' has no column(s): {', '.join(missing)}"
            )
        async with driver.query_runner() as runner:
            return await runner.drop_columns(schema, list(columns))

    result = asyncio.run(run_drop())
    console.print(
        f"[green]✓[/green] Rebuilt table {table} "
        f"(kept columns: {', '.join(result.copied_columns) or 'none, table was empty'})"
    )


@main.command()
@click.argument("database", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@handle_errors
def clear(ctx, database: str, yes: bool):
    """Drop every table in DATABASE."""
    if not yes and not click.confirm(f"Drop all tables in {database}?"):
        return

    driver = _create_driver(ctx, database)

    async def run_clear():
        async with driver.query_runner() as runner:
            await runner.clear_database()

    asyncio.run(run_clear())
    console.print(f"[green]✓[/green] All tables dropped from {database}")


@main.command("validate-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config_path: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config_path}")

    relite_config = ReliteConfig.from_yaml(config_path)
    console.print("[green]✓[/green] Configuration is valid")

    summary = Table(title="Configuration Summary")
    summary.add_column("Setting", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("database.path", relite_config.database.path)
    summary.add_row("database.timeout", str(relite_config.database.timeout))
    summary.add_row("database.foreign_keys", str(relite_config.database.foreign_keys))
    summary.add_row("logging.level", relite_config.logging.level)
    summary.add_row("logging.file", relite_config.logging.file or "-")
    console.print(summary)


def _display_table(schema: TableSchema) -> None:
    """Display the structure of one table."""
    columns = Table(title=f"Table {schema.name}")
    columns.add_column("Column", style="cyan")
    columns.add_column("Type", style="magenta")
    columns.add_column("Nullable", style="green")
    columns.add_column("Default", style="yellow")
    columns.add_column("Flags")

    for column in schema.columns:
        flags = []
        if column.is_primary:
            flags.append("primary")
        if column.is_generated:
            flags.append("autoincrement")
        if column.is_unique:
            flags.append("unique")
        columns.add_row(
            column.name,
            column.type_name,
            "yes" if column.is_nullable else "no",
            column.default if column.default is not None else "",
            ", ".join(flags),
        )
    console.print(columns)

    for foreign_key in schema.foreign_keys:
        referenced = ", ".join(foreign_key.referenced_column_names) or "primary key"
        console.print(
            f"  foreign key ({', '.join(foreign_key.column_names)}) -> "
            f"{foreign_key.referenced_table_name} ({referenced}) "
            f"on delete {foreign_key.on_delete}"
        )
    for index in schema.indices:
        unique = "unique " if index.is_unique else ""
        console.print(
            f"  {unique}index {index.name} ({', '.join(index.column_names)})"
        )


if __name__ == "__main__":
    main()
