"""
Database schema introspection for relite.

Reverse-engineers table descriptors from the SQLite catalog
(``sqlite_master``) and the reflection pragmas (``table_info``,
``index_list``, ``index_info``, ``foreign_key_list``).
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..schema.autoincrement import find_autoincrement_column
from ..schema.descriptors import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    PrimaryKeySchema,
    RawType,
    TableSchema,
)
from ..schema.naming import DefaultNamingStrategy, NamingStrategy


logger = logging.getLogger(__name__)


SEQUENCE_TABLE = "sqlite_sequence"
AUTOINDEX_PREFIX = "sqlite_autoindex"

Row = Dict[str, Any]


class RowFetcher(Protocol):
    """Anything that can run a statement and return its rows."""

    async def fetch(self, query: str, parameters: Optional[List[Any]] = None) -> List[Row]:
        ...


def _quote_pragma_argument(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SchemaIntrospector:
    """Builds TableSchema descriptors from the SQLite catalog."""

    def __init__(self, runner: RowFetcher):
        self.runner = runner

    async def load_schema_tables(
        self,
        table_names: Iterable[str],
        naming_strategy: Optional[NamingStrategy] = None,
    ) -> List[TableSchema]:
        """Load descriptors for the given tables; unknown names are skipped."""
        names = set(table_names or [])
        if not names:
            return []

        naming_strategy = naming_strategy or DefaultNamingStrategy()

        db_tables = await self.runner.fetch(
            f"SELECT * FROM sqlite_master WHERE type = 'table' AND name != '{SEQUENCE_TABLE}'"
        )
        db_tables = [db_table for db_table in db_tables if db_table["name"] in names]
        if not db_tables:
            return []

        return list(
            await asyncio.gather(
                *(self._load_table(db_table, naming_strategy) for db_table in db_tables)
            )
        )

    async def get_table(
        self, table_name: str, naming_strategy: Optional[NamingStrategy] = None
    ) -> Optional[TableSchema]:
        """Descriptor for a single table, or None if it does not exist."""
        tables = await self.load_schema_tables([table_name], naming_strategy)
        return tables[0] if tables else None

    async def has_table(self, table_name: str) -> bool:
        """Check if a table exists."""
        rows = await self.runner.fetch(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            [table_name],
        )
        return len(rows) > 0

    async def list_tables(self) -> List[str]:
        """List user tables, skipping SQLite's internal ones."""
        rows = await self.runner.fetch(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row["name"] for row in rows]

    async def _load_table(
        self, db_table: Row, naming_strategy: NamingStrategy
    ) -> TableSchema:
        table_name = db_table["name"]
        quoted = _quote_pragma_argument(table_name)
        logger.debug(f"Loading schema of table {table_name}")

        db_columns, db_indices, db_foreign_keys = await asyncio.gather(
            self.runner.fetch(f"PRAGMA table_info({quoted})"),
            self.runner.fetch(f"PRAGMA index_list({quoted})"),
            self.runner.fetch(f"PRAGMA foreign_key_list({quoted})"),
        )

        autoincrement_column = find_autoincrement_column(db_table.get("sql"))

        table = TableSchema(table_name)
        table.columns = [
            self._build_column(db_column, autoincrement_column)
            for db_column in db_columns
        ]
        table.foreign_keys = self._build_foreign_keys(
            table, db_foreign_keys, naming_strategy
        )

        primary_indices = [index for index in db_indices if index["origin"] == "pk"]
        primary_index_columns = await asyncio.gather(
            *(self._load_index_columns(index["name"]) for index in primary_indices)
        )
        for db_index, column_names in zip(primary_indices, primary_index_columns):
            table.primary_keys.extend(
                PrimaryKeySchema(db_index["name"], column_name)
                for column_name in column_names
            )

        foreign_key_names = {foreign_key.name for foreign_key in table.foreign_keys}
        primary_key_names = {primary_key.name for primary_key in table.primary_keys}
        index_rows: List[Row] = []
        for db_index in db_indices:
            if db_index["origin"] == "pk":
                continue
            if db_index["name"] in foreign_key_names or db_index["name"] in primary_key_names:
                continue
            if any(row["name"] == db_index["name"] for row in index_rows):
                continue
            index_rows.append(db_index)

        indices = await asyncio.gather(
            *(self._build_index(table, db_index) for db_index in index_rows)
        )
        table.indices = [index for index in indices if index is not None]

        return table

    def _build_column(
        self, db_column: Row, autoincrement_column: Optional[str]
    ) -> ColumnSchema:
        return ColumnSchema(
            name=db_column["name"],
            type=RawType((db_column["type"] or "").lower()),
            is_nullable=db_column["notnull"] == 0,
            default=db_column["dflt_value"],
            # pk holds the 1-based position inside the primary key, 0 otherwise
            is_primary=db_column["pk"] > 0,
            is_generated=db_column["name"] == autoincrement_column,
        )

    def _build_foreign_keys(
        self,
        table: TableSchema,
        db_foreign_keys: List[Row],
        naming_strategy: NamingStrategy,
    ) -> List[ForeignKeySchema]:
        groups: Dict[int, List[Row]] = {}
        for db_foreign_key in db_foreign_keys:
            groups.setdefault(db_foreign_key["id"], []).append(db_foreign_key)

        foreign_keys = []
        # SQLite numbers foreign keys starting from the last declared one
        for key_id in sorted(groups, reverse=True):
            rows = sorted(groups[key_id], key=lambda row: row["seq"])
            column_names = [row["from"] for row in rows]
            if not all(table.has_column(name) for name in column_names):
                continue

            referenced_table_name = rows[0]["table"]
            referenced_column_names = [row["to"] for row in rows]
            if any(name is None for name in referenced_column_names):
                referenced_column_names = []

            name = naming_strategy.foreign_key_name(
                table.name, column_names, referenced_table_name, referenced_column_names
            )
            foreign_keys.append(
                ForeignKeySchema(
                    name,
                    column_names,
                    referenced_column_names,
                    referenced_table_name,
                    rows[0]["on_delete"] or "NO ACTION",
                )
            )
        return foreign_keys

    async def _build_index(self, table: TableSchema, db_index: Row) -> Optional[IndexSchema]:
        column_names = await self._load_index_columns(db_index["name"])
        is_unique = db_index["unique"] == 1

        if not db_index["name"].startswith(AUTOINDEX_PREFIX):
            # index_info names no column for an expression term
            if None in column_names or db_index.get("partial") == 1:
                definition = await self._load_index_definition(db_index["name"])
                if definition is None:
                    return None
                return IndexSchema(
                    table.name,
                    db_index["name"],
                    [name for name in column_names if name is not None],
                    is_unique,
                    definition,
                )
            return IndexSchema(table.name, db_index["name"], column_names, is_unique)

        # auto-indices back UNIQUE constraints and cannot be created by name
        if is_unique and len(column_names) == 1:
            column = table.find_column(column_names[0])
            if column:
                column.is_unique = True
            return None

        if is_unique and column_names:
            # a table-level UNIQUE(a, b) survives as an ordinary unique index
            return IndexSchema(
                table.name,
                f"uq_{table.name}_{'_'.join(column_names)}",
                column_names,
                True,
            )
        return None

    async def _load_index_columns(self, index_name: str) -> List[Optional[str]]:
        index_infos = await self.runner.fetch(
            f"PRAGMA index_info({_quote_pragma_argument(index_name)})"
        )
        return [
            index_info["name"]
            for index_info in sorted(index_infos, key=lambda info: info["seqno"])
        ]

    async def _load_index_definition(self, index_name: str) -> Optional[str]:
        rows = await self.runner.fetch(
            "SELECT sql FROM sqlite_master WHERE type = 'index' AND name = ?",
            [index_name],
        )
        if not rows or not rows[0]["sql"]:
            logger.warning(f"No stored definition for index {index_name}, skipping it")
            return None
        return rows[0]["sql"]
