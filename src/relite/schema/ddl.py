"""
DDL statement builder for relite.

Renders table descriptors into the SQLite statements used to create,
rebuild and index tables. Rendering is pure: nothing here touches a
connection.
"""

from typing import List, Optional, Protocol, Sequence

from .descriptors import ColumnSchema, IndexSchema, MappedType, TableSchema
from ..exceptions import SchemaError

TEMPORARY_TABLE_PREFIX = "temporary_"
AUTOINCREMENT_CLAUSE = "PRIMARY KEY AUTOINCREMENT"


class TypeNormalizer(Protocol):
    """Maps logical column types to engine type names."""

    def normalize_type(self, column_type: MappedType) -> str:
        ...


def quote(identifier: str) -> str:
    return f'"{identifier}"'


def temporary_table_name(table_name: str) -> str:
    return TEMPORARY_TABLE_PREFIX + table_name


class DdlBuilder:
    """Builds CREATE / DROP / ALTER statements from descriptors."""

    def __init__(self, type_normalizer: TypeNormalizer):
        self.type_normalizer = type_normalizer

    def build_column(self, column: ColumnSchema) -> str:
        """Column definition fragment used inside CREATE TABLE."""
        if isinstance(column.type, MappedType):
            column_type = self.type_normalizer.normalize_type(column.type)
        else:
            column_type = column.type.name

        sql = quote(column.name)
        if column_type:
            sql += " " + column_type
        if not column.is_nullable:
            sql += " NOT NULL"
        if column.is_unique:
            sql += " UNIQUE"
        if column.default is not None:
            sql += f" DEFAULT ({column.default})"
        # independent of is_primary: generated columns never join PRIMARY KEY(...)
        if column.is_generated:
            sql += " " + AUTOINCREMENT_CLAUSE
        return sql

    def build_create_table(
        self,
        table: TableSchema,
        table_name: Optional[str] = None,
        if_not_exists: bool = False,
    ) -> str:
        """CREATE TABLE statement for ``table``, optionally under another name."""
        generated = [column.name for column in table.columns if column.is_generated]
        if len(generated) > 1:
            raise SchemaError(
                f"Table {table.name} declares more than one generated column",
                {"columns": ", ".join(generated)},
            )

        definitions = [self.build_column(column) for column in table.columns]

        primary_columns = table.primary_key_columns
        if primary_columns:
            # unquoted on purpose, quoting here produces a different schema text
            definitions.append(
                f"PRIMARY KEY({', '.join(column.name for column in primary_columns)})"
            )

        for foreign_key in table.foreign_keys:
            clause = (
                f"FOREIGN KEY({self._column_list(foreign_key.column_names)}) "
                f"REFERENCES {quote(foreign_key.referenced_table_name)}"
            )
            if foreign_key.referenced_column_names:
                clause += f"({self._column_list(foreign_key.referenced_column_names)})"
            if foreign_key.on_delete and foreign_key.on_delete.upper() != "NO ACTION":
                clause += f" ON DELETE {foreign_key.on_delete}"
            definitions.append(clause)

        prefix = "CREATE TABLE IF NOT EXISTS" if if_not_exists else "CREATE TABLE"
        return f"{prefix} {quote(table_name or table.name)} ({', '.join(definitions)})"

    def build_create_temporary_table(self, table: TableSchema) -> str:
        return self.build_create_table(table, temporary_table_name(table.name))

    def build_create_index(self, index: IndexSchema) -> str:
        if index.definition:
            return index.definition
        columns = ",".join(quote(name) for name in index.column_names)
        unique = "UNIQUE " if index.is_unique else ""
        return f"CREATE {unique}INDEX {quote(index.name)} ON {quote(index.table_name)}({columns})"

    def build_drop_index(self, index_name: str) -> str:
        return f"DROP INDEX {quote(index_name)}"

    def build_drop_table(self, table_name: str) -> str:
        return f"DROP TABLE {quote(table_name)}"

    def build_rename_table(self, old_name: str, new_name: str) -> str:
        return f"ALTER TABLE {quote(old_name)} RENAME TO {quote(new_name)}"

    def build_copy_data(
        self, source_table: str, target_table: str, column_names: Sequence[str]
    ) -> str:
        """INSERT ... SELECT moving ``column_names`` between two tables."""
        columns = self._column_list(column_names)
        return (
            f"INSERT INTO {quote(target_table)} ({columns}) "
            f"SELECT {columns} FROM {quote(source_table)}"
        )

    @staticmethod
    def _column_list(column_names: Sequence[str]) -> str:
        return ", ".join(quote(name) for name in column_names)


def index_statements(builder: DdlBuilder, table: TableSchema) -> List[str]:
    """CREATE INDEX statements for every index attached to ``table``."""
    return [builder.build_create_index(index) for index in table.indices]
