"""
Table descriptors for relite.

In-memory, engine-independent representation of a table's columns,
primary keys, foreign keys and indices. Descriptors are produced by the
catalog reader, cloned and edited by callers, and rendered into DDL by
the statement builder.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from ..exceptions import SchemaError


@dataclass(frozen=True)
class RawType:
    """Declared type kept verbatim, as reported by the catalog."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class MappedType:
    """Logical column type rendered through the driver's type mapping."""

    data_type: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    timezone: bool = False

    def __str__(self) -> str:
        return self.data_type


DeclaredType = Union[RawType, MappedType]


@dataclass
class ColumnSchema:
    """Structure of a single table column."""

    name: str
    type: DeclaredType = field(default_factory=lambda: RawType(""))
    is_nullable: bool = True
    default: Optional[str] = None
    is_primary: bool = False
    is_unique: bool = False
    is_generated: bool = False
    comment: str = ""

    def __post_init__(self):
        if isinstance(self.type, str):
            self.type = RawType(self.type)

    @property
    def type_name(self) -> str:
        """Declared type as a string."""
        return str(self.type)

    @property
    def is_mapped(self) -> bool:
        """Whether the type goes through the driver's type mapping."""
        return isinstance(self.type, MappedType)

    def clone(self) -> "ColumnSchema":
        return copy.deepcopy(self)


@dataclass
class PrimaryKeySchema:
    """One column of a table's primary key."""

    name: str
    column_name: str


@dataclass
class ForeignKeySchema:
    """Foreign key from local columns to columns of a referenced table.

    An empty ``referenced_column_names`` list targets the referenced
    table's primary key.
    """

    name: str
    column_names: List[str]
    referenced_column_names: List[str]
    referenced_table_name: str
    on_delete: str = "NO ACTION"

    def __post_init__(self):
        self.column_names = list(self.column_names)
        self.referenced_column_names = list(self.referenced_column_names)
        if self.referenced_column_names and len(self.column_names) != len(
            self.referenced_column_names
        ):
            raise SchemaError(
                f"Foreign key {self.name} has {len(self.column_names)} columns "
                f"but references {len(self.referenced_column_names)}",
                {"table": self.referenced_table_name},
            )


@dataclass
class IndexSchema:
    """Named index over an ordered list of columns.

    Expression and partial indices carry the stored CREATE INDEX statement
    in ``definition``; ``column_names`` then lists only the plain columns.
    """

    table_name: str
    name: str
    column_names: List[str]
    is_unique: bool = False
    definition: Optional[str] = None

    def __post_init__(self):
        self.column_names = list(self.column_names)

    def uses_column(self, column_name: str) -> bool:
        """Whether the index covers the column, directly or in an expression."""
        if column_name in self.column_names:
            return True
        if not self.definition:
            return False
        body = self.definition[self.definition.find("(") :].replace('"', "")
        pattern = rf"(?<!\w){re.escape(column_name)}(?!\w)"
        return re.search(pattern, body) is not None

    def rename_column(self, old_name: str, new_name: str) -> None:
        self.column_names = [
            new_name if name == old_name else name for name in self.column_names
        ]
        if self.definition:
            self.definition = self.definition.replace(f'"{old_name}"', f'"{new_name}"')


@dataclass
class TableSchema:
    """Complete structure of a table."""

    name: str
    columns: List[ColumnSchema] = field(default_factory=list)
    primary_keys: List[PrimaryKeySchema] = field(default_factory=list)
    foreign_keys: List[ForeignKeySchema] = field(default_factory=list)
    indices: List[IndexSchema] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def primary_key_columns(self) -> List[ColumnSchema]:
        """Primary columns that are not generated, in declared order."""
        return [c for c in self.columns if c.is_primary and not c.is_generated]

    @property
    def generated_column(self) -> Optional[ColumnSchema]:
        """The autoincrement column, if the table has one."""
        for column in self.columns:
            if column.is_generated:
                return column
        return None

    def clone(self) -> "TableSchema":
        """Deep copy, safe to edit without touching this descriptor."""
        return copy.deepcopy(self)

    def find_column(self, name: str) -> Optional[ColumnSchema]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.find_column(name) is not None

    def foreign_keys_for(self, column_name: str) -> List[ForeignKeySchema]:
        """Foreign keys that include the given local column."""
        return [fk for fk in self.foreign_keys if column_name in fk.column_names]

    def add_columns(self, columns: Iterable[ColumnSchema]) -> None:
        """Append columns, skipping names the table already has."""
        for column in columns:
            if not self.has_column(column.name):
                self.columns.append(column)

    def replace_column(self, old_name: str, new_column: ColumnSchema) -> bool:
        """Swap the column called ``old_name`` for ``new_column`` in place.

        References to the old name in keys and indices follow the rename.
        """
        for position, column in enumerate(self.columns):
            if column.name != old_name:
                continue
            self.columns[position] = new_column
            if new_column.name != old_name:
                self._rename_references(old_name, new_column.name)
            return True
        return False

    def remove_columns(self, columns: Iterable[Union[ColumnSchema, str]]) -> None:
        """Remove columns together with every key and index using them."""
        names = {c if isinstance(c, str) else c.name for c in columns}
        self.columns = [c for c in self.columns if c.name not in names]
        self.primary_keys = [
            pk for pk in self.primary_keys if pk.column_name not in names
        ]
        self.foreign_keys = [
            fk for fk in self.foreign_keys if not names.intersection(fk.column_names)
        ]
        self.indices = [
            index
            for index in self.indices
            if not any(index.uses_column(name) for name in names)
        ]

    def add_foreign_keys(self, foreign_keys: Iterable[ForeignKeySchema]) -> None:
        self.foreign_keys.extend(foreign_keys)

    def remove_foreign_keys(
        self, foreign_keys: Iterable[Union[ForeignKeySchema, str]]
    ) -> None:
        names = {fk if isinstance(fk, str) else fk.name for fk in foreign_keys}
        self.foreign_keys = [fk for fk in self.foreign_keys if fk.name not in names]

    def add_indices(self, indices: Iterable[IndexSchema]) -> None:
        self.indices.extend(indices)

    def remove_index(self, index_name: str) -> None:
        self.indices = [index for index in self.indices if index.name != index_name]

    def _rename_references(self, old_name: str, new_name: str) -> None:
        def rename(names: List[str]) -> List[str]:
            return [new_name if name == old_name else name for name in names]

        for pk in self.primary_keys:
            if pk.column_name == old_name:
                pk.column_name = new_name
        for fk in self.foreign_keys:
            fk.column_names = rename(fk.column_names)
        for index in self.indices:
            index.rename_column(old_name, new_name)
