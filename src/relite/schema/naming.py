"""
Naming strategies used when synthesizing names for reflected keys.
"""

import hashlib
from typing import List, Protocol


class NamingStrategy(Protocol):
    """Anything able to name a foreign key."""

    def foreign_key_name(
        self,
        table_name: str,
        column_names: List[str],
        referenced_table_name: str,
        referenced_column_names: List[str],
    ) -> str:
        ...


class DefaultNamingStrategy:
    """Deterministic hashed names, stable across introspection calls."""

    def foreign_key_name(
        self,
        table_name: str,
        column_names: List[str],
        referenced_table_name: str,
        referenced_column_names: List[str],
    ) -> str:
        key = "_".join(
            [
                table_name,
                "_".join(column_names),
                referenced_table_name,
                "_".join(referenced_column_names),
            ]
        )
        return "fk_" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:27]

