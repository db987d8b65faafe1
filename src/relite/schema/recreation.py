"""
Table recreation for relite.

SQLite cannot drop, retype or re-key columns in place. Every structural
change is therefore emulated by rebuilding the table:

    IDLE -> STAGED -> DATA_COPIED -> SWAPPED -> INDICES_REBUILT

1. STAGED: ``temporary_<name>`` is created from the target descriptor.
2. DATA_COPIED: rows are copied for the columns the old and the target
   layouts have in common (skipped when the table is empty).
3. SWAPPED: the original table is dropped and the temporary one renamed.
4. INDICES_REBUILT: every index of the target descriptor is recreated.

The sequence is not atomic and nothing is compensated on failure. A
failure after STAGED can leave both tables behind; a failure after
SWAPPED leaves the data in place with indices missing. The stage reached
is reported so an operator can finish or undo the rebuild by hand.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from .ddl import DdlBuilder, index_statements, temporary_table_name
from .descriptors import TableSchema


logger = logging.getLogger(__name__)


class RecreationStage(str, Enum):
    """Progress of a table rebuild."""

    IDLE = "idle"
    STAGED = "staged"
    DATA_COPIED = "data_copied"
    SWAPPED = "swapped"
    INDICES_REBUILT = "indices_rebuilt"


class StatementExecutor(Protocol):
    """Runs statements one at a time and returns rows for queries."""

    async def query(self, query: str, parameters: Optional[List[Any]] = None) -> Any:
        ...

    async def fetch(
        self, query: str, parameters: Optional[List[Any]] = None
    ) -> List[Dict[str, Any]]:
        ...


@dataclass
class RecreationResult:
    """Outcome of a table rebuild."""

    table: str
    stage: RecreationStage = RecreationStage.IDLE
    statements: List[str] = field(default_factory=list)
    copied_columns: List[str] = field(default_factory=list)
    execution_time_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.stage == RecreationStage.INDICES_REBUILT

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def copied_data(self) -> bool:
        return bool(self.copied_columns)


def intersect_columns(old_columns: List[str], new_columns: List[str]) -> List[str]:
    """Names present in both layouts, in the order of ``old_columns``."""
    wanted = set(new_columns)
    return [name for name in old_columns if name in wanted]


class TableRecreator:
    """Rebuilds a table so that it matches a target descriptor."""

    def __init__(self, executor: StatementExecutor, builder: DdlBuilder):
        self.executor = executor
        self.builder = builder
        self.last_result: Optional[RecreationResult] = None

    async def recreate(self, table: TableSchema) -> RecreationResult:
        """Rebuild ``table.name`` with the structure described by ``table``."""
        result = RecreationResult(table=table.name)
        self.last_result = result
        temporary_name = temporary_table_name(table.name)
        start_time = time.time()

        try:
            await self._execute(result, self.builder.build_create_temporary_table(table))
            result.stage = RecreationStage.STAGED

            existing_rows = await self.executor.fetch(f'SELECT * FROM "{table.name}"')
            if existing_rows:
                # column order of the row follows the cursor description
                old_columns = list(existing_rows[0].keys())
                result.copied_columns = intersect_columns(old_columns, table.column_names)
                if result.copied_columns:
                    await self._execute(
                        result,
                        self.builder.build_copy_data(
                            table.name, temporary_name, result.copied_columns
                        ),
                    )
            result.stage = RecreationStage.DATA_COPIED

            await self._execute(result, self.builder.build_drop_table(table.name))
            await self._execute(
                result, self.builder.build_rename_table(temporary_name, table.name)
            )
            result.stage = RecreationStage.SWAPPED

            statements = index_statements(self.builder, table)
            await asyncio.gather(
                *(self.executor.query(statement) for statement in statements)
            )
            result.statements.extend(statements)
            result.stage = RecreationStage.INDICES_REBUILT

        except Exception as e:
            result.error = str(e)
            logger.error(
                f"Recreation of table {table.name} stopped after stage "
                f"{result.stage.value}: {e}"
            )
            raise
        finally:
            result.execution_time_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Recreated table {table.name} "
            f"({len(result.copied_columns)} columns carried over, "
            f"{len(table.indices)} indices rebuilt) in {result.execution_time_ms:.1f}ms"
        )
        return result

    async def _execute(self, result: RecreationResult, statement: str) -> None:
        logger.debug(f"Recreating {result.table} [{result.stage.value}]: {statement}")
        await self.executor.query(statement)
        result.statements.append(statement)
