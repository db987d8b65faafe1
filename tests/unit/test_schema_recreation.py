"""
Tests for relite.schema.recreation module.
"""

import pytest

from relite.exceptions import QueryFailedError
from relite.schema.descriptors import ColumnSchema, IndexSchema, TableSchema
from relite.schema.recreation import (
    RecreationResult,
    RecreationStage,
    TableRecreator,
    intersect_columns,
)


def executed_statements(executor):
    return [call.args[0] for call in executor.query.await_args_list]


@pytest.fixture
def target_table() -> TableSchema:
    return TableSchema(
        "t",
        [
            ColumnSchema("b", "text", is_unique=True),
            ColumnSchema("id", "integer", is_primary=True, is_generated=True),
            ColumnSchema("c", "text"),
        ],
        indices=[
            IndexSchema("t", "idx_t_c", ["c"]),
            IndexSchema("t", "idx_t_bc", ["b", "c"], True),
        ],
    )


class TestIntersectColumns:
    """Test column intersection."""

    def test_keeps_old_order(self):
        assert intersect_columns(["id", "a", "b"], ["b", "id", "c"]) == ["id", "b"]

    def test_no_common_columns(self):
        assert intersect_columns(["a"], ["b"]) == []


class TestRecreationResult:
    """Test RecreationResult."""

    def test_defaults(self):
        result = RecreationResult(table="t")
        assert result.stage == RecreationStage.IDLE
        assert not result.is_complete
        assert not result.has_error
        assert not result.copied_data


class TestTableRecreatorMocked:
    """Test the statement sequence of a rebuild."""

    @pytest.mark.asyncio
    async def test_full_sequence(self, mock_executor, builder, target_table):
        mock_executor.fetch.return_value = [{"id": 1, "a": "x", "b": "u1"}]
        recreator = TableRecreator(mock_executor, builder)

        result = await recreator.recreate(target_table)

        assert executed_statements(mock_executor) == [
            'CREATE TABLE "temporary_t" ("b" text UNIQUE, '
            '"id" integer PRIMARY KEY AUTOINCREMENT, "c" text)',
            'INSERT INTO "temporary_t" ("id", "b") SELECT "id", "b" FROM "t"',
            'DROP TABLE "t"',
            'ALTER TABLE "temporary_t" RENAME TO "t"',
            'CREATE INDEX "idx_t_c" ON "t"("c")',
            'CREATE UNIQUE INDEX "idx_t_bc" ON "t"("b","c")',
        ]
        mock_executor.fetch.assert_awaited_once_with('SELECT * FROM "t"')
        assert result.stage == RecreationStage.INDICES_REBUILT
        assert result.is_complete
        assert result.copied_columns == ["id", "b"]
        assert result.statements == executed_statements(mock_executor)
        assert result.execution_time_ms is not None
        assert recreator.last_result is result

    @pytest.mark.asyncio
    async def test_empty_table_copies_nothing(self, mock_executor, builder, target_table):
        mock_executor.fetch.return_value = []
        recreator = TableRecreator(mock_executor, builder)

        result = await recreator.recreate(target_table)

        statements = executed_statements(mock_executor)
        assert not any(s.startswith("INSERT") for s in statements)
        assert statements[1:3] == ['DROP TABLE "t"', 'ALTER TABLE "temporary_t" RENAME TO "t"']
        assert result.copied_columns == []
        assert result.is_complete

    @pytest.mark.asyncio
    async def test_no_common_columns_copies_nothing(self, mock_executor, builder, target_table):
        mock_executor.fetch.return_value = [{"x": 1, "y": 2}]
        recreator = TableRecreator(mock_executor, builder)

        result = await recreator.recreate(target_table)

        assert not any(s.startswith("INSERT") for s in executed_statements(mock_executor))
        assert result.stage == RecreationStage.INDICES_REBUILT

    @pytest.mark.asyncio
    async def test_failure_reports_stage(self, mock_executor, builder, target_table):
        mock_executor.fetch.return_value = [{"id": 1, "b": "u1"}]

        async def query(statement, parameters=None):
            if statement.startswith("DROP TABLE"):
                raise QueryFailedError(statement)

        mock_executor.query.side_effect = query
        recreator = TableRecreator(mock_executor, builder)

        with pytest.raises(QueryFailedError):
            await recreator.recreate(target_table)

        result = recreator.last_result
        assert result.stage == RecreationStage.DATA_COPIED
        assert result.has_error
        assert "DROP TABLE" in result.error
        assert not any(s.startswith("ALTER") for s in executed_statements(mock_executor))

    @pytest.mark.asyncio
    async def test_failure_while_staging(self, mock_executor, builder, target_table):
        mock_executor.query.side_effect = QueryFailedError("CREATE TABLE")
        recreator = TableRecreator(mock_executor, builder)

        with pytest.raises(QueryFailedError):
            await recreator.recreate(target_table)

        assert recreator.last_result.stage == RecreationStage.IDLE
        mock_executor.fetch.assert_not_awaited()


class TestTableRecreatorSqlite:
    """Test rebuilds against a real SQLite database."""

    @pytest.mark.asyncio
    async def test_intersection_migration(self, runner, seed_database, read_rows):
        seed_database(
            'CREATE TABLE "items" ("id" integer PRIMARY KEY, "x" text, "keep" text)',
            "INSERT INTO items VALUES (1, 'x1', 'k1'), (2, 'x2', 'k2')",
        )
        target = TableSchema("items", [
            ColumnSchema("id", "integer", is_primary=True),
            ColumnSchema("keep", "text"),
            ColumnSchema("y", "text", default="'n/a'"),
        ])

        result = await runner.recreator.recreate(target)

        assert result.copied_columns == ["id", "keep"]
        assert read_rows("SELECT * FROM items ORDER BY id") == [
            {"id": 1, "keep": "k1", "y": "n/a"},
            {"id": 2, "keep": "k2", "y": "n/a"},
        ]

    @pytest.mark.asyncio
    async def test_index_fidelity(self, runner, seed_database):
        seed_database(
            'CREATE TABLE "t" ("a" text, "b" text, "c" text)',
            'CREATE INDEX "idx_a" ON "t"("a")',
            'CREATE INDEX "idx_b" ON "t"("b")',
        )
        [table] = await runner.load_schema_tables(["t"])
        table.remove_index("idx_b")
        table.add_indices([IndexSchema("t", "idx_c", ["c"], True)])

        await runner.recreator.recreate(table)

        [reloaded] = await runner.load_schema_tables(["t"])
        by_name = lambda index: index.name
        assert sorted(reloaded.indices, key=by_name) == [
            IndexSchema("t", "idx_a", ["a"], False),
            IndexSchema("t", "idx_c", ["c"], True),
        ]

    @pytest.mark.asyncio
    async def test_empty_table(self, runner, seed_database, read_rows):
        seed_database('CREATE TABLE "t" ("a" text, "b" text)')
        [table] = await runner.load_schema_tables(["t"])
        table.remove_columns(["b"])

        result = await runner.recreator.recreate(table)

        assert not result.copied_data
        assert not any(s.startswith("INSERT") for s in result.statements)
        assert read_rows("SELECT name FROM sqlite_master WHERE type = 'table'") == [{"name": "t"}]
        [reloaded] = await runner.load_schema_tables(["t"])
        assert reloaded.column_names == ["a"]
