"""Tests for PostgreSQL DDL rendering and the DDL executor."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from model_sync.schema.ddl import (
    PostgresDDLExecutor,
    enum_type_name,
    quote,
    render_column,
    render_literal,
    render_statements,
)
from model_sync.schema.models import (
    AddColumn,
    AlterColumnNullability,
    AlterColumnType,
    ColumnSchema,
    CreateTable,
    DropColumn,
    DropTable,
    LogicalType,
    SyncMode,
    TableSchema,
)
from model_sync.schema.reconciler import diff


def _col(name: str, logical_type: LogicalType = LogicalType.STRING, **kwargs) -> ColumnSchema:
    return ColumnSchema(name=name, logical_type=logical_type, **kwargs)


# ============================================================
# Test: Rendering helpers
# ============================================================


class TestHelpers:
    """Verify quoting, literals, and column rendering."""

    def test_quote_preserves_case(self) -> None:
        assert quote("People") == '"People"'
        assert quote("createdAt") == '"createdAt"'

    def test_quote_escapes_quotes(self) -> None:
        assert quote('we"ird') == '"we""ird"'

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "NULL"),
            (True, "TRUE"),
            (False, "FALSE"),
            (42, "42"),
            (1.5, "1.5"),
            (float("nan"), "'NaN'::float8"),
            (float("inf"), "'Infinity'::float8"),
            (float("-inf"), "'-Infinity'::float8"),
            ("it's", "'it''s'"),
            (b"\x01\xff", "'\\x01ff'"),
        ],
    )
    def test_render_literal(self, value, expected: str) -> None:
        assert render_literal(value) == expected

    def test_enum_type_name(self) -> None:
        assert enum_type_name("People", "status") == "enum_People_status"

    def test_render_column_full(self) -> None:
        col = _col("email", length=255, nullable=False, unique=True, default="x")
        assert render_column("People", col) == (
            '"email" VARCHAR(255) NOT NULL DEFAULT \'x\' UNIQUE'
        )

    def test_render_identity_column(self) -> None:
        col = _col("id", LogicalType.INTEGER, nullable=False, primary_key=True, auto_increment=True)
        assert render_column("People", col) == '"id" INTEGER GENERATED BY DEFAULT AS IDENTITY NOT NULL'

    def test_unknown_type_not_rendered(self) -> None:
        with pytest.raises(ValueError, match="unknown type"):
            render_column("T", _col("geo", LogicalType.UNKNOWN))


# ============================================================
# Test: Operation rendering
# ============================================================


class TestRenderStatements:
    """Verify each operation's PostgreSQL statements."""

    def test_create_table(self) -> None:
        table = TableSchema(
            name="People",
            columns=(
                _col("id", LogicalType.INTEGER, nullable=False, primary_key=True, auto_increment=True),
                _col("firstName"),
                _col("createdAt", LogicalType.DATETIME, nullable=False),
            ),
        )
        (sql,) = render_statements(CreateTable(table=table))

        assert sql.startswith('CREATE TABLE "People" (')
        assert '"firstName" TEXT' in sql
        assert '"createdAt" TIMESTAMP WITH TIME ZONE NOT NULL' in sql
        assert 'PRIMARY KEY ("id")' in sql

    def test_create_table_with_enum_creates_type_first(self) -> None:
        table = TableSchema(
            name="Tasks",
            columns=(_col("status", LogicalType.ENUM, enum_values=("open", "done")),),
        )
        statements = render_statements(CreateTable(table=table))

        assert statements[0] == 'DROP TYPE IF EXISTS "enum_Tasks_status"'
        assert statements[1] == "CREATE TYPE \"enum_Tasks_status\" AS ENUM ('open', 'done')"
        assert statements[2].startswith('CREATE TABLE "Tasks"')

    def test_drop_table(self) -> None:
        assert render_statements(DropTable(table_name="People")) == [
            'DROP TABLE IF EXISTS "People" CASCADE'
        ]

    def test_add_column(self) -> None:
        op = AddColumn(table_name="People", column=_col("lastName", length=50))
        assert render_statements(op) == [
            'ALTER TABLE "People" ADD COLUMN "lastName" VARCHAR(50)'
        ]

    def test_drop_column(self) -> None:
        op = DropColumn(table_name="People", column_name="legacyFlag")
        assert render_statements(op) == ['ALTER TABLE "People" DROP COLUMN "legacyFlag"']

    def test_nullability(self) -> None:
        set_op = AlterColumnNullability(table_name="T", column_name="n", nullable=False)
        drop_op = AlterColumnNullability(table_name="T", column_name="n", nullable=True)
        assert render_statements(set_op) == ['ALTER TABLE "T" ALTER COLUMN "n" SET NOT NULL']
        assert render_statements(drop_op) == ['ALTER TABLE "T" ALTER COLUMN "n" DROP NOT NULL']

    def test_alter_type_uses_cast(self) -> None:
        previous = _col("age")
        desired = _col("age", LogicalType.INTEGER)
        op = AlterColumnType(
            table_name="T", column_name="age", new_type=LogicalType.INTEGER,
            previous=previous, desired=desired, changes=("type",), narrowing=True,
        )
        assert render_statements(op) == [
            'ALTER TABLE "T" ALTER COLUMN "age" TYPE INTEGER USING "age"::INTEGER'
        ]

    def test_alter_enum_add_value(self) -> None:
        previous = _col("s", LogicalType.ENUM, enum_values=("a",))
        desired = _col("s", LogicalType.ENUM, enum_values=("a", "b"))
        op = AlterColumnType(
            table_name="T", column_name="s", new_type=LogicalType.ENUM,
            previous=previous, desired=desired, changes=("enum_values",),
        )
        assert render_statements(op) == [
            "ALTER TYPE \"enum_T_s\" ADD VALUE IF NOT EXISTS 'b'"
        ]

    def test_alter_enum_remove_value_recreates_type(self) -> None:
        previous = _col("s", LogicalType.ENUM, enum_values=("a", "b"))
        desired = _col("s", LogicalType.ENUM, enum_values=("a",))
        op = AlterColumnType(
            table_name="T", column_name="s", new_type=LogicalType.ENUM,
            previous=previous, desired=desired, changes=("enum_values",), narrowing=True,
        )
        statements = render_statements(op)
        assert statements[0] == 'ALTER TYPE "enum_T_s" RENAME TO "enum_T_s_old"'
        assert statements[-1] == 'DROP TYPE "enum_T_s_old"'

    def test_alter_unique_only(self) -> None:
        op = AlterColumnType(
            table_name="T", column_name="email", new_type=LogicalType.STRING,
            previous=_col("email"), desired=_col("email", unique=True), changes=("unique",),
        )
        assert render_statements(op) == [
            'ALTER TABLE "T" ADD CONSTRAINT "T_email_key" UNIQUE ("email")'
        ]

    def test_alter_auto_increment_added(self) -> None:
        op = AlterColumnType(
            table_name="T", column_name="id", new_type=LogicalType.INTEGER,
            previous=_col("id", LogicalType.INTEGER),
            desired=_col("id", LogicalType.INTEGER, auto_increment=True),
            changes=("auto_increment",),
        )
        assert render_statements(op) == [
            'ALTER TABLE "T" ALTER COLUMN "id" ADD GENERATED BY DEFAULT AS IDENTITY'
        ]

    def test_key_promotion_sets_not_null_first(self) -> None:
        """A nullable column becoming an identity key is made NOT NULL before ADD GENERATED."""
        actual = TableSchema(name="T", columns=(_col("id", LogicalType.INTEGER),))
        desired = TableSchema(
            name="T",
            columns=(
                _col(
                    "id", LogicalType.INTEGER, nullable=False,
                    primary_key=True, auto_increment=True,
                ),
            ),
        )

        statements = [
            sql for op in diff(desired, actual, SyncMode.ALTER) for sql in render_statements(op)
        ]

        assert statements == [
            'ALTER TABLE "T" ALTER COLUMN "id" SET NOT NULL',
            'ALTER TABLE "T" ALTER COLUMN "id" ADD GENERATED BY DEFAULT AS IDENTITY',
            'ALTER TABLE "T" ADD PRIMARY KEY ("id")',
        ]

    def test_key_demotion_drops_not_null_last(self) -> None:
        actual = TableSchema(
            name="T",
            columns=(_col("id", LogicalType.INTEGER, nullable=False, primary_key=True),),
        )
        desired = TableSchema(name="T", columns=(_col("id", LogicalType.INTEGER),))

        statements = [
            sql for op in diff(desired, actual, SyncMode.ALTER) for sql in render_statements(op)
        ]

        assert statements == [
            'ALTER TABLE "T" DROP CONSTRAINT IF EXISTS "T_pkey"',
            'ALTER TABLE "T" ALTER COLUMN "id" DROP NOT NULL',
        ]


# ============================================================
# Test: PostgresDDLExecutor
# ============================================================


class TestPostgresDDLExecutor:
    """Verify the executor delegates statements to the client in order."""

    def test_executes_every_statement_in_order(self) -> None:
        client = MagicMock()
        client.execute = AsyncMock()
        executor = PostgresDDLExecutor(client)
        table = TableSchema(
            name="Tasks",
            columns=(_col("status", LogicalType.ENUM, enum_values=("open",)),),
        )

        asyncio.run(executor.execute(CreateTable(table=table)))

        sent = [c.args[0] for c in client.execute.await_args_list]
        assert sent == render_statements(CreateTable(table=table))

    def test_failure_propagates(self) -> None:
        client = MagicMock()
        client.execute = AsyncMock(side_effect=Exception("relation exists"))
        executor = PostgresDDLExecutor(client)

        with pytest.raises(Exception, match="relation exists"):
            asyncio.run(executor.execute(DropTable(table_name="T")))

    def test_not_implemented_becomes_runtime_error(self) -> None:
        client = MagicMock()
        client.execute = AsyncMock(side_effect=NotImplementedError())
        executor = PostgresDDLExecutor(client)

        with pytest.raises(RuntimeError, match="DDL operations not supported"):
            asyncio.run(executor.execute(DropTable(table_name="T")))
