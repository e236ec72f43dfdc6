"""PostgreSQL DDL rendering and execution for structural operations.

This is the only module that knows PostgreSQL's DDL dialect.  Each
``StructuralOperation`` renders to one or more statements, executed in
order through the ``DatabaseClient.execute()`` Protocol method.

Enum columns use a named type ``enum_<table>_<column>``, created before
the column that uses it.

Identifiers are always quoted (via SQLAlchemy's PostgreSQL identifier
preparer), so mixed-case table names such as ``People`` keep their case.

Usage:
    from model_sync.schema.ddl import PostgresDDLExecutor, render_statements

    for sql in render_statements(operation):
        print(sql)

    executor = PostgresDDLExecutor(adapter)
    await executor.execute(operation)
"""

import logging
import math
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.dialects import postgresql

from model_sync.schema.models import (
    AddColumn,
    AlterColumnNullability,
    AlterColumnType,
    ColumnSchema,
    CreateTable,
    DropColumn,
    DropTable,
    LogicalType,
    StructuralOperation,
)

if TYPE_CHECKING:
    from model_sync.adapters.base import DatabaseClient

logger = logging.getLogger(__name__)

_preparer = postgresql.dialect().identifier_preparer


# ------------------------------------------------------------------
# Rendering helpers
# ------------------------------------------------------------------


def quote(identifier: str) -> str:
    """Quote an identifier for PostgreSQL."""
    return _preparer.quote_identifier(identifier)


def render_literal(value: Any) -> str:
    """Render a Python value as a SQL literal for DEFAULT clauses."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "'NaN'::float8"
        return "'Infinity'::float8" if value > 0 else "'-Infinity'::float8"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (datetime, date)):
        value = value.isoformat()
    if isinstance(value, bytes):
        return f"'\\x{value.hex()}'"
    text = str(value).replace("'", "''")
    return f"'{text}'"


def enum_type_name(table_name: str, column_name: str) -> str:
    return f"enum_{table_name}_{column_name}"


def render_type(table_name: str, column: ColumnSchema) -> str:
    """Render the PostgreSQL type for a column.

    Raises:
        ValueError: For ``UNKNOWN`` columns, which are never rendered.
    """
    logical = column.logical_type
    if logical is LogicalType.STRING:
        return f"VARCHAR({column.length})" if column.length else "TEXT"
    if logical is LogicalType.INTEGER:
        return "INTEGER"
    if logical is LogicalType.FLOAT:
        return "DOUBLE PRECISION"
    if logical is LogicalType.BOOLEAN:
        return "BOOLEAN"
    if logical is LogicalType.DATETIME:
        return "TIMESTAMP WITH TIME ZONE"
    if logical is LogicalType.BINARY:
        return "BYTEA"
    if logical is LogicalType.ENUM:
        return quote(enum_type_name(table_name, column.name))
    raise ValueError(f"Cannot render DDL for column '{column.name}' of unknown type")


def render_column(table_name: str, column: ColumnSchema, inline_primary_key: bool = False) -> str:
    """Render a column definition for CREATE TABLE or ADD COLUMN."""
    parts = [quote(column.name), render_type(table_name, column)]

    if column.auto_increment:
        parts.append("GENERATED BY DEFAULT AS IDENTITY")
    if inline_primary_key and column.primary_key:
        parts.append("PRIMARY KEY")
    if not column.nullable:
        parts.append("NOT NULL")
    if column.default is not None and not column.auto_increment:
        parts.append(f"DEFAULT {render_literal(column.default)}")
    if column.unique and not column.primary_key:
        parts.append("UNIQUE")

    return " ".join(parts)


def _create_enum_type(table_name: str, column: ColumnSchema) -> list[str]:
    type_name = quote(enum_type_name(table_name, column.name))
    labels = ", ".join(render_literal(v) for v in column.enum_values)
    return [
        f"DROP TYPE IF EXISTS {type_name}",
        f"CREATE TYPE {type_name} AS ENUM ({labels})",
    ]


def _render_create_table(op: CreateTable) -> list[str]:
    table = op.table
    statements: list[str] = []
    for column in table.columns:
        if column.logical_type is LogicalType.ENUM:
            statements.extend(_create_enum_type(table.name, column))

    definitions = [render_column(table.name, c) for c in table.columns]
    pk_columns = [quote(c.name) for c in table.columns if c.primary_key]
    if pk_columns:
        definitions.append(f"PRIMARY KEY ({', '.join(pk_columns)})")

    body = ",\n  ".join(definitions)
    statements.append(f"CREATE TABLE {quote(table.name)} (\n  {body}\n)")
    return statements


def _render_add_column(op: AddColumn) -> list[str]:
    statements: list[str] = []
    if op.column.logical_type is LogicalType.ENUM:
        statements.extend(_create_enum_type(op.table_name, op.column))
    statements.append(
        f"ALTER TABLE {quote(op.table_name)} ADD COLUMN "
        f"{render_column(op.table_name, op.column, inline_primary_key=True)}"
    )
    return statements


def _render_type_change(op: AlterColumnType) -> list[str]:
    table = quote(op.table_name)
    column = quote(op.column_name)
    previous, desired = op.previous, op.desired
    statements: list[str] = []

    if desired.logical_type is LogicalType.ENUM:
        type_name = enum_type_name(op.table_name, op.column_name)
        if previous.logical_type is LogicalType.ENUM and set(previous.enum_values) <= set(desired.enum_values):
            # Values only added: extend the existing type in place
            for value in desired.enum_values:
                if value not in previous.enum_values:
                    statements.append(
                        f"ALTER TYPE {quote(type_name)} ADD VALUE IF NOT EXISTS {render_literal(value)}"
                    )
            return statements
        if previous.logical_type is LogicalType.ENUM:
            old_name = quote(f"{type_name}_old")
            statements.append(f"ALTER TYPE {quote(type_name)} RENAME TO {old_name}")
            statements.append(
                f"CREATE TYPE {quote(type_name)} AS ENUM "
                f"({', '.join(render_literal(v) for v in desired.enum_values)})"
            )
            statements.append(
                f"ALTER TABLE {table} ALTER COLUMN {column} TYPE {quote(type_name)} "
                f"USING {column}::text::{quote(type_name)}"
            )
            statements.append(f"DROP TYPE {old_name}")
            return statements
        statements.extend(_create_enum_type(op.table_name, desired))

    new_type = render_type(op.table_name, desired)
    cast = f"{column}::text::{new_type}" if LogicalType.ENUM in (
        previous.logical_type, desired.logical_type
    ) else f"{column}::{new_type}"
    statements.append(
        f"ALTER TABLE {table} ALTER COLUMN {column} TYPE {new_type} USING {cast}"
    )
    return statements


def _render_alter_column_type(op: AlterColumnType) -> list[str]:
    table = quote(op.table_name)
    column = quote(op.column_name)
    desired = op.desired
    statements: list[str] = []

    if {"type", "length", "enum_values"} & set(op.changes):
        statements.extend(_render_type_change(op))

    if "auto_increment" in op.changes:
        if desired.auto_increment:
            statements.append(
                f"ALTER TABLE {table} ALTER COLUMN {column} ADD GENERATED BY DEFAULT AS IDENTITY"
            )
        else:
            statements.append(f"ALTER TABLE {table} ALTER COLUMN {column} DROP IDENTITY IF EXISTS")
            statements.append(f"ALTER TABLE {table} ALTER COLUMN {column} DROP DEFAULT")

    if "primary_key" in op.changes:
        if desired.primary_key:
            statements.append(f"ALTER TABLE {table} ADD PRIMARY KEY ({column})")
        else:
            statements.append(
                f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {quote(op.table_name + '_pkey')}"
            )

    if "unique" in op.changes:
        constraint = quote(f"{op.table_name}_{op.column_name}_key")
        if desired.unique:
            statements.append(f"ALTER TABLE {table} ADD CONSTRAINT {constraint} UNIQUE ({column})")
        else:
            statements.append(f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {constraint}")

    return statements


def render_statements(operation: StructuralOperation) -> list[str]:
    """Render *operation* as the PostgreSQL statements that apply it, in order."""
    if isinstance(operation, CreateTable):
        return _render_create_table(operation)
    if isinstance(operation, DropTable):
        return [f"DROP TABLE IF EXISTS {quote(operation.table_name)} CASCADE"]
    if isinstance(operation, AddColumn):
        return _render_add_column(operation)
    if isinstance(operation, DropColumn):
        return [
            f"ALTER TABLE {quote(operation.table_name)} DROP COLUMN {quote(operation.column_name)}"
        ]
    if isinstance(operation, AlterColumnType):
        return _render_alter_column_type(operation)
    if isinstance(operation, AlterColumnNullability):
        action = "DROP NOT NULL" if operation.nullable else "SET NOT NULL"
        return [
            f"ALTER TABLE {quote(operation.table_name)} ALTER COLUMN "
            f"{quote(operation.column_name)} {action}"
        ]
    raise TypeError(f"Unsupported operation: {type(operation).__name__}")


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------


class PostgresDDLExecutor:
    """Applies structural operations through a ``DatabaseClient``.

    No retries and no rollback: a failing statement propagates its
    exception, and statements already executed stay applied.

    Args:
        client: Adapter implementing ``DatabaseClient.execute()``.
    """

    def __init__(self, client: "DatabaseClient") -> None:
        self._client = client

    async def execute(self, operation: StructuralOperation) -> None:
        """Execute every statement for *operation*, in order.

        Raises:
            RuntimeError: If the adapter does not support DDL
                (its ``execute()`` raises ``NotImplementedError``).
        """
        for sql in render_statements(operation):
            logger.debug("Executing DDL: %s", sql)
            try:
                await self._client.execute(sql)
            except NotImplementedError:
                raise RuntimeError("DDL operations not supported for this adapter type")
