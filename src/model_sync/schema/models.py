"""Pydantic models for schema reconciliation.

This module contains schema-domain models:
- Normalized schema: LogicalType, ColumnSchema, TableSchema (used for both
  the desired schema built from a model and the actual schema introspected
  from the store)
- Structural operations: CreateTable, DropTable, AddColumn, DropColumn,
  AlterColumnType, AlterColumnNullability
- Sync control and results: SyncMode, SyncOptions, SyncStatus, SyncReport,
  SyncAllReport

Configuration models (DatabaseProfile, DatabaseConfig) live in
model_sync.config.models.
"""

import re
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from model_sync.errors import DDLExecutionFailed, SafetyCheckFailed


# ============================================================================
# Normalized Schema Models
# ============================================================================


class LogicalType(str, Enum):
    """Store-independent column type.

    ``UNKNOWN`` only ever comes from introspection: it marks a native type
    the introspector could not classify.
    """

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    BINARY = "binary"
    ENUM = "enum"
    UNKNOWN = "unknown"


class ColumnSchema(BaseModel):
    """Schema for a single column.

    Example:
        >>> col = ColumnSchema(name="id", logical_type=LogicalType.INTEGER)
        >>> col.nullable
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str
    logical_type: LogicalType
    nullable: bool = True
    default: Any = None
    primary_key: bool = False
    auto_increment: bool = False
    unique: bool = False
    length: int | None = None  # STRING only; None means unbounded
    enum_values: tuple[str, ...] = ()  # ENUM only
    native_type: str | None = None  # as reported by the store, if introspected

    @property
    def is_unknown(self) -> bool:
        return self.logical_type is LogicalType.UNKNOWN


class TableSchema(BaseModel):
    """Schema for a table: a name and its columns in declaration order.

    Two schemas are compared by column name, never by position.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    columns: tuple[ColumnSchema, ...] = ()

    @model_validator(mode="after")
    def _check_unique_column_names(self) -> "TableSchema":
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(
                    f"Duplicate column '{column.name}' in table '{self.name}'"
                )
            seen.add(column.name)
        return self

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def columns_by_name(self) -> dict[str, ColumnSchema]:
        return {c.name: c for c in self.columns}

    def get_column(self, name: str) -> ColumnSchema | None:
        """Return the column called *name*, or None."""
        return self.columns_by_name.get(name)


# ============================================================================
# Structural Operations
# ============================================================================


class _Operation(BaseModel):
    model_config = ConfigDict(frozen=True)

    table_name: str

    @property
    def destructive(self) -> bool:
        """True if applying this operation can discard existing data."""
        return False

    def describe(self) -> str:
        raise NotImplementedError


class CreateTable(_Operation):
    """Create a table with every column of *table*."""

    kind: Literal["create_table"] = "create_table"
    table: TableSchema

    @model_validator(mode="before")
    @classmethod
    def _default_table_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and "table_name" not in data and "table" in data:
            table = data["table"]
            name = table.name if isinstance(table, TableSchema) else table["name"]
            data = {**data, "table_name": name}
        return data

    def describe(self) -> str:
        return f"CREATE TABLE {self.table_name} ({len(self.table.columns)} columns)"


class DropTable(_Operation):
    """Drop a table and everything in it."""

    kind: Literal["drop_table"] = "drop_table"

    @property
    def destructive(self) -> bool:
        return True

    def describe(self) -> str:
        return f"DROP TABLE {self.table_name}"


class AddColumn(_Operation):
    """Add a column to an existing table."""

    kind: Literal["add_column"] = "add_column"
    column: ColumnSchema

    def describe(self) -> str:
        return (
            f"ALTER TABLE {self.table_name} ADD COLUMN {self.column.name} "
            f"{self.column.logical_type.value}"
        )


class DropColumn(_Operation):
    """Drop a column; its data is lost."""

    kind: Literal["drop_column"] = "drop_column"
    column_name: str

    @property
    def destructive(self) -> bool:
        return True

    def describe(self) -> str:
        return f"ALTER TABLE {self.table_name} DROP COLUMN {self.column_name}"


class AlterColumnType(_Operation):
    """Change a column's type or its key/identity/uniqueness constraints.

    ``changes`` names the facets that differ (``type``, ``length``,
    ``enum_values``, ``primary_key``, ``auto_increment``, ``unique``).
    ``narrowing`` is set by the reconciler when existing values may not
    survive the conversion.
    """

    kind: Literal["alter_column_type"] = "alter_column_type"
    column_name: str
    new_type: LogicalType
    previous: ColumnSchema
    desired: ColumnSchema
    changes: tuple[str, ...] = ()
    narrowing: bool = False

    @property
    def destructive(self) -> bool:
        return self.narrowing

    def describe(self) -> str:
        return (
            f"ALTER TABLE {self.table_name} ALTER COLUMN {self.column_name} "
            f"({', '.join(self.changes)}) -> {self.new_type.value}"
        )


class AlterColumnNullability(_Operation):
    """Set or drop NOT NULL on a column."""

    kind: Literal["alter_column_nullability"] = "alter_column_nullability"
    column_name: str
    nullable: bool

    def describe(self) -> str:
        action = "DROP NOT NULL" if self.nullable else "SET NOT NULL"
        return f"ALTER TABLE {self.table_name} ALTER COLUMN {self.column_name} {action}"


StructuralOperation = Annotated[
    Union[
        CreateTable,
        DropTable,
        AddColumn,
        DropColumn,
        AlterColumnType,
        AlterColumnNullability,
    ],
    Field(discriminator="kind"),
]


# ============================================================================
# Sync Control
# ============================================================================


class SyncMode(str, Enum):
    """How an existing table is treated.

    - ``CREATE``: create missing tables, never touch existing ones
    - ``FORCE``: drop and recreate every table
    - ``ALTER``: add, alter, and drop columns to match the model
    """

    CREATE = "create"
    FORCE = "force"
    ALTER = "alter"


def check_safety_pattern(value: str | None) -> str | None:
    """Reject a safety pattern that is not a valid regular expression."""
    if value is not None:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid safety_pattern {value!r}: {e}") from e
    return value


class SyncOptions(BaseModel):
    """Options for a sync call.

    Example:
        >>> opts = SyncOptions(mode=SyncMode.ALTER, safety_pattern="_test$")
        >>> opts.pattern_matches("app_test")
        True
        >>> opts.pattern_matches("app_prod")
        False
    """

    mode: SyncMode = SyncMode.CREATE
    safety_pattern: str | None = None  # regex searched against the database name
    continue_on_error: bool = False
    max_concurrency: int = Field(default=1, ge=1)
    dry_run: bool = False

    @field_validator("safety_pattern")
    @classmethod
    def _check_safety_pattern(cls, value: str | None) -> str | None:
        return check_safety_pattern(value)

    def pattern_matches(self, database_name: str) -> bool:
        """True if no pattern is set or the pattern matches *database_name*."""
        if self.safety_pattern is None:
            return True
        return re.search(self.safety_pattern, database_name) is not None


class SyncStatus(str, Enum):
    """Outcome of syncing one model."""

    NOOP = "noop"
    APPLIED = "applied"
    DRY_RUN = "dry_run"
    SKIPPED = "skipped"
    SAFETY_CHECK_FAILED = "safety_check_failed"
    DDL_EXECUTION_FAILED = "ddl_execution_failed"


# ============================================================================
# Sync Results
# ============================================================================


class SyncReport(BaseModel):
    """Result of syncing one model.

    ``applied_count`` is authoritative: when it is below ``planned_count``,
    the operation at index ``applied_count`` is the one that failed.

    Example:
        >>> report = SyncReport(model_name="Person", table_name="People",
        ...                     mode=SyncMode.CREATE, status=SyncStatus.NOOP)
        >>> report.success
        True
        >>> report.format_report()
        'Person -> People [create]: no changes'
    """

    model_name: str
    table_name: str
    mode: SyncMode
    status: SyncStatus
    database_name: str | None = None
    safety_pattern: str | None = None
    planned: list[StructuralOperation] = Field(default_factory=list)
    applied_count: int = 0
    failed_index: int | None = None
    failed_operation: StructuralOperation | None = None
    skipped_columns: list[str] = Field(default_factory=list)
    error: str | None = None

    @property
    def planned_count(self) -> int:
        return len(self.planned)

    @property
    def destructive(self) -> bool:
        """True if any planned operation can discard data."""
        return any(op.destructive for op in self.planned)

    @property
    def success(self) -> bool:
        return self.status in (SyncStatus.NOOP, SyncStatus.APPLIED, SyncStatus.DRY_RUN)

    def raise_for_status(self) -> None:
        """Raise the exception matching a failed status; no-op otherwise."""
        if self.status is SyncStatus.SAFETY_CHECK_FAILED:
            raise SafetyCheckFailed(self.database_name or "", self.safety_pattern or "")
        if self.status is SyncStatus.DDL_EXECUTION_FAILED:
            raise DDLExecutionFailed(
                self.failed_operation, self.failed_index, self.error or "unknown error"
            )

    def format_report(self) -> str:
        """Format the report as a human-readable summary."""
        header = f"{self.model_name} -> {self.table_name} [{self.mode.value}]"

        if self.status is SyncStatus.NOOP:
            lines = [f"{header}: no changes"]
        elif self.status is SyncStatus.SKIPPED:
            lines = [f"{header}: skipped"]
        elif self.status is SyncStatus.DRY_RUN:
            lines = [f"{header}: {self.planned_count} planned (dry run)"]
        else:
            lines = [f"{header}: {self.applied_count}/{self.planned_count} applied"]

        for i, op in enumerate(self.planned):
            marker = "!" if op.destructive else "-"
            lines.append(f"  {marker} {i}. {op.describe()}")

        if self.skipped_columns:
            lines.append(
                f"  Unknown-type columns left untouched: {', '.join(self.skipped_columns)}"
            )

        if self.error:
            lines.append(f"  Error: {self.error}")

        return "\n".join(lines)


class SyncAllReport(BaseModel):
    """Result of syncing every model in a registry, in registration order."""

    reports: list[SyncReport] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.reports)

    @property
    def applied_count(self) -> int:
        return sum(r.applied_count for r in self.reports)

    @property
    def failed(self) -> list[SyncReport]:
        return [
            r for r in self.reports
            if not r.success and r.status is not SyncStatus.SKIPPED
        ]

    @property
    def by_model(self) -> dict[str, SyncReport]:
        return {r.model_name: r for r in self.reports}

    def format_report(self) -> str:
        """Format all per-model reports as one summary."""
        if not self.reports:
            return "No models registered"

        status = "Sync complete" if self.success else "Sync failed"
        lines = [f"{status}: {self.applied_count} operations applied"]
        for report in self.reports:
            lines.append(report.format_report())
        return "\n".join(lines)
