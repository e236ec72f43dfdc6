"""Schema reconciliation: desired vs actual table schema.

Computes the ordered list of structural operations that bring an actual
table in line with a desired one.  Pure logic -- no I/O, no database
connections.  The reconciler only reports; deciding whether destructive
operations may run is the synchronizer's job.

Ordering within Alter mode:
1. ``AddColumn`` (desired declaration order)
2. ``AlterColumnType`` / ``AlterColumnNullability`` (desired order).  Per
   column, SET NOT NULL comes before the type alter, since identity and
   primary keys need a NOT NULL column; DROP NOT NULL comes after it.
3. ``DropColumn`` (actual column order)

Columns are matched by name only.  A renamed column therefore always shows
up as a drop plus an add; rename intent cannot be inferred from structure.

Usage:
    from model_sync.schema.reconciler import diff
    from model_sync.schema.models import SyncMode

    operations = diff(desired, actual, SyncMode.ALTER)
    destructive = [op for op in operations if op.destructive]
"""

import logging

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
    SyncMode,
    TableSchema,
)

logger = logging.getLogger(__name__)


# Type conversions that never lose data
_WIDENING: frozenset[tuple[LogicalType, LogicalType]] = frozenset({
    (LogicalType.INTEGER, LogicalType.FLOAT),
    (LogicalType.BOOLEAN, LogicalType.INTEGER),
    (LogicalType.INTEGER, LogicalType.STRING),
    (LogicalType.FLOAT, LogicalType.STRING),
    (LogicalType.BOOLEAN, LogicalType.STRING),
    (LogicalType.DATETIME, LogicalType.STRING),
    (LogicalType.ENUM, LogicalType.STRING),
})

# Widest text rendering of a value of each type
_TEXT_WIDTH: dict[LogicalType, int] = {
    LogicalType.INTEGER: 20,
    LogicalType.FLOAT: 24,
    LogicalType.BOOLEAN: 5,
    LogicalType.DATETIME: 32,
}

_CONSTRAINT_FACETS = ("primary_key", "auto_increment", "unique")
_TYPE_FACETS = frozenset({"type", "length", "enum_values"})


def is_narrowing(previous: ColumnSchema, desired: ColumnSchema) -> bool:
    """Return True if converting *previous* to *desired* may lose data.

    Examples:
        >>> is_narrowing(int_col, float_col)
        False
        >>> is_narrowing(varchar_255, varchar_50)
        True
    """
    old, new = previous.logical_type, desired.logical_type

    if old is new:
        if new is LogicalType.STRING:
            if desired.length is None:
                return False
            return previous.length is None or desired.length < previous.length
        if new is LogicalType.ENUM:
            return not set(previous.enum_values) <= set(desired.enum_values)
        return False

    if (old, new) not in _WIDENING:
        return True

    if new is LogicalType.STRING and desired.length is not None:
        if old is LogicalType.ENUM:
            width = max((len(v) for v in previous.enum_values), default=0)
        else:
            width = _TEXT_WIDTH[old]
        return desired.length < width

    return False


def _type_changes(actual: ColumnSchema, desired: ColumnSchema) -> list[str]:
    """Names of the type-class facets that differ between two columns."""
    changes: list[str] = []

    if actual.logical_type is not desired.logical_type:
        changes.append("type")
    elif desired.logical_type is LogicalType.STRING and actual.length != desired.length:
        changes.append("length")
    elif (
        desired.logical_type is LogicalType.ENUM
        and set(actual.enum_values) != set(desired.enum_values)
    ):
        changes.append("enum_values")

    for facet in _CONSTRAINT_FACETS:
        if getattr(actual, facet) != getattr(desired, facet):
            changes.append(facet)

    return changes


def diff(
    desired: TableSchema,
    actual: TableSchema | None,
    mode: SyncMode,
) -> list[StructuralOperation]:
    """Compute the structural operations that turn *actual* into *desired*.

    Args:
        desired: Schema built from the model definition.
        actual: Introspected schema, or None if the table does not exist.
        mode: Sync mode deciding how an existing table is treated.

    Returns:
        Ordered operations:

        - table absent (any mode): ``[CreateTable(desired)]``
        - ``FORCE``: ``[DropTable, CreateTable(desired)]``
        - ``CREATE`` with the table present: ``[]``
        - ``ALTER``: adds, then alterations, then drops

        Columns whose actual type is ``UNKNOWN`` are never altered or
        dropped in Alter mode.
    """
    if actual is None:
        return [CreateTable(table=desired)]

    if mode is SyncMode.FORCE:
        return [DropTable(table_name=actual.name), CreateTable(table=desired)]

    if mode is SyncMode.CREATE:
        return []

    table_name = desired.name
    actual_columns = actual.columns_by_name
    desired_names = set(desired.column_names)

    adds: list[StructuralOperation] = []
    alters: list[StructuralOperation] = []
    drops: list[StructuralOperation] = []

    for column in desired.columns:
        existing = actual_columns.get(column.name)

        if existing is None:
            adds.append(AddColumn(table_name=table_name, column=column))
            continue

        if existing.is_unknown:
            logger.warning(
                "Column %s.%s has unrecognized type %r; leaving it untouched",
                table_name, column.name, existing.native_type,
            )
            continue

        nullability = None
        if existing.nullable != column.nullable:
            nullability = AlterColumnNullability(
                table_name=table_name,
                column_name=column.name,
                nullable=column.nullable,
            )
        if nullability and not column.nullable:
            alters.append(nullability)

        changes = _type_changes(existing, column)
        if changes:
            alters.append(
                AlterColumnType(
                    table_name=table_name,
                    column_name=column.name,
                    new_type=column.logical_type,
                    previous=existing,
                    desired=column,
                    changes=tuple(changes),
                    narrowing=bool(_TYPE_FACETS & set(changes)) and is_narrowing(existing, column),
                )
            )

        if nullability and column.nullable:
            alters.append(nullability)

    for column in actual.columns:
        if column.name in desired_names:
            continue
        if column.is_unknown:
            logger.warning(
                "Column %s.%s has unrecognized type %r; not dropping it",
                table_name, column.name, column.native_type,
            )
            continue
        drops.append(DropColumn(table_name=table_name, column_name=column.name))

    return adds + alters + drops


def unknown_columns(actual: TableSchema | None) -> list[str]:
    """Names of actual columns whose type the introspector could not classify."""
    if actual is None:
        return []
    return [c.name for c in actual.columns if c.is_unknown]
