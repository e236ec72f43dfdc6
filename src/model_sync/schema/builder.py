"""Desired-schema builder.

Converts a ``ModelDefinition`` into the normalized ``TableSchema`` the
reconciler compares against introspection output.
Pure logic -- no I/O, no database connections.
"""

from typing import TYPE_CHECKING

from model_sync.schema.models import ColumnSchema, LogicalType, TableSchema

if TYPE_CHECKING:
    from model_sync.definitions import AttributeDefinition, ModelDefinition


def _column_from_attribute(attribute: "AttributeDefinition") -> ColumnSchema:
    return ColumnSchema(
        name=attribute.name,
        logical_type=attribute.logical_type,
        nullable=attribute.nullable,
        default=attribute.default,
        primary_key=attribute.primary_key,
        auto_increment=attribute.auto_increment,
        # The primary key already implies uniqueness; no separate constraint
        unique=attribute.unique and not attribute.primary_key,
        length=attribute.length,
        enum_values=attribute.enum_values,
    )


def _timestamp_column(name: str) -> ColumnSchema:
    return ColumnSchema(name=name, logical_type=LogicalType.DATETIME, nullable=False)


def build_desired_schema(model: "ModelDefinition") -> TableSchema:
    """Build the desired table schema for *model*.

    Columns follow attribute declaration order, then the creation and
    update timestamp columns per the model's timestamp policy.  A timestamp
    column already declared as an attribute keeps its declared definition.

    Example:
        >>> schema = build_desired_schema(person)
        >>> schema.column_names
        ['id', 'firstName', 'createdAt', 'updatedAt']
    """
    columns = [_column_from_attribute(a) for a in model.attributes.values()]

    for name in (model.timestamps.created_column, model.timestamps.updated_column):
        if name and all(c.name != name for c in columns):
            columns.append(_timestamp_column(name))

    return TableSchema(name=model.table_name, columns=tuple(columns))
