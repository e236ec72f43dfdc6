"""Schema introspection, reconciliation, and synchronization.

Provides the normalized schema types, live introspection
(``SchemaIntrospector``), the desired-schema builder
(``build_desired_schema``), the reconciler (``diff``), PostgreSQL DDL
rendering (``PostgresDDLExecutor``), and the orchestrator
(``SchemaSynchronizer``).

Usage:
    from model_sync.schema import SchemaIntrospector, SchemaSynchronizer
    from model_sync.schema import SyncMode, SyncOptions, diff
"""

from model_sync.schema.builder import build_desired_schema
from model_sync.schema.ddl import PostgresDDLExecutor, render_statements
from model_sync.schema.introspector import SchemaIntrospector
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
    SyncAllReport,
    SyncMode,
    SyncOptions,
    SyncReport,
    SyncStatus,
    TableSchema,
)
from model_sync.schema.reconciler import diff, is_narrowing
from model_sync.schema.sync import SchemaSynchronizer

__all__ = [
    "build_desired_schema",
    "PostgresDDLExecutor",
    "render_statements",
    "SchemaIntrospector",
    "LogicalType",
    "ColumnSchema",
    "TableSchema",
    "StructuralOperation",
    "CreateTable",
    "DropTable",
    "AddColumn",
    "DropColumn",
    "AlterColumnType",
    "AlterColumnNullability",
    "SyncMode",
    "SyncOptions",
    "SyncStatus",
    "SyncReport",
    "SyncAllReport",
    "diff",
    "is_narrowing",
    "SchemaSynchronizer",
]
