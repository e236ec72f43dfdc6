"""model-sync: Declarative model-to-table schema synchronization.

Reconciles in-memory model definitions against a live PostgreSQL schema:
table-name inference, introspection, diffing, safety-gated create/force/
alter syncs, and application-level timestamp maintenance.

Usage:
    from model_sync import ModelRegistry, AttributeDefinition, LogicalType
    from model_sync import SyncMode, SyncOptions, get_synchronizer
    from model_sync import TimestampLifecycle, load_db_config
"""

__version__ = "0.1.0"

# Adapters
from model_sync.adapters.base import DatabaseClient, DDLExecutor, TableIntrospector
from model_sync.adapters.postgres import AsyncPostgresAdapter

# Config
from model_sync.config.loader import load_db_config
from model_sync.config.models import DatabaseConfig, DatabaseProfile, SyncSettings

# Models
from model_sync.definitions import (
    AttributeDefinition,
    ModelDefaults,
    ModelDefinition,
    ModelRegistry,
    TimestampPolicy,
)
from model_sync.errors import DDLExecutionFailed, ModelSyncError, SafetyCheckFailed

# Factory
from model_sync.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    get_synchronizer,
    resolve_url,
)
from model_sync.naming import pluralize, resolve_table_name

# Schema
from model_sync.schema import (
    SchemaIntrospector,
    SchemaSynchronizer,
    build_desired_schema,
    diff,
)
from model_sync.schema.models import (
    ColumnSchema,
    LogicalType,
    StructuralOperation,
    SyncAllReport,
    SyncMode,
    SyncOptions,
    SyncReport,
    SyncStatus,
    TableSchema,
)
from model_sync.timestamps import TimestampLifecycle

__all__ = [
    # Adapters
    "DatabaseClient",
    "DDLExecutor",
    "TableIntrospector",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    "SyncSettings",
    # Models
    "AttributeDefinition",
    "ModelDefaults",
    "ModelDefinition",
    "ModelRegistry",
    "TimestampPolicy",
    "resolve_table_name",
    "pluralize",
    # Errors
    "ModelSyncError",
    "SafetyCheckFailed",
    "DDLExecutionFailed",
    # Factory
    "get_adapter",
    "get_synchronizer",
    "connect_and_validate",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema
    "SchemaIntrospector",
    "SchemaSynchronizer",
    "build_desired_schema",
    "diff",
    "LogicalType",
    "ColumnSchema",
    "TableSchema",
    "StructuralOperation",
    "SyncMode",
    "SyncOptions",
    "SyncStatus",
    "SyncReport",
    "SyncAllReport",
    # Timestamps
    "TimestampLifecycle",
]
