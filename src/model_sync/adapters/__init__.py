"""Database adapters package.

Provides the collaborator Protocols (``DatabaseClient``,
``TableIntrospector``, ``DDLExecutor``) and the async PostgreSQL adapter.

Usage:
    from model_sync.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from model_sync.adapters.base import DatabaseClient, DDLExecutor, TableIntrospector
from model_sync.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "DDLExecutor",
    "TableIntrospector",
    "AsyncPostgresAdapter",
]
