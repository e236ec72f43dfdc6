"""Collaborator protocol definitions.

Defines the Protocols the synchronizer and timestamp layer depend on:

- ``DatabaseClient``: the store connection (raw DDL execution, and the
  insert/update path the timestamp lifecycle wraps)
- ``TableIntrospector``: read-only discovery of a table's live structure
- ``DDLExecutor``: applies one abstract ``StructuralOperation`` in the
  store's native dialect

All methods are ``async def`` -- the library is async-first.

Usage:
    from model_sync.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        await client.execute('ALTER TABLE "People" ADD COLUMN "nickname" TEXT')
        await client.close()
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from model_sync.schema.models import StructuralOperation, TableSchema


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    Lifecycle (open/close) is owned by the caller.
    """

    async def insert(self, table: str, data: dict) -> dict:
        """Insert row into table and return the created row.

        Args:
            table: Table name.
            data: Dict of field=value pairs to insert.

        Returns:
            Dict representing the created row.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        """Update rows in table and return the first updated row.

        Args:
            table: Table name.
            data: Dict of field=value pairs to update.
            filters: Dict of field=value filters (all must match via AND).

        Returns:
            Dict representing the updated row.
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations).

        Adapters that do not support DDL should raise ``NotImplementedError``.

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the SQL statement.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...


class TableIntrospector(Protocol):
    """Read-only discovery of live table structure."""

    async def describe(self, table_name: str) -> "TableSchema | None":
        """Return the table's actual schema, or None if it does not exist."""
        ...


class DDLExecutor(Protocol):
    """Translates and applies one structural operation.

    The only place where store dialect differences are allowed to leak.
    """

    async def execute(self, operation: "StructuralOperation") -> None:
        """Apply *operation*; raise on failure."""
        ...
