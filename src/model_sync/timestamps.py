"""Application-level timestamp maintenance.

``TimestampLifecycle`` is the pre-persistence hook for models with a
timestamp policy: the persistence layer passes each row through
``before_create()`` or ``before_update()`` before writing it.

- create: sets both the creation and the update column
- update: sets the update column; the creation column is never written

The clock is read once per operation, so both columns stamped by one
create carry the same value.  Writes that bypass this layer (direct SQL,
store triggers) are not stamped.

Usage:
    from model_sync.timestamps import TimestampLifecycle

    lifecycle = TimestampLifecycle()
    row = await lifecycle.insert(adapter, person, {"firstName": "Ada"})
    row = await lifecycle.update(adapter, person, {"lastName": "Byron"}, {"id": row["id"]})
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from model_sync.adapters.base import DatabaseClient
    from model_sync.definitions import ModelDefinition


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampLifecycle:
    """Stamps creation/update columns on rows before they are persisted.

    Args:
        clock: Zero-argument callable returning the current time.
            Defaults to timezone-aware UTC ``datetime.now``.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utc_now

    def before_create(self, model: "ModelDefinition", data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of *data* with both timestamp columns set."""
        row = dict(data)
        created = model.timestamps.created_column
        updated = model.timestamps.updated_column
        if not (created or updated):
            return row

        now = self._clock()
        if created:
            row[created] = now
        if updated:
            row[updated] = now
        return row

    def before_update(self, model: "ModelDefinition", data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of *data* with the update column set.

        A creation timestamp present in *data* is removed: it is written
        only on first persistence.
        """
        row = dict(data)
        created = model.timestamps.created_column
        updated = model.timestamps.updated_column
        if created:
            row.pop(created, None)
        if updated:
            row[updated] = self._clock()
        return row

    async def insert(
        self, client: "DatabaseClient", model: "ModelDefinition", data: dict[str, Any]
    ) -> dict:
        """Stamp *data* and insert it into *model*'s table."""
        return await client.insert(model.table_name, self.before_create(model, data))

    async def update(
        self,
        client: "DatabaseClient",
        model: "ModelDefinition",
        data: dict[str, Any],
        filters: dict[str, Any],
    ) -> dict:
        """Stamp *data* and update the matching rows of *model*'s table."""
        return await client.update(model.table_name, self.before_update(model, data), filters)
