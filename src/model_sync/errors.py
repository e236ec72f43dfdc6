"""Exception hierarchy for schema synchronization.

Sync calls report failures through ``SyncReport`` rather than raising;
these exceptions are what ``SyncReport.raise_for_status()`` raises for a
failed report.

Usage:
    from model_sync.errors import SafetyCheckFailed, DDLExecutionFailed

    report = await synchronizer.sync(model, options)
    try:
        report.raise_for_status()
    except SafetyCheckFailed as e:
        print(f"Refused: {e}")
"""

from typing import Any


class ModelSyncError(Exception):
    """Base class for all schema synchronization errors."""


class SafetyCheckFailed(ModelSyncError):
    """Raised when a destructive sync targets a database the pattern rejects.

    Nothing has been applied when this is raised.
    """

    def __init__(self, database_name: str, pattern: str):
        self.database_name = database_name
        self.pattern = pattern
        super().__init__(
            f"Database '{database_name}' does not match safety pattern "
            f"'{pattern}'; destructive sync refused"
        )


class DDLExecutionFailed(ModelSyncError):
    """Raised when a structural operation fails partway through a sync.

    Operations before ``index`` were applied and are NOT rolled back:
    DDL is frequently non-transactional, so the store may be left in an
    intermediate state.
    """

    def __init__(self, operation: Any, index: int, cause: BaseException | str):
        self.operation = operation
        self.index = index
        self.cause = cause
        super().__init__(
            f"Operation #{index} ({operation.describe()}) failed: {cause}"
        )
