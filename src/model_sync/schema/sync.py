"""Model-to-table synchronization (async).

``SchemaSynchronizer`` drives one sync per model:

1. Resolve the table name (cached on the model) and build the desired schema
2. Introspect the actual schema (``None`` if the table is absent)
3. Diff desired vs actual for the requested mode
4. Gate destructive work on the safety pattern
5. Apply operations one at a time, in order, through the DDL executor

Execution is all-or-nothing with respect to the safety gate: if the gate
refuses, nothing is applied.  It is NOT all-or-nothing with respect to
failures: DDL is frequently non-transactional, so when an operation fails
the ones before it stay applied and are not rolled back.  The report's
``applied_count`` says exactly how far the sync got.

Syncs targeting the same table through one synchronizer are serialized by
a per-table lock.  There is no cross-process locking: run one synchronizer
per database at a time.

Usage:
    from model_sync.schema.sync import SchemaSynchronizer
    from model_sync.schema.models import SyncMode, SyncOptions

    synchronizer = SchemaSynchronizer(introspector, executor, "app_test")

    # Inspect without touching anything
    report = await synchronizer.plan(person, SyncOptions(mode=SyncMode.ALTER))
    print(report.format_report())

    # Apply, refusing destructive changes outside *_test databases
    report = await synchronizer.sync(
        person, SyncOptions(mode=SyncMode.ALTER, safety_pattern="_test$")
    )

    # Every model, in registration order
    result = await synchronizer.sync_all(registry, SyncOptions())
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from model_sync.adapters.base import DDLExecutor, TableIntrospector
from model_sync.errors import SafetyCheckFailed
from model_sync.schema.builder import build_desired_schema
from model_sync.schema.models import (
    DropTable,
    StructuralOperation,
    SyncAllReport,
    SyncMode,
    SyncOptions,
    SyncReport,
    SyncStatus,
)
from model_sync.schema.reconciler import diff, unknown_columns

if TYPE_CHECKING:
    from model_sync.definitions import ModelDefinition, ModelRegistry

logger = logging.getLogger(__name__)


class SchemaSynchronizer:
    """Reconciles model definitions against a live database.

    Args:
        introspector: Read-only table introspector (``describe()``).
        executor: Applies structural operations (``execute()``).
        database_name: Target database identifier, matched against
            ``SyncOptions.safety_pattern`` by the safety gate.
    """

    def __init__(
        self,
        introspector: TableIntrospector,
        executor: DDLExecutor,
        database_name: str,
    ) -> None:
        self._introspector = introspector
        self._executor = executor
        self.database_name = database_name
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, table_name: str) -> asyncio.Lock:
        return self._locks.setdefault(table_name, asyncio.Lock())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def plan(
        self,
        model: "ModelDefinition",
        options: SyncOptions | None = None,
    ) -> SyncReport:
        """Introspect and diff *model* without executing anything.

        Returns:
            ``SyncReport`` with ``status=DRY_RUN`` and the planned operations.
        """
        options = (options or SyncOptions()).model_copy(update={"dry_run": True})
        return await self.sync(model, options)

    async def sync(
        self,
        model: "ModelDefinition",
        options: SyncOptions | None = None,
    ) -> SyncReport:
        """Bring *model*'s table in line with its definition.

        Args:
            model: Model to synchronize.
            options: Mode, safety pattern, dry-run flag.  Defaults to
                create-only.

        Returns:
            ``SyncReport``.  Safety refusals and DDL failures are reported
            through ``status``, not raised; call ``raise_for_status()`` to
            turn them into exceptions.  Introspection errors propagate.
        """
        options = options or SyncOptions()

        async with self._lock_for(model.table_name):
            desired = build_desired_schema(model)
            actual = await self._introspector.describe(model.table_name)
            operations = diff(desired, actual, options.mode)

            skipped: list[str] = []
            if actual is not None and options.mode is SyncMode.ALTER:
                skipped = unknown_columns(actual)

            return await self._apply(model, operations, options, skipped)

    async def drop_table(
        self,
        model: "ModelDefinition",
        options: SyncOptions | None = None,
    ) -> SyncReport:
        """Drop *model*'s table unconditionally.

        Gated exactly like Force mode: with a safety pattern that does not
        match the database name, nothing is dropped.
        """
        options = (options or SyncOptions()).model_copy(update={"mode": SyncMode.FORCE})

        async with self._lock_for(model.table_name):
            operations: list[StructuralOperation] = [DropTable(table_name=model.table_name)]
            return await self._apply(model, operations, options, [])

    async def sync_all(
        self,
        registry: "ModelRegistry",
        options: SyncOptions | None = None,
    ) -> SyncAllReport:
        """Sync every registered model, in registration order.

        With ``max_concurrency=1`` (the default) models sync strictly one
        after another.  Higher values let up to that many syncs run at
        once; each table is still synced by at most one of them.

        Unless ``continue_on_error`` is set, no sync starts after one has
        failed; the models that never started are reported as ``SKIPPED``.

        Returns:
            ``SyncAllReport`` with one report per model, in registration order.
        """
        options = options or SyncOptions()
        models = list(registry)
        reports: list[SyncReport | None] = [None] * len(models)
        semaphore = asyncio.Semaphore(options.max_concurrency)
        halted = False

        async def run(index: int, model: "ModelDefinition") -> None:
            nonlocal halted
            async with semaphore:
                if halted:
                    reports[index] = self._skipped_report(model, options)
                    return
                report = await self.sync(model, options)
                reports[index] = report
                if not report.success and not options.continue_on_error:
                    logger.warning(
                        "Halting sync after failure on %s; remaining models skipped",
                        model.name,
                    )
                    halted = True

        if options.max_concurrency == 1:
            for index, model in enumerate(models):
                await run(index, model)
        else:
            tasks = [asyncio.create_task(run(i, m)) for i, m in enumerate(models)]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        return SyncAllReport(reports=[r for r in reports if r is not None])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _requires_gate(
        self, options: SyncOptions, operations: list[StructuralOperation]
    ) -> bool:
        if options.safety_pattern is None:
            return False
        return options.mode is SyncMode.FORCE or any(op.destructive for op in operations)

    def _skipped_report(self, model: "ModelDefinition", options: SyncOptions) -> SyncReport:
        return SyncReport(
            model_name=model.name,
            table_name=model.table_name,
            mode=options.mode,
            status=SyncStatus.SKIPPED,
            database_name=self.database_name,
            safety_pattern=options.safety_pattern,
        )

    async def _apply(
        self,
        model: "ModelDefinition",
        operations: list[StructuralOperation],
        options: SyncOptions,
        skipped_columns: list[str],
    ) -> SyncReport:
        report = SyncReport(
            model_name=model.name,
            table_name=model.table_name,
            mode=options.mode,
            status=SyncStatus.NOOP,
            database_name=self.database_name,
            safety_pattern=options.safety_pattern,
            planned=operations,
            skipped_columns=skipped_columns,
        )

        if not operations:
            logger.info("%s (%s): schema up to date", model.name, model.table_name)
            return report

        if options.dry_run:
            report.status = SyncStatus.DRY_RUN
            return report

        if self._requires_gate(options, operations) and not options.pattern_matches(
            self.database_name
        ):
            error = SafetyCheckFailed(self.database_name, options.safety_pattern)
            logger.warning("%s (%s): %s", model.name, model.table_name, error)
            report.status = SyncStatus.SAFETY_CHECK_FAILED
            report.error = str(error)
            return report

        # CancelledError is not an Exception: it propagates, and no further
        # operation is started.
        for index, operation in enumerate(operations):
            try:
                await self._executor.execute(operation)
            except Exception as e:
                logger.warning(
                    "%s (%s): operation #%d (%s) failed after %d applied: %s",
                    model.name, model.table_name, index, operation.describe(), index, e,
                )
                report.status = SyncStatus.DDL_EXECUTION_FAILED
                report.failed_index = index
                report.failed_operation = operation
                report.error = str(e)
                return report
            report.applied_count += 1

        report.status = SyncStatus.APPLIED
        logger.info(
            "%s (%s): applied %d operations [%s]",
            model.name, model.table_name, report.applied_count, options.mode.value,
        )
        return report
