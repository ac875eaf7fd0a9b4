"""Batched, cancellable, masking-aware table data copy (async).

Each table is copied in pages ordered by its primary key (or by all its
columns when it has none).  Every page is written to the target inside one
transaction, so a table's committed row count always covers whole batches.

Usage:
    from db_replicator.replication.replicator import replicate_data

    cancel = asyncio.Event()
    result = await replicate_data(config, progress=channel, cancel=cancel)
    print(result.total_rows_processed)
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from db_replicator.adapters.base import DatabaseClient
from db_replicator.config.models import (
    ConnectionEndpoint,
    DataMaskingRule,
    ReplicationConfig,
    ReplicationMode,
)
from db_replicator.errors import DataWriteError, ReplicationCancelled
from db_replicator.replication.filters import filter_tables
from db_replicator.replication.masking import mask_row
from db_replicator.replication.models import DataReplicationResult, TableResult
from db_replicator.replication.progress import ProgressChannel, ReplicationProgress

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[ConnectionEndpoint], DatabaseClient]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _is_cancelled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def _publish(progress: ProgressChannel | None, snapshot: ReplicationProgress) -> None:
    """Hand *snapshot* to the progress channel; failures never reach the copy."""
    if progress is None:
        return
    try:
        progress.publish(snapshot)
    except Exception as e:
        logger.debug(f"Progress publish failed: {e}")


def _cancelled(table_name: str, processed: int) -> TableResult:
    logger.warning(f"Replication of {table_name} cancelled after {processed} rows")
    return TableResult(
        table_name=table_name,
        cancelled=True,
        error_message="Replication was cancelled",
        rows_processed=processed,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def replicate_table(
    source: DatabaseClient,
    target: DatabaseClient,
    table_name: str,
    batch_size: int,
    masking_rules: Sequence[DataMaskingRule] = (),
    mode: ReplicationMode = ReplicationMode.FULL,
    progress: ProgressChannel | None = None,
    cancel: asyncio.Event | None = None,
    table_index: int = 1,
    total_tables: int = 1,
) -> TableResult:
    """Copy one table from *source* to *target* in batches.

    Args:
        source: Client reading the source database (owned by this call).
        target: Client writing the target database (owned by this call).
        table_name: Table to copy.
        batch_size: Rows per page and per transaction.
        masking_rules: Rules for this table's columns.
        mode: ``full`` truncates the target table first.
        progress: Optional channel receiving one snapshot per committed batch.
        cancel: Optional event; when set, the current batch is rolled back.
        table_index: 1-based position of this table in the run.
        total_tables: Number of tables in the run.

    Returns:
        ``TableResult``.  Read, write and cancellation outcomes are reported
        through the result, never raised.

    Raises:
        ValueError: If *batch_size* is not positive.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be greater than zero, got {batch_size}")

    processed = 0
    if _is_cancelled(cancel):
        return _cancelled(table_name, processed)

    try:
        columns = await source.get_column_names(table_name)
        if not columns:
            return TableResult(
                table_name=table_name, error_message="No columns found for table"
            )

        total_rows = await source.count_rows(table_name)
        order_by = await source.get_primary_key(table_name) or columns

        if mode == ReplicationMode.FULL:
            await target.truncate(table_name)

        started = time.monotonic()
        while True:
            if _is_cancelled(cancel):
                return _cancelled(table_name, processed)

            rows = await source.fetch_rows(
                table_name, columns, order_by, offset=processed, limit=batch_size
            )
            if not rows:
                break

            masked = [mask_row(columns, row, masking_rules) for row in rows]

            try:
                async with target.transaction() as tx:
                    for row in masked:
                        if _is_cancelled(cancel):
                            raise ReplicationCancelled(table_name)
                        try:
                            await tx.insert_row(table_name, columns, row)
                        except Exception as e:
                            raise DataWriteError(
                                table_name, f"Failed to write row to {table_name}: {e}"
                            ) from e
            except ReplicationCancelled:
                return _cancelled(table_name, processed)

            processed += len(masked)
            elapsed = time.monotonic() - started
            _publish(
                progress,
                ReplicationProgress.for_table(
                    table_name,
                    table_index,
                    total_tables,
                    processed_rows=processed,
                    total_rows=total_rows,
                    rows_per_second=processed / elapsed if elapsed > 0 else 0.0,
                ),
            )

    except DataWriteError as e:
        logger.error(f"{e} (batch rolled back, {processed} rows committed)")
        return TableResult(
            table_name=table_name, error_message=str(e), rows_processed=processed
        )
    except Exception as e:
        logger.error(f"Failed to replicate {table_name}: {e}")
        return TableResult(
            table_name=table_name, error_message=str(e), rows_processed=processed
        )

    logger.info(f"Replicated {processed} rows of {table_name}")
    return TableResult(table_name=table_name, success=True, rows_processed=processed)


async def replicate_data(
    config: ReplicationConfig,
    progress: ProgressChannel | None = None,
    cancel: asyncio.Event | None = None,
    adapter_factory: AdapterFactory | None = None,
) -> DataReplicationResult:
    """Copy every selected table of the source database to the target.

    Each table gets its own source/target client pair, closed when the table
    finishes.  A failed or cancelled table never stops the others.  With
    ``parallel_threads > 1`` up to that many tables are copied concurrently;
    results are always reported in table order.

    Args:
        config: Replication configuration.
        progress: Optional progress channel shared by all tables.
        cancel: Optional cancellation event.
        adapter_factory: Builds a client for an endpoint.  Defaults to
            ``db_replicator.factory.create_adapter``.

    Returns:
        ``DataReplicationResult`` with one ``TableResult`` per table.
    """
    if adapter_factory is None:
        from db_replicator.factory import create_adapter as adapter_factory

    lister = adapter_factory(config.source)
    try:
        source_tables = await lister.list_tables()
    except Exception as e:
        logger.error(f"Failed to list source tables: {e}")
        return DataReplicationResult(error_message=f"Failed to list source tables: {e}")
    finally:
        await lister.close()

    tables = filter_tables(source_tables, config.include_tables, config.exclude_tables)
    total = len(tables)
    logger.info(f"Replicating {total} of {len(source_tables)} source tables")

    if config.mode == ReplicationMode.INCREMENTAL:
        logger.warning(
            "Incremental mode does not track changes; tables are copied without truncating"
        )

    async def run_one(index: int, table: str) -> TableResult:
        source: DatabaseClient | None = None
        target: DatabaseClient | None = None
        try:
            source = adapter_factory(config.source)
            target = adapter_factory(config.target)
            logger.info(f"Replicating table {index}/{total}: {table}")
            return await replicate_table(
                source,
                target,
                table,
                config.batch_size,
                masking_rules=config.masking_rules_for(table),
                mode=config.mode,
                progress=progress,
                cancel=cancel,
                table_index=index,
                total_tables=total,
            )
        except Exception as e:
            logger.error(f"Failed to replicate {table}: {e}")
            return TableResult(table_name=table, error_message=str(e))
        finally:
            if source is not None:
                await source.close()
            if target is not None:
                await target.close()

    if config.parallel_threads > 1:
        semaphore = asyncio.Semaphore(config.parallel_threads)

        async def bounded(index: int, table: str) -> TableResult:
            async with semaphore:
                return await run_one(index, table)

        results = list(
            await asyncio.gather(
                *(bounded(i, t) for i, t in enumerate(tables, start=1))
            )
        )
    else:
        results = []
        for i, table in enumerate(tables, start=1):
            results.append(await run_one(i, table))

    cancelled = any(r.cancelled for r in results)
    failed = [r.table_name for r in results if not r.success and not r.cancelled]

    error_message = ""
    if failed:
        error_message = f"{len(failed)} of {total} tables failed: {', '.join(failed)}"
    elif cancelled:
        error_message = "Replication was cancelled"

    return DataReplicationResult(
        success=all(r.success for r in results),
        cancelled=cancelled,
        error_message=error_message,
        table_results=results,
    )
