"""Replication orchestrator (async).

Runs the three stages in order (connection validation, schema
synchronization and data copy) and folds their outcomes into one
``ReplicationResult``.  A failing stage stops the run.

Usage:
    from db_replicator.replication.service import run_replication

    result = await run_replication(config, progress=channel, cancel=cancel)
    if result.preview_only:
        print(result.schema_sync_result.synchronization_script)
"""

import asyncio
import logging
import time
from datetime import timedelta

from db_replicator.config.models import ReplicationConfig
from db_replicator.factory import connect_and_validate
from db_replicator.replication.models import ReplicationResult
from db_replicator.replication.progress import ProgressChannel
from db_replicator.replication.replicator import replicate_data
from db_replicator.schema.sync import synchronize_schema

logger = logging.getLogger(__name__)


async def run_replication(
    config: ReplicationConfig,
    progress: ProgressChannel | None = None,
    cancel: asyncio.Event | None = None,
) -> ReplicationResult:
    """Replicate schema and data from ``config.source`` to ``config.target``.

    Stages:

    1. ``connect_and_validate`` -- both endpoints must answer.
    2. ``synchronize_schema`` (when ``sync_schema``) -- with
       ``preview_schema_changes`` set and differences found, the run stops
       here with ``preview_only=True``.
    3. ``replicate_data`` -- success only if every table succeeded.

    Args:
        config: Replication configuration.
        progress: Optional progress channel for the data stage.
        cancel: Optional cancellation event for the data stage.

    Returns:
        ``ReplicationResult``.  Unexpected errors are caught and reported
        through ``error_message``; the duration is always set.
    """
    started = time.monotonic()

    def elapsed() -> timedelta:
        return timedelta(seconds=time.monotonic() - started)

    validation = None
    schema_result = None
    try:
        logger.info(
            f"Starting replication {config.source.describe()} -> "
            f"{config.target.describe()} (mode={config.mode.value})"
        )

        validation = await connect_and_validate(config)
        if not validation.success:
            return ReplicationResult(
                error_message=validation.error_message,
                duration=elapsed(),
                validation_result=validation,
            )

        if config.sync_schema:
            schema_result = await synchronize_schema(
                config, preview_only=config.preview_schema_changes
            )
            if not schema_result.success:
                return ReplicationResult(
                    error_message=f"Schema synchronization failed: {schema_result.error_message}",
                    duration=elapsed(),
                    validation_result=validation,
                    schema_sync_result=schema_result,
                )
            comparison = schema_result.comparison_result
            if (
                config.preview_schema_changes
                and comparison is not None
                and comparison.has_differences
            ):
                logger.info("Schema changes previewed; data replication skipped")
                return ReplicationResult(
                    success=True,
                    preview_only=True,
                    duration=elapsed(),
                    validation_result=validation,
                    schema_sync_result=schema_result,
                )

        data_result = await replicate_data(config, progress=progress, cancel=cancel)

        result = ReplicationResult(
            success=data_result.success,
            cancelled=data_result.cancelled,
            error_message=data_result.error_message,
            duration=elapsed(),
            rows_processed=data_result.total_rows_processed,
            tables_processed=len(data_result.table_results),
            validation_result=validation,
            schema_sync_result=schema_result,
            data_replication_result=data_result,
        )
        logger.info(
            f"Replication finished: success={result.success}, "
            f"{result.rows_processed} rows in {result.tables_processed} tables "
            f"({result.duration.total_seconds():.1f}s)"
        )
        return result

    except Exception as e:
        logger.error(f"Replication failed: {e}")
        return ReplicationResult(
            error_message=str(e),
            duration=elapsed(),
            validation_result=validation,
            schema_sync_result=schema_result,
        )
