"""Schema synchronization (async).

Compares the source and target schemas, generates the synchronization
script and, unless previewing, applies it to the target inside a single
transaction.

Note that MySQL commits DDL implicitly: a failure rolls back the open
transaction, but statements that already ran stay applied.

Usage:
    from db_replicator.schema.sync import synchronize_schema

    # Preview what would change
    result = await synchronize_schema(config, preview_only=True)
    print(result.synchronization_script)

    # Apply
    result = await synchronize_schema(config)
    if not result.success:
        print(result.error_message)
"""

import logging

from db_replicator.config.models import ConnectionEndpoint, ReplicationConfig
from db_replicator.errors import SchemaApplyError
from db_replicator.factory import create_adapter
from db_replicator.schema.comparator import compare_schemas
from db_replicator.schema.models import ReplicationScript, SchemaSyncResult
from db_replicator.schema.script import generate_script
from db_replicator.schema.splitter import (
    is_comment_only,
    iter_statements,
    strip_terminator,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def apply_script(endpoint: ConnectionEndpoint, script: ReplicationScript) -> int:
    """Execute a synchronization script against *endpoint*.

    The rendered script is split into statements; blank and comment-only
    statements are skipped and each remaining statement runs with its
    terminator removed.  Everything runs on one connection inside one
    transaction.

    Args:
        endpoint: Target endpoint.
        script: Script produced by ``generate_script``.

    Returns:
        Number of statements executed.

    Raises:
        SchemaApplyError: On the first failing statement, after rollback.
    """
    adapter = create_adapter(endpoint)
    executed = 0
    current: str | None = None
    try:
        async with adapter.transaction() as tx:
            for statement, terminator in iter_statements(script.to_sql()):
                sql = strip_terminator(statement, terminator)
                if not sql or is_comment_only(sql):
                    continue
                current = sql
                await tx.execute(sql)
                executed += 1
    except Exception as e:
        logger.error(f"Schema statement {executed + 1} failed, rolled back: {e}")
        raise SchemaApplyError(
            f"Failed to apply schema changes: {e}", statement=current
        ) from e
    finally:
        await adapter.close()

    logger.info(f"Applied {executed} schema statements to {endpoint.describe()}")
    return executed


async def synchronize_schema(
    config: ReplicationConfig,
    preview_only: bool = False,
) -> SchemaSyncResult:
    """Bring the target schema in line with the source.

    Args:
        config: Replication configuration (source and target endpoints).
        preview_only: If ``True``, generate the script but do not execute it.

    Returns:
        ``SchemaSyncResult``.  Errors are reported through ``success`` and
        ``error_message``, never raised.

    Example:
        >>> result = await synchronize_schema(config, preview_only=True)
        >>> result.comparison_result.summary()
        '1 table, 0 view, 0 procedure, 0 function, 0 trigger differences'
    """
    comparison = None
    script = ReplicationScript()
    try:
        comparison = await compare_schemas(config.source, config.target)

        if not comparison.has_differences:
            logger.info("Source and target schemas are identical")
            return SchemaSyncResult(success=True, comparison_result=comparison)

        script = generate_script(comparison)

        if preview_only:
            logger.info(
                f"Preview only: {len(script.executable_statements)} schema "
                f"statements not applied"
            )
            return SchemaSyncResult(
                success=True, comparison_result=comparison, script=script
            )

        await apply_script(config.target, script)
        return SchemaSyncResult(success=True, comparison_result=comparison, script=script)

    except Exception as e:
        logger.error(f"Schema synchronization failed: {e}")
        return SchemaSyncResult(
            success=False,
            error_message=str(e),
            comparison_result=comparison,
            script=script,
        )
