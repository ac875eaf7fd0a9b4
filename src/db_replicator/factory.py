"""Database client factory and endpoint validation.

Usage:
    from db_replicator.factory import create_adapter, connect_and_validate

    result = await connect_and_validate(config)
    if result.success:
        adapter = create_adapter(config.source)
        tables = await adapter.list_tables()
        await adapter.close()
"""

import logging
from typing import TYPE_CHECKING

from db_replicator.adapters.base import DatabaseClient
from db_replicator.adapters.mysql import AsyncMySQLAdapter
from db_replicator.config.models import ConnectionEndpoint, ReplicationConfig

if TYPE_CHECKING:
    from db_replicator.replication.models import ValidationResult

logger = logging.getLogger(__name__)


def create_adapter(endpoint: ConnectionEndpoint) -> DatabaseClient:
    """Create a database client for *endpoint*.

    No connection is opened until the first query.

    Args:
        endpoint: Resolved connection endpoint.

    Returns:
        An ``AsyncMySQLAdapter`` instance.  The caller owns it and must
        ``await adapter.close()``.
    """
    return AsyncMySQLAdapter(endpoint)


async def _check_endpoint(endpoint: ConnectionEndpoint, role: str) -> str:
    """Test one endpoint and return its server version."""
    adapter = create_adapter(endpoint)
    try:
        await adapter.test_connection()
        version = await adapter.server_version()
    finally:
        await adapter.close()
    logger.info(f"Connected to {role} {endpoint.describe()} (MySQL {version})")
    return version


async def connect_and_validate(config: ReplicationConfig) -> "ValidationResult":
    """Test both endpoints and record their server versions.

    Args:
        config: Replication configuration.

    Returns:
        ``ValidationResult``.  A connection failure is reported through
        ``success=False`` and ``error_message``, never raised.

    Example:
        >>> result = await connect_and_validate(config)
        >>> if not result.success:
        ...     print(f"Failed: {result.error_message}")
    """
    from db_replicator.replication.models import ValidationResult

    try:
        source_version = await _check_endpoint(config.source, "source")
    except Exception as e:
        logger.error(f"Source connection failed: {e}")
        return ValidationResult(
            success=False, error_message=f"Failed to connect to source database: {e}"
        )

    try:
        target_version = await _check_endpoint(config.target, "target")
    except Exception as e:
        logger.error(f"Target connection failed: {e}")
        return ValidationResult(
            success=False,
            error_message=f"Failed to connect to target database: {e}",
            source_version=source_version,
        )

    return ValidationResult(
        success=True, source_version=source_version, target_version=target_version
    )
