"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async MySQL adapter.

Usage:
    from db_replicator.adapters import DatabaseClient, AsyncMySQLAdapter
"""

from db_replicator.adapters.base import DatabaseClient, Transaction
from db_replicator.adapters.mysql import AsyncMySQLAdapter, create_async_engine_pooled

__all__ = [
    "DatabaseClient",
    "Transaction",
    "AsyncMySQLAdapter",
    "create_async_engine_pooled",
]
