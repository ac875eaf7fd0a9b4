"""Async MySQL database adapter.

Provides ``AsyncMySQLAdapter``, an async implementation of the
``DatabaseClient`` protocol using SQLAlchemy's async engine with the
``aiomysql`` driver.

Usage:
    from db_replicator.adapters.mysql import AsyncMySQLAdapter

    adapter = AsyncMySQLAdapter(endpoint)
    tables = await adapter.list_tables()
    await adapter.close()
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from db_replicator.config.models import ConnectionEndpoint
from db_replicator.dialect import quote_identifier, quote_identifiers
from db_replicator.errors import DatabaseConnectionError

# Raw DDL must reach the driver untouched (no %-formatting of the statement)
_RAW_SQL_OPTIONS = {"no_parameters": True}


def create_async_engine_pooled(endpoint: ConnectionEndpoint, **kwargs: Any) -> AsyncEngine:
    """Create an async SQLAlchemy engine with connection pooling.

    Default pool settings:

    - ``pool_size=5``: Reasonable default for typical workloads.
    - ``max_overflow``: Up to the endpoint's ``max_pool_size`` in total.
    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``pool_recycle=300``: Recycle connections every 5 minutes.

    Args:
        endpoint: Resolved connection endpoint.
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.

    Returns:
        Configured ``AsyncEngine``.
    """
    pool_size = 5
    defaults: dict[str, Any] = {
        "pool_size": pool_size,
        "max_overflow": max(endpoint.max_pool_size - pool_size, 0),
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "echo": False,
        "connect_args": endpoint.connect_args(),
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_async_engine(endpoint.build_url(), **merged)


class MySQLTransaction:
    """``Transaction`` bound to one open connection with an active transaction."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def insert_row(
        self, table: str, columns: Sequence[str], values: Sequence[Any]
    ) -> None:
        placeholders = ", ".join(f":p{i}" for i in range(len(columns)))
        query = text(
            f"INSERT INTO {quote_identifier(table)} ({quote_identifiers(list(columns))}) "
            f"VALUES ({placeholders})"
        )
        params = {f"p{i}": value for i, value in enumerate(values)}
        await self._conn.execute(query, params)

    async def execute(self, sql: str) -> None:
        await self._conn.exec_driver_sql(sql, execution_options=_RAW_SQL_OPTIONS)


class AsyncMySQLAdapter:
    """Async MySQL implementation of the ``DatabaseClient`` protocol.

    Write sessions (``truncate`` and ``transaction``) run with
    ``FOREIGN_KEY_CHECKS = 0`` so tables can be loaded in name order.

    Args:
        endpoint: Resolved connection endpoint.
        **engine_kwargs: Additional keyword arguments forwarded to
            ``create_async_engine_pooled``.

    Example:
        adapter = AsyncMySQLAdapter(endpoint)
        version = await adapter.server_version()
        await adapter.close()
    """

    def __init__(self, endpoint: ConnectionEndpoint, **engine_kwargs: Any) -> None:
        self._endpoint = endpoint
        self._engine: AsyncEngine = create_async_engine_pooled(endpoint, **engine_kwargs)

    @property
    def endpoint(self) -> ConnectionEndpoint:
        return self._endpoint

    # ------------------------------------------------------------------
    # Connection Test
    # ------------------------------------------------------------------

    async def server_version(self) -> str:
        """Return ``SELECT VERSION()``.

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
        """
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT VERSION()"))
                return str(result.scalar())
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseConnectionError(
                f"Could not connect to {self._endpoint.describe()}: {type(e).__name__}"
            ) from e

    async def test_connection(self) -> bool:
        """Test database connection health with ``SELECT 1``.

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
        """
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseConnectionError(
                f"Connection test failed for {self._endpoint.describe()}: {type(e).__name__}"
            ) from e

    # ------------------------------------------------------------------
    # Catalog Queries
    # ------------------------------------------------------------------

    async def list_tables(self) -> list[str]:
        query = text("""
            SELECT TABLE_NAME
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """)
        async with self._engine.connect() as conn:
            result = await conn.execute(query, {"database": self._endpoint.database})
            return [row[0] for row in result.fetchall()]

    async def get_column_names(self, table: str) -> list[str]:
        query = text("""
            SELECT COLUMN_NAME
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
        """)
        async with self._engine.connect() as conn:
            result = await conn.execute(
                query, {"database": self._endpoint.database, "table": table}
            )
            return [row[0] for row in result.fetchall()]

    async def get_primary_key(self, table: str) -> list[str]:
        query = text("""
            SELECT COLUMN_NAME
            FROM information_schema.KEY_COLUMN_USAGE
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
              AND CONSTRAINT_NAME = 'PRIMARY'
            ORDER BY ORDINAL_POSITION
        """)
        async with self._engine.connect() as conn:
            result = await conn.execute(
                query, {"database": self._endpoint.database, "table": table}
            )
            return [row[0] for row in result.fetchall()]

    async def count_rows(self, table: str) -> int:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                text(f"SELECT COUNT(*) FROM {quote_identifier(table)}")
            )
            return int(result.scalar() or 0)

    # ------------------------------------------------------------------
    # Data Transfer
    # ------------------------------------------------------------------

    async def fetch_rows(
        self,
        table: str,
        columns: Sequence[str],
        order_by: Sequence[str],
        offset: int,
        limit: int,
    ) -> list[tuple]:
        """Select one page of rows ordered by *order_by*."""
        order_clause = f" ORDER BY {quote_identifiers(list(order_by))}" if order_by else ""
        query = text(
            f"SELECT {quote_identifiers(list(columns))} FROM {quote_identifier(table)}"
            f"{order_clause} LIMIT :limit OFFSET :offset"
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(query, {"limit": limit, "offset": offset})
            return [tuple(row) for row in result.fetchall()]

    async def truncate(self, table: str) -> None:
        async with self._engine.begin() as conn:
            await conn.exec_driver_sql(
                "SET FOREIGN_KEY_CHECKS = 0", execution_options=_RAW_SQL_OPTIONS
            )
            await conn.exec_driver_sql(
                f"TRUNCATE TABLE {quote_identifier(table)}",
                execution_options=_RAW_SQL_OPTIONS,
            )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MySQLTransaction]:
        """Open one connection and one transaction.

        Commits when the block exits normally; rolls back when it raises
        (including ``ReplicationCancelled``).  The connection is returned to
        the pool on every exit path.
        """
        async with self._engine.begin() as conn:
            await conn.exec_driver_sql(
                "SET FOREIGN_KEY_CHECKS = 0", execution_options=_RAW_SQL_OPTIONS
            )
            yield MySQLTransaction(conn)

    async def close(self) -> None:
        """Close the async engine and dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()
