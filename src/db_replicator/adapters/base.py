"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the replicator talks to, and
the ``Transaction`` handle a client yields for batched writes.  All I/O
methods are ``async def`` -- the library is async-first.

Usage:
    from db_replicator.adapters.base import DatabaseClient

    async def copy_first_rows(source: DatabaseClient, target: DatabaseClient) -> None:
        columns = await source.get_column_names("users")
        rows = await source.fetch_rows("users", columns, columns, offset=0, limit=10)
        async with target.transaction() as tx:
            for row in rows:
                await tx.insert_row("users", columns, row)
        await source.close()
        await target.close()
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class Transaction(Protocol):
    """Handle for statements executed inside one transaction.

    The owning ``DatabaseClient.transaction()`` context manager commits when
    the block exits normally and rolls back when it raises.
    """

    async def insert_row(
        self, table: str, columns: Sequence[str], values: Sequence[Any]
    ) -> None:
        """Insert one row with a parameterized INSERT statement.

        Args:
            table: Table name (unquoted).
            columns: Column names in value order.
            values: Row values; ``None`` is written as SQL NULL.
        """
        ...

    async def execute(self, sql: str) -> None:
        """Execute one raw SQL statement without bind parameters.

        Used for DDL.  The statement must not carry a client-side terminator
        other than ``;``.
        """
        ...


class DatabaseClient(Protocol):
    """Database client interface used by the replication pipeline.

    Each client is owned by exactly one stage or table worker and must be
    closed by its owner.
    """

    async def server_version(self) -> str:
        """Return the server version string (e.g. ``8.0.36``).

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
        """
        ...

    async def test_connection(self) -> bool:
        """Return ``True`` if ``SELECT 1`` succeeds.

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
        """
        ...

    async def list_tables(self) -> list[str]:
        """Base table names of the endpoint's database, sorted by name."""
        ...

    async def get_column_names(self, table: str) -> list[str]:
        """Column names of *table* in ordinal order."""
        ...

    async def get_primary_key(self, table: str) -> list[str]:
        """Primary key column names of *table* in key order (may be empty)."""
        ...

    async def count_rows(self, table: str) -> int:
        """Number of rows currently in *table*."""
        ...

    async def fetch_rows(
        self,
        table: str,
        columns: Sequence[str],
        order_by: Sequence[str],
        offset: int,
        limit: int,
    ) -> list[tuple]:
        """Read one page of rows with a stable ORDER BY.

        Args:
            table: Table name.
            columns: Columns to select, in output order.
            order_by: Columns that give a deterministic row order.
            offset: Number of rows to skip.
            limit: Maximum number of rows to return.

        Returns:
            List of row tuples, empty when the offset is past the end.
        """
        ...

    async def truncate(self, table: str) -> None:
        """Remove every row of *table*."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[Transaction]:
        """Open a connection and a transaction scoped to an ``async with`` block."""
        ...

    async def close(self) -> None:
        """Release connections and pooled resources."""
        ...
