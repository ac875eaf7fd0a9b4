"""Tests for the async MySQL adapter and its engine factory.

Most tests replace the SQLAlchemy engine with mocks and assert on the SQL and
parameters handed to it.  Transaction scoping runs against a real async
engine (SQLite through aiosqlite).
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from db_replicator.adapters.mysql import (
    AsyncMySQLAdapter,
    MySQLTransaction,
    create_async_engine_pooled,
)
from db_replicator.config.models import ConnectionEndpoint
from db_replicator.errors import DatabaseConnectionError

ENDPOINT = ConnectionEndpoint(
    host="db.internal", database="shop", username="app", password="s3cret", max_pool_size=20
)


def _make_conn() -> MagicMock:
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.exec_driver_sql = AsyncMock()
    return conn


def _make_adapter(conn: MagicMock) -> AsyncMySQLAdapter:
    """Adapter whose engine hands out *conn* from connect() and begin()."""
    with patch("db_replicator.adapters.mysql.create_async_engine_pooled") as mock_create:
        mock_create.return_value = MagicMock()
        adapter = AsyncMySQLAdapter(ENDPOINT)

    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    engine.begin.return_value.__aenter__.return_value = conn
    engine.dispose = AsyncMock()
    adapter._engine = engine
    return adapter


# ============================================================================
# Test: create_async_engine_pooled Function
# ============================================================================


class TestCreateAsyncEnginePooled:
    """Verify engine defaults derived from the endpoint."""

    def test_returns_engine(self) -> None:
        """create_async_engine_pooled returns what create_async_engine builds."""
        with patch("db_replicator.adapters.mysql.create_async_engine") as mock_create:
            mock_engine = MagicMock(spec=AsyncEngine)
            mock_create.return_value = mock_engine
            assert create_async_engine_pooled(ENDPOINT) is mock_engine

    def test_passes_pool_settings(self) -> None:
        """Pool sizing follows the endpoint's max_pool_size."""
        with patch("db_replicator.adapters.mysql.create_async_engine") as mock_create:
            create_async_engine_pooled(ENDPOINT)

        url = mock_create.call_args.args[0]
        kwargs = mock_create.call_args.kwargs
        assert url.drivername == "mysql+aiomysql"
        assert url.host == "db.internal"
        assert url.database == "shop"
        assert kwargs["pool_size"] == 5
        assert kwargs["max_overflow"] == 15
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_recycle"] == 300
        assert kwargs["connect_args"] == {"connect_timeout": 30}

    def test_kwargs_override_defaults(self) -> None:
        """Caller keyword arguments win over defaults."""
        with patch("db_replicator.adapters.mysql.create_async_engine") as mock_create:
            create_async_engine_pooled(ENDPOINT, pool_size=1, echo=True)

        kwargs = mock_create.call_args.kwargs
        assert kwargs["pool_size"] == 1
        assert kwargs["echo"] is True


# ============================================================================
# Test: MySQLTransaction
# ============================================================================


class TestMySQLTransaction:
    """Verify row inserts are parameterized and DDL goes out raw."""

    def test_insert_row_uses_bound_parameters(self) -> None:
        """Values are bound, never interpolated into the statement."""
        conn = _make_conn()
        tx = MySQLTransaction(conn)

        asyncio.run(tx.insert_row("users", ["id", "email"], (1, "a'b@example.com")))

        query, params = conn.execute.await_args.args
        assert str(query) == "INSERT INTO `users` (`id`, `email`) VALUES (:p0, :p1)"
        assert params == {"p0": 1, "p1": "a'b@example.com"}

    def test_execute_sends_raw_sql(self) -> None:
        """DDL bypasses parameter formatting so '%' survives."""
        conn = _make_conn()
        tx = MySQLTransaction(conn)

        asyncio.run(tx.execute("CREATE VIEW `v` AS SELECT '100%' AS pct"))

        conn.exec_driver_sql.assert_awaited_once_with(
            "CREATE VIEW `v` AS SELECT '100%' AS pct",
            execution_options={"no_parameters": True},
        )


# ============================================================================
# Test: AsyncMySQLAdapter
# ============================================================================


class TestAsyncMySQLAdapter:
    """Verify adapter queries and error wrapping."""

    def test_constructor_builds_engine(self) -> None:
        """The engine is built from the endpoint with extra kwargs forwarded."""
        with patch("db_replicator.adapters.mysql.create_async_engine_pooled") as mock_create:
            adapter = AsyncMySQLAdapter(ENDPOINT, pool_size=2)
        mock_create.assert_called_once_with(ENDPOINT, pool_size=2)
        assert adapter.endpoint is ENDPOINT

    def test_server_version(self) -> None:
        """server_version returns the VERSION() scalar as text."""
        conn = _make_conn()
        conn.execute.return_value = MagicMock(scalar=MagicMock(return_value="8.0.36"))
        adapter = _make_adapter(conn)

        assert asyncio.run(adapter.server_version()) == "8.0.36"

    def test_connection_failure_wrapped(self) -> None:
        """Driver errors surface as DatabaseConnectionError without credentials."""
        conn = _make_conn()
        conn.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
        adapter = _make_adapter(conn)

        with pytest.raises(DatabaseConnectionError, match="Connection test failed") as exc_info:
            asyncio.run(adapter.test_connection())
        assert "s3cret" not in str(exc_info.value)

    def test_list_tables(self) -> None:
        """Base tables of the endpoint's database are listed."""
        conn = _make_conn()
        conn.execute.return_value = MagicMock(
            fetchall=MagicMock(return_value=[("orders",), ("users",)])
        )
        adapter = _make_adapter(conn)

        assert asyncio.run(adapter.list_tables()) == ["orders", "users"]
        _, params = conn.execute.await_args.args
        assert params == {"database": "shop"}

    def test_fetch_rows_pages_in_order(self) -> None:
        """fetch_rows orders by the given columns and pages with LIMIT/OFFSET."""
        conn = _make_conn()
        conn.execute.return_value = MagicMock(fetchall=MagicMock(return_value=[(3, "c")]))
        adapter = _make_adapter(conn)

        rows = asyncio.run(adapter.fetch_rows("users", ["id", "name"], ["id"], offset=2, limit=1))

        query, params = conn.execute.await_args.args
        assert str(query) == (
            "SELECT `id`, `name` FROM `users` ORDER BY `id` LIMIT :limit OFFSET :offset"
        )
        assert params == {"limit": 1, "offset": 2}
        assert rows == [(3, "c")]

    def test_truncate_disables_fk_checks(self) -> None:
        """truncate turns off foreign key checks first."""
        conn = _make_conn()
        adapter = _make_adapter(conn)

        asyncio.run(adapter.truncate("users"))

        statements = [c.args[0] for c in conn.exec_driver_sql.await_args_list]
        assert statements == ["SET FOREIGN_KEY_CHECKS = 0", "TRUNCATE TABLE `users`"]

    def test_close_disposes_engine(self) -> None:
        """close() disposes the connection pool."""
        adapter = _make_adapter(_make_conn())
        asyncio.run(adapter.close())
        adapter._engine.dispose.assert_awaited_once()


# ============================================================================
# Test: transaction() on a real async engine
# ============================================================================


def _sqlite_adapter(tmp_path) -> AsyncMySQLAdapter:
    """Adapter backed by a file SQLite database through aiosqlite.

    SQLite has no FOREIGN_KEY_CHECKS variable, so that one statement is
    rewritten to its pragma equivalent on the way to the driver.
    """
    with patch("db_replicator.adapters.mysql.create_async_engine_pooled"):
        adapter = AsyncMySQLAdapter(ENDPOINT)

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'replica.db'}")

    @event.listens_for(engine.sync_engine, "before_cursor_execute", retval=True)
    def _rewrite(conn, cursor, statement, parameters, context, executemany):
        if statement == "SET FOREIGN_KEY_CHECKS = 0":
            statement = "PRAGMA foreign_keys = OFF"
        return statement, parameters

    adapter._engine = engine
    return adapter


async def _create_users(adapter: AsyncMySQLAdapter) -> None:
    async with adapter._engine.begin() as conn:
        await conn.exec_driver_sql("CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT)")


class TestTransactionOnEngine:
    """Verify commit and rollback through a real SQLAlchemy async engine."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, tmp_path) -> None:
        """Rows inserted in the block are visible after it exits."""
        adapter = _sqlite_adapter(tmp_path)
        try:
            await _create_users(adapter)

            async with adapter.transaction() as tx:
                assert isinstance(tx, MySQLTransaction)
                await tx.insert_row("users", ["id", "email"], (1, "a@example.com"))
                await tx.insert_row("users", ["id", "email"], (2, None))

            assert await adapter.count_rows("users") == 2
        finally:
            await adapter.close()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, tmp_path) -> None:
        """An exception inside the block discards the whole batch."""
        adapter = _sqlite_adapter(tmp_path)
        try:
            await _create_users(adapter)

            with pytest.raises(RuntimeError, match="boom"):
                async with adapter.transaction() as tx:
                    await tx.insert_row("users", ["id", "email"], (1, "a@example.com"))
                    raise RuntimeError("boom")

            assert await adapter.count_rows("users") == 0
        finally:
            await adapter.close()

    @pytest.mark.asyncio
    async def test_consecutive_batches(self, tmp_path) -> None:
        """Each batch gets a fresh transaction; earlier commits survive a failed batch."""
        adapter = _sqlite_adapter(tmp_path)
        try:
            await _create_users(adapter)

            async with adapter.transaction() as tx:
                await tx.insert_row("users", ["id", "email"], (1, "a@example.com"))
            with pytest.raises(Exception):
                async with adapter.transaction() as tx:
                    await tx.insert_row("users", ["id", "email"], (2, "b@example.com"))
                    await tx.insert_row("users", ["id", "email"], (1, "dup@example.com"))

            assert await adapter.count_rows("users") == 1
        finally:
            await adapter.close()

    @pytest.mark.asyncio
    async def test_raw_statements_execute(self, tmp_path) -> None:
        """execute() runs DDL inside the transaction."""
        adapter = _sqlite_adapter(tmp_path)
        try:
            async with adapter.transaction() as tx:
                await tx.execute("CREATE TABLE audit (id INTEGER, note TEXT DEFAULT '100%')")

            assert await adapter.count_rows("audit") == 0
        finally:
            await adapter.close()
