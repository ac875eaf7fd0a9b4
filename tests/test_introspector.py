"""Tests for MySQL schema introspection.

Catalog queries are answered by a fake ``_fetch`` that dispatches on the
query text, so the row-to-model mapping is tested without a server.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from db_replicator.config.models import ConnectionEndpoint
from db_replicator.errors import DatabaseConnectionError
from db_replicator.schema.introspector import SchemaIntrospector
from db_replicator.schema.models import ObjectType

ENDPOINT = ConnectionEndpoint(database="shop", username="app", password="pw")

USERS_DDL = "CREATE TABLE `users` (\n  `id` int NOT NULL AUTO_INCREMENT,\n  PRIMARY KEY (`id`)\n)"
VIEW_DDL = (
    "CREATE ALGORITHM=UNDEFINED VIEW `shop`.`active_users` AS "
    "select `shop`.`users`.`id` AS `id` from `shop`.`users`"
)
PROC_DDL = "CREATE PROCEDURE `cleanup`()\nBEGIN\n  DELETE FROM users;\nEND"
TRIGGER_DDL = "CREATE TRIGGER `users_bi` BEFORE INSERT ON `users` FOR EACH ROW SET NEW.id = NEW.id"


def _catalog(query: str, params: dict | None = None) -> list[tuple]:
    """Answer catalog queries for a small ``shop`` database."""
    params = params or {}
    if query.startswith("SHOW CREATE TABLE"):
        return [("users", USERS_DDL)]
    if query.startswith("SHOW CREATE VIEW"):
        return [("active_users", VIEW_DDL, "utf8mb4", "utf8mb4_0900_ai_ci")]
    if query.startswith("SHOW CREATE PROCEDURE"):
        return [("cleanup", "STRICT_TRANS_TABLES", PROC_DDL, "utf8mb4", "x", "y")]
    if query.startswith("SHOW CREATE FUNCTION"):
        return [("f", "", None, "utf8mb4", "x", "y")]
    if query.startswith("SHOW CREATE TRIGGER"):
        return [("users_bi", "", TRIGGER_DDL, "utf8mb4", "x", "y", "2024-01-01")]
    if "information_schema.STATISTICS" in query:
        return [
            ("PRIMARY", "id", 0, "BTREE"),
            ("ix_name_email", "name", 1, "BTREE"),
            ("ix_name_email", "email", 1, "BTREE"),
        ]
    if "information_schema.KEY_COLUMN_USAGE" in query:
        return [("fk_org", "org_id", "orgs", "id", "CASCADE", "SET NULL")]
    if "information_schema.COLUMNS" in query:
        return [
            ("id", "int", "NO", None, "auto_increment", ""),
            ("email", "varchar(255)", "YES", None, "", "login address"),
            ("org_id", "int", "YES", "0", "", ""),
        ]
    if "information_schema.TABLES" in query:
        return [("users", "InnoDB", "utf8mb4_0900_ai_ci"), ("schema_migrations", "InnoDB", None)]
    if "information_schema.VIEWS" in query:
        return [("active_users", "select `shop`.`users`.`id` AS `id` from `shop`.`users`")]
    if "information_schema.ROUTINES" in query:
        if params.get("kind") == "PROCEDURE":
            return [("cleanup", "BEGIN\n  DELETE FROM users;\nEND")]
        return [("f", None)]
    if "information_schema.TRIGGERS" in query:
        return [("users_bi", "users", "BEFORE", "INSERT", "SET NEW.id = NEW.id")]
    raise AssertionError(f"unexpected query: {query}")


def _make_introspector(**kwargs) -> SchemaIntrospector:
    introspector = SchemaIntrospector(ENDPOINT, **kwargs)
    introspector._fetch = AsyncMock(side_effect=_catalog)
    return introspector


# ============================================================
# Test: introspect()
# ============================================================


class TestIntrospect:
    """Verify catalog rows map onto the snapshot models."""

    def test_tables_and_columns(self) -> None:
        """Columns keep order, nullability, defaults and comments."""
        snapshot = asyncio.run(_make_introspector().introspect())

        assert snapshot.database == "shop"
        users = snapshot.tables["users"]
        assert users.engine == "InnoDB"
        assert users.create_statement == USERS_DDL
        assert [c.name for c in users.columns] == ["id", "email", "org_id"]
        assert not users.columns[0].is_nullable
        assert users.columns[0].extra == "auto_increment"
        assert users.columns[1].comment == "login address"
        assert users.columns[0].comment is None
        assert users.columns[2].default == "0"

    def test_indexes_grouped_in_sequence(self) -> None:
        """Index rows are grouped by name with columns in sequence order."""
        snapshot = asyncio.run(_make_introspector().introspect())
        indexes = {i.name: i for i in snapshot.tables["users"].indexes}

        assert indexes["PRIMARY"].is_unique
        assert indexes["ix_name_email"].columns == ["name", "email"]
        assert not indexes["ix_name_email"].is_unique

    def test_foreign_keys(self) -> None:
        """Foreign keys carry referenced columns and rules."""
        snapshot = asyncio.run(_make_introspector().introspect())
        (fk,) = snapshot.tables["users"].foreign_keys

        assert fk.name == "fk_org"
        assert fk.columns == ["org_id"]
        assert fk.referenced_table == "orgs"
        assert fk.referenced_columns == ["id"]
        assert fk.on_update == "CASCADE"
        assert fk.on_delete == "SET NULL"

    def test_excluded_tables_case_insensitive(self) -> None:
        """Excluded tables are skipped regardless of case."""
        introspector = _make_introspector(excluded_tables={"SCHEMA_MIGRATIONS"})
        snapshot = asyncio.run(introspector.introspect())
        assert set(snapshot.tables) == {"users"}

    def test_no_exclusions_by_default(self) -> None:
        """By default every base table is introspected."""
        snapshot = asyncio.run(_make_introspector().introspect())
        assert set(snapshot.tables) == {"users", "schema_migrations"}

    def test_views_strip_own_schema(self) -> None:
        """View bodies and definitions lose their own-database qualifiers."""
        snapshot = asyncio.run(_make_introspector().introspect())
        view = snapshot.views["active_users"]

        assert view.object_type == ObjectType.VIEW
        assert "`shop`." not in view.body
        assert "`shop`." not in view.definition
        assert view.definition.endswith("from `users`")

    def test_routines(self) -> None:
        """Procedures and functions are read separately; NULL definitions become empty."""
        snapshot = asyncio.run(_make_introspector().introspect())

        proc = snapshot.procedures["cleanup"]
        assert proc.object_type == ObjectType.PROCEDURE
        assert proc.definition == PROC_DDL
        assert "DELETE FROM users" in proc.body

        func = snapshot.functions["f"]
        assert func.object_type == ObjectType.FUNCTION
        assert func.definition == ""
        assert func.body == ""

    def test_triggers_include_timing_and_event(self) -> None:
        """A trigger body carries timing, event and table."""
        snapshot = asyncio.run(_make_introspector().introspect())
        trigger = snapshot.triggers["users_bi"]

        assert trigger.table == "users"
        assert trigger.body == "BEFORE INSERT ON users SET NEW.id = NEW.id"
        assert trigger.definition == TRIGGER_DDL


# ============================================================
# Test: Connection not established errors
# ============================================================


class TestConnectionNotEstablished:
    """Verify methods raise RuntimeError when not connected."""

    def test_introspect_requires_connection(self) -> None:
        """introspect() should raise RuntimeError if not connected."""
        with pytest.raises(RuntimeError, match="not connected"):
            asyncio.run(SchemaIntrospector(ENDPOINT).introspect())

    def test_test_connection_requires_connection(self) -> None:
        """test_connection() should raise RuntimeError if not connected."""
        with pytest.raises(RuntimeError, match="not connected"):
            asyncio.run(SchemaIntrospector(ENDPOINT).test_connection())


# ============================================================
# Test: Async context manager behavior
# ============================================================


class TestAsyncContextManager:
    """Verify __aenter__ and __aexit__ behavior with mocks."""

    def test_aenter_opens_connection(self) -> None:
        """__aenter__ creates a single-connection engine and connects."""
        mock_conn = AsyncMock()
        mock_engine = MagicMock()
        mock_engine.connect = AsyncMock(return_value=mock_conn)

        with patch(
            "db_replicator.schema.introspector.create_async_engine_pooled",
            return_value=mock_engine,
        ) as mock_create:
            introspector = SchemaIntrospector(ENDPOINT)
            asyncio.run(introspector.__aenter__())

        mock_create.assert_called_once_with(ENDPOINT, pool_size=1)
        assert introspector._conn is mock_conn

    def test_aenter_failure_raises_connection_error(self) -> None:
        """A refused connection disposes the engine and raises DatabaseConnectionError."""
        mock_engine = MagicMock()
        mock_engine.connect = AsyncMock(
            side_effect=OperationalError("connect", {}, Exception("refused"))
        )
        mock_engine.dispose = AsyncMock()

        with patch(
            "db_replicator.schema.introspector.create_async_engine_pooled",
            return_value=mock_engine,
        ):
            introspector = SchemaIntrospector(ENDPOINT)
            with pytest.raises(DatabaseConnectionError) as exc_info:
                asyncio.run(introspector.__aenter__())

        mock_engine.dispose.assert_awaited_once()
        # password never appears in the message
        assert "pw" not in str(exc_info.value)
        assert isinstance(exc_info.value, ConnectionError)

    def test_aexit_closes_connection(self) -> None:
        """__aexit__ closes the connection and disposes the engine."""
        introspector = SchemaIntrospector(ENDPOINT)
        mock_conn = AsyncMock()
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        introspector._conn = mock_conn
        introspector._engine = mock_engine

        asyncio.run(introspector.__aexit__(None, None, None))

        mock_conn.close.assert_awaited_once()
        mock_engine.dispose.assert_awaited_once()
        assert introspector._conn is None
        assert introspector._engine is None

    def test_aexit_noop_when_no_connection(self) -> None:
        """__aexit__ is a no-op when nothing was opened."""
        asyncio.run(SchemaIntrospector(ENDPOINT).__aexit__(None, None, None))
