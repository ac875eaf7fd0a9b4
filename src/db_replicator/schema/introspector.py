"""MySQL schema introspection via information_schema.

This module queries the live database to extract schema information:
- Tables, columns, data types, nullability, defaults, extra, comments
- Indexes (name, columns in sequence order, uniqueness, type)
- Foreign keys (columns, referenced table/columns, update/delete rules)
- Views, stored procedures, functions and triggers

Verbatim CREATE statements come from the ``SHOW CREATE ...`` family.
Uses SQLAlchemy's async engine with the aiomysql driver.
"""

import logging
from types import TracebackType

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from db_replicator.adapters.mysql import create_async_engine_pooled
from db_replicator.config.models import ConnectionEndpoint
from db_replicator.dialect import quote_identifier
from db_replicator.errors import DatabaseConnectionError
from db_replicator.schema.models import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    ObjectType,
    RoutineSchema,
    SchemaSnapshot,
    TableSchema,
)

logger = logging.getLogger(__name__)

# Column holding the CREATE text in each SHOW CREATE result
_SHOW_CREATE_COLUMN = {
    "TABLE": 1,
    "VIEW": 1,
    "PROCEDURE": 2,
    "FUNCTION": 2,
    "TRIGGER": 2,
}


class SchemaIntrospector:
    """Introspects a MySQL database schema.

    Usage:
        async with SchemaIntrospector(endpoint) as introspector:
            snapshot = await introspector.introspect()
    """

    # Tables to exclude from introspection
    EXCLUDED_TABLES: frozenset[str] = frozenset()

    def __init__(
        self,
        endpoint: ConnectionEndpoint,
        excluded_tables: set[str] | None = None,
    ) -> None:
        """Initialize with a connection endpoint.

        Args:
            endpoint: Resolved connection endpoint.
            excluded_tables: Table names to skip (case-insensitive).  Defaults
                to ``EXCLUDED_TABLES``.
        """
        self._endpoint = endpoint
        names = self.EXCLUDED_TABLES if excluded_tables is None else excluded_tables
        self._excluded = {name.lower() for name in names}
        self._engine: AsyncEngine | None = None
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the connection."""
        self._engine = create_async_engine_pooled(self._endpoint, pool_size=1)
        try:
            self._conn = await self._engine.connect()
        except (SQLAlchemyError, OSError) as e:
            await self._engine.dispose()
            self._engine = None
            raise DatabaseConnectionError(
                f"Could not connect to {self._endpoint.describe()}: {type(e).__name__}"
            ) from e
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the connection and dispose of the engine."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    @property
    def database(self) -> str:
        return self._endpoint.database

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        rows = await self._fetch("SELECT 1")
        return bool(rows) and rows[0][0] == 1

    async def server_version(self) -> str:
        rows = await self._fetch("SELECT VERSION()")
        return str(rows[0][0]) if rows else ""

    async def introspect(self) -> SchemaSnapshot:
        """Introspect the full database schema.

        Returns:
            SchemaSnapshot with tables, views, procedures, functions and
            triggers keyed by name.
        """
        snapshot = SchemaSnapshot(database=self.database)

        for table_name, engine, collation in await self._get_tables():
            if table_name.lower() in self._excluded:
                continue
            snapshot.tables[table_name] = TableSchema(
                name=table_name,
                columns=await self._get_columns(table_name),
                indexes=await self._get_indexes(table_name),
                foreign_keys=await self._get_foreign_keys(table_name),
                create_statement=await self._show_create("TABLE", table_name),
                engine=engine,
                collation=collation,
            )

        snapshot.views = await self._get_views()
        snapshot.procedures = await self._get_routines(ObjectType.PROCEDURE)
        snapshot.functions = await self._get_routines(ObjectType.FUNCTION)
        snapshot.triggers = await self._get_triggers()

        logger.debug(
            f"Introspected {self._endpoint.describe()}: {len(snapshot.tables)} tables, "
            f"{len(snapshot.views)} views, {len(snapshot.procedures)} procedures, "
            f"{len(snapshot.functions)} functions, {len(snapshot.triggers)} triggers"
        )
        return snapshot

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    async def _fetch(self, query: str, params: dict | None = None) -> list[tuple]:
        if self._conn is None:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        result = await self._conn.execute(text(query), params or {})
        return [tuple(row) for row in result.fetchall()]

    async def _show_create(self, kind: str, name: str) -> str:
        """Verbatim CREATE statement for one object (empty if not visible)."""
        rows = await self._fetch(f"SHOW CREATE {kind} {quote_identifier(name)}")
        if not rows:
            return ""
        value = rows[0][_SHOW_CREATE_COLUMN[kind]]
        # NULL when the account lacks privileges on the routine
        return value or ""

    def _strip_own_schema(self, sql: str) -> str:
        """Remove `<database>`. qualifiers so the object can be recreated elsewhere."""
        return sql.replace(f"{quote_identifier(self.database)}.", "")

    # ------------------------------------------------------------------
    # Catalog readers
    # ------------------------------------------------------------------

    async def _get_tables(self) -> list[tuple[str, str | None, str | None]]:
        """Base tables with engine and collation."""
        query = """
            SELECT TABLE_NAME, ENGINE, TABLE_COLLATION
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """
        return [
            (name, engine, collation)
            for name, engine, collation in await self._fetch(
                query, {"database": self.database}
            )
        ]

    async def _get_columns(self, table_name: str) -> list[ColumnSchema]:
        """Columns of a table in ordinal order."""
        query = """
            SELECT
                COLUMN_NAME,
                COLUMN_TYPE,
                IS_NULLABLE,
                COLUMN_DEFAULT,
                EXTRA,
                COLUMN_COMMENT
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
        """
        columns = []
        for name, column_type, is_nullable, default, extra, comment in await self._fetch(
            query, {"database": self.database, "table": table_name}
        ):
            columns.append(
                ColumnSchema(
                    name=name,
                    column_type=column_type,
                    is_nullable=(is_nullable == "YES"),
                    default=default,
                    extra=extra or "",
                    comment=comment or None,
                )
            )
        return columns

    async def _get_indexes(self, table_name: str) -> list[IndexSchema]:
        """Indexes of a table, columns ordered by their sequence in the index."""
        query = """
            SELECT INDEX_NAME, COLUMN_NAME, NON_UNIQUE, INDEX_TYPE
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = :database
              AND TABLE_NAME = :table
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
        """
        indexes: dict[str, IndexSchema] = {}
        for name, column, non_unique, index_type in await self._fetch(
            query, {"database": self.database, "table": table_name}
        ):
            if name not in indexes:
                indexes[name] = IndexSchema(
                    name=name,
                    table=table_name,
                    is_unique=not int(non_unique),
                    index_type=index_type or "BTREE",
                )
            if column is not None:
                indexes[name].columns.append(column)
        return list(indexes.values())

    async def _get_foreign_keys(self, table_name: str) -> list[ForeignKeySchema]:
        """Foreign keys of a table with referential rules."""
        query = """
            SELECT
                kcu.CONSTRAINT_NAME,
                kcu.COLUMN_NAME,
                kcu.REFERENCED_TABLE_NAME,
                kcu.REFERENCED_COLUMN_NAME,
                rc.UPDATE_RULE,
                rc.DELETE_RULE
            FROM information_schema.KEY_COLUMN_USAGE kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
                ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
                AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
                AND rc.TABLE_NAME = kcu.TABLE_NAME
            WHERE kcu.TABLE_SCHEMA = :database
              AND kcu.TABLE_NAME = :table
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """
        foreign_keys: dict[str, ForeignKeySchema] = {}
        for name, column, ref_table, ref_column, on_update, on_delete in await self._fetch(
            query, {"database": self.database, "table": table_name}
        ):
            if name not in foreign_keys:
                foreign_keys[name] = ForeignKeySchema(
                    name=name,
                    table=table_name,
                    referenced_table=ref_table,
                    on_update=on_update,
                    on_delete=on_delete,
                )
            foreign_keys[name].columns.append(column)
            foreign_keys[name].referenced_columns.append(ref_column)
        return list(foreign_keys.values())

    async def _get_views(self) -> dict[str, RoutineSchema]:
        query = """
            SELECT TABLE_NAME, VIEW_DEFINITION
            FROM information_schema.VIEWS
            WHERE TABLE_SCHEMA = :database
            ORDER BY TABLE_NAME
        """
        views = {}
        for name, body in await self._fetch(query, {"database": self.database}):
            views[name] = RoutineSchema(
                name=name,
                object_type=ObjectType.VIEW,
                body=self._strip_own_schema(body or ""),
                definition=self._strip_own_schema(await self._show_create("VIEW", name)),
            )
        return views

    async def _get_routines(self, object_type: ObjectType) -> dict[str, RoutineSchema]:
        """Stored procedures or functions, depending on *object_type*."""
        kind = object_type.value.upper()
        query = """
            SELECT ROUTINE_NAME, ROUTINE_DEFINITION
            FROM information_schema.ROUTINES
            WHERE ROUTINE_SCHEMA = :database
              AND ROUTINE_TYPE = :kind
            ORDER BY ROUTINE_NAME
        """
        routines = {}
        for name, body in await self._fetch(
            query, {"database": self.database, "kind": kind}
        ):
            routines[name] = RoutineSchema(
                name=name,
                object_type=object_type,
                body=body or "",
                definition=await self._show_create(kind, name),
            )
        return routines

    async def _get_triggers(self) -> dict[str, RoutineSchema]:
        query = """
            SELECT
                TRIGGER_NAME,
                EVENT_OBJECT_TABLE,
                ACTION_TIMING,
                EVENT_MANIPULATION,
                ACTION_STATEMENT
            FROM information_schema.TRIGGERS
            WHERE TRIGGER_SCHEMA = :database
            ORDER BY TRIGGER_NAME
        """
        triggers = {}
        for name, table, timing, event, statement in await self._fetch(
            query, {"database": self.database}
        ):
            triggers[name] = RoutineSchema(
                name=name,
                object_type=ObjectType.TRIGGER,
                # Timing and event are part of what makes two triggers equal
                body=f"{timing} {event} ON {table} {statement or ''}",
                definition=await self._show_create("TRIGGER", name),
                table=table,
            )
        return triggers
