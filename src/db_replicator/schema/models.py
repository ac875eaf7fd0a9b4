"""Pydantic models for schema snapshots, differences and scripts.

This module contains schema-domain models:
- Introspection models: ColumnSchema, IndexSchema, ForeignKeySchema,
  TableSchema, RoutineSchema, SchemaSnapshot
- Difference models: DifferenceType, ObjectType, Difference, ComparisonResult
- Script models: ScriptStatement, ReplicationScript
- Sync result: SchemaSyncResult
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from db_replicator.dialect import (
    DEFAULT_TERMINATOR,
    DELIMITER_KEYWORD,
    quote_identifier,
    quote_identifiers,
)

# EXTRA markers reported by the catalog that are not valid column DDL
_NON_DDL_EXTRA = ("DEFAULT_GENERATED", "VIRTUAL GENERATED", "STORED GENERATED")


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a table column.

    Example:
        >>> col = ColumnSchema(name="id", column_type="int", is_nullable=False, extra="auto_increment")
        >>> col.definition
        '`id` int NOT NULL auto_increment'
    """

    name: str
    column_type: str
    is_nullable: bool = True
    default: str | None = None
    extra: str = ""  # e.g. auto_increment, on update CURRENT_TIMESTAMP
    comment: str | None = None

    @property
    def definition(self) -> str:
        """Column DDL fragment as used by ADD / MODIFY COLUMN."""
        parts = [quote_identifier(self.name), self.column_type]
        if not self.is_nullable:
            parts.append("NOT NULL")
        if self.default:
            # Catalog defaults come back unquoted; see script.sanitize_statement
            parts.append(f"DEFAULT {self.default}")
        extra = self.extra
        for marker in _NON_DDL_EXTRA:
            extra = extra.replace(marker, "")
        extra = " ".join(extra.split())
        if extra:
            parts.append(extra)
        if self.comment:
            escaped = self.comment.replace("\\", "\\\\").replace("'", "''")
            parts.append(f"COMMENT '{escaped}'")
        return " ".join(parts)


class IndexSchema(BaseModel):
    """Schema for a table index (``PRIMARY`` for the primary key)."""

    name: str
    table: str
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    index_type: str = "BTREE"  # BTREE, HASH, FULLTEXT, SPATIAL

    @property
    def is_primary(self) -> bool:
        return self.name.upper() == "PRIMARY"

    @property
    def definition(self) -> str:
        """ALTER TABLE statement that adds this index."""
        table = quote_identifier(self.table)
        columns = quote_identifiers(self.columns)
        if self.is_primary:
            return f"ALTER TABLE {table} ADD PRIMARY KEY ({columns})"

        index_type = self.index_type.upper()
        name = quote_identifier(self.name)
        if index_type in ("FULLTEXT", "SPATIAL"):
            return f"ALTER TABLE {table} ADD {index_type} INDEX {name} ({columns})"

        unique = "UNIQUE " if self.is_unique else ""
        return f"ALTER TABLE {table} ADD {unique}INDEX {name} ({columns}) USING {index_type}"

    @property
    def drop_statement(self) -> str:
        table = quote_identifier(self.table)
        if self.is_primary:
            return f"ALTER TABLE {table} DROP PRIMARY KEY"
        return f"DROP INDEX {quote_identifier(self.name)} ON {table}"


class ForeignKeySchema(BaseModel):
    """Schema for a foreign key constraint."""

    name: str
    table: str
    columns: list[str] = Field(default_factory=list)
    referenced_table: str
    referenced_columns: list[str] = Field(default_factory=list)
    on_update: str = "RESTRICT"
    on_delete: str = "RESTRICT"

    @property
    def definition(self) -> str:
        """ALTER TABLE statement that adds this constraint."""
        return (
            f"ALTER TABLE {quote_identifier(self.table)} "
            f"ADD CONSTRAINT {quote_identifier(self.name)} "
            f"FOREIGN KEY ({quote_identifiers(self.columns)}) "
            f"REFERENCES {quote_identifier(self.referenced_table)} "
            f"({quote_identifiers(self.referenced_columns)}) "
            f"ON DELETE {self.on_delete} ON UPDATE {self.on_update}"
        )

    @property
    def drop_statement(self) -> str:
        return (
            f"ALTER TABLE {quote_identifier(self.table)} "
            f"DROP FOREIGN KEY {quote_identifier(self.name)}"
        )


class TableSchema(BaseModel):
    """Schema for a base table, columns/indexes/foreign keys in declaration order."""

    name: str
    columns: list[ColumnSchema] = Field(default_factory=list)
    indexes: list[IndexSchema] = Field(default_factory=list)
    foreign_keys: list[ForeignKeySchema] = Field(default_factory=list)
    create_statement: str = ""  # SHOW CREATE TABLE output
    engine: str | None = None
    collation: str | None = None


class ObjectType(str, Enum):
    """Kinds of schema objects that can differ."""

    TABLE = "table"
    COLUMN = "column"
    INDEX = "index"
    FOREIGN_KEY = "foreign_key"
    VIEW = "view"
    PROCEDURE = "procedure"
    FUNCTION = "function"
    TRIGGER = "trigger"


class RoutineSchema(BaseModel):
    """Schema for a view, stored procedure, function or trigger.

    ``body`` is the catalog body text used for comparison; ``definition``
    is the verbatim CREATE statement used to recreate the object.
    """

    name: str
    object_type: ObjectType
    body: str = ""
    definition: str = ""
    table: str | None = None  # triggers only


class SchemaSnapshot(BaseModel):
    """All schema objects read from one endpoint at one point in time."""

    database: str = ""
    tables: dict[str, TableSchema] = Field(default_factory=dict)
    views: dict[str, RoutineSchema] = Field(default_factory=dict)
    procedures: dict[str, RoutineSchema] = Field(default_factory=dict)
    functions: dict[str, RoutineSchema] = Field(default_factory=dict)
    triggers: dict[str, RoutineSchema] = Field(default_factory=dict)


# ============================================================================
# Difference Models
# ============================================================================


class DifferenceType(str, Enum):
    """How an object compares between source and target."""

    MISSING = "missing"  # in source, absent from target
    DIFFERENT = "different"  # in both, unequal
    EXTRA = "extra"  # in target, absent from source


class Difference(BaseModel):
    """One named object's difference between source and target.

    A single tagged record for every object type; consumers branch on
    ``kind``.  Table differences carry nested column/index/foreign-key
    differences.
    """

    kind: DifferenceType
    object_type: ObjectType
    name: str
    source_definition: str | None = None
    target_definition: str | None = None
    drop_statement: str | None = None  # target-side drop for different indexes/FKs
    column_differences: list["Difference"] = Field(default_factory=list)
    index_differences: list["Difference"] = Field(default_factory=list)
    foreign_key_differences: list["Difference"] = Field(default_factory=list)

    @property
    def has_nested_differences(self) -> bool:
        return bool(
            self.column_differences
            or self.index_differences
            or self.foreign_key_differences
        )


class ComparisonResult(BaseModel):
    """Result of comparing two schema snapshots.

    Example:
        >>> result = ComparisonResult()
        >>> result.has_differences, result.total_differences
        (False, 0)
    """

    table_differences: list[Difference] = Field(default_factory=list)
    view_differences: list[Difference] = Field(default_factory=list)
    procedure_differences: list[Difference] = Field(default_factory=list)
    function_differences: list[Difference] = Field(default_factory=list)
    trigger_differences: list[Difference] = Field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        """True if any category has at least one difference."""
        return self.total_differences > 0

    @property
    def total_differences(self) -> int:
        """Sum of the five category list lengths."""
        return (
            len(self.table_differences)
            + len(self.view_differences)
            + len(self.procedure_differences)
            + len(self.function_differences)
            + len(self.trigger_differences)
        )

    def summary(self) -> str:
        """One-line count per category."""
        return (
            f"{len(self.table_differences)} table, "
            f"{len(self.view_differences)} view, "
            f"{len(self.procedure_differences)} procedure, "
            f"{len(self.function_differences)} function, "
            f"{len(self.trigger_differences)} trigger differences"
        )


# ============================================================================
# Script Models
# ============================================================================


class ScriptStatement(BaseModel):
    """One entry of a synchronization script.

    ``sql`` never carries a terminator.  When ``delimiter`` is set the
    statement body may itself contain ``;`` and is rendered between
    ``DELIMITER`` directives.
    """

    model_config = ConfigDict(frozen=True)

    sql: str
    delimiter: str | None = None
    is_comment: bool = False

    def to_sql(self) -> str:
        if self.is_comment:
            return "\n".join(f"-- {line}" for line in self.sql.splitlines())
        if self.delimiter:
            return (
                f"{DELIMITER_KEYWORD} {self.delimiter}\n"
                f"{self.sql}\n"
                f"{self.delimiter}\n"
                f"{DELIMITER_KEYWORD} {DEFAULT_TERMINATOR}"
            )
        return f"{self.sql}{DEFAULT_TERMINATOR}"


class ReplicationScript(BaseModel):
    """Ordered DDL statements that bring the target in line with the source."""

    model_config = ConfigDict(frozen=True)

    statements: list[ScriptStatement] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.statements

    @property
    def executable_statements(self) -> list[ScriptStatement]:
        return [s for s in self.statements if not s.is_comment]

    def to_sql(self) -> str:
        """Render as plain SQL text (empty string for an empty script)."""
        if not self.statements:
            return ""
        return "\n".join(s.to_sql() for s in self.statements) + "\n"


# ============================================================================
# Sync Result
# ============================================================================


class SchemaSyncResult(BaseModel):
    """Result of synchronize_schema()."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error_message: str = ""
    comparison_result: ComparisonResult | None = None
    script: ReplicationScript = Field(default_factory=ReplicationScript)

    @property
    def synchronization_script(self) -> str:
        """The generated script as SQL text."""
        return self.script.to_sql()
