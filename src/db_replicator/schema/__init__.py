"""Schema introspection, comparison and synchronization.

Provides live database introspection (``SchemaIntrospector``), snapshot
comparison (``compare_schemas``, ``compare_snapshots``), script generation
(``generate_script``), statement splitting (``split_statements``) and
synchronization (``synchronize_schema``).

Usage:
    from db_replicator.schema import compare_schemas, generate_script
    from db_replicator.schema import synchronize_schema
"""

from db_replicator.schema.comparator import compare_schemas, compare_snapshots
from db_replicator.schema.introspector import SchemaIntrospector
from db_replicator.schema.models import (
    ColumnSchema,
    ComparisonResult,
    Difference,
    DifferenceType,
    ForeignKeySchema,
    IndexSchema,
    ObjectType,
    ReplicationScript,
    RoutineSchema,
    SchemaSnapshot,
    SchemaSyncResult,
    ScriptStatement,
    TableSchema,
)
from db_replicator.schema.script import generate_script, sanitize_statement
from db_replicator.schema.splitter import (
    is_comment_only,
    iter_statements,
    split_statements,
    strip_terminator,
)
from db_replicator.schema.sync import apply_script, synchronize_schema

__all__ = [
    "SchemaIntrospector",
    "compare_schemas",
    "compare_snapshots",
    "generate_script",
    "sanitize_statement",
    "split_statements",
    "iter_statements",
    "strip_terminator",
    "is_comment_only",
    "synchronize_schema",
    "apply_script",
    "ColumnSchema",
    "IndexSchema",
    "ForeignKeySchema",
    "TableSchema",
    "RoutineSchema",
    "SchemaSnapshot",
    "ObjectType",
    "DifferenceType",
    "Difference",
    "ComparisonResult",
    "ScriptStatement",
    "ReplicationScript",
    "SchemaSyncResult",
]
