"""Synchronization script generation.

Turns a ``ComparisonResult`` into an ordered ``ReplicationScript`` that,
applied to the target, brings its schema in line with the source.  Objects
that exist only on the target are never dropped.

Usage:
    from db_replicator.schema.script import generate_script

    script = generate_script(comparison)
    print(script.to_sql())
"""

import logging
import re

from db_replicator.dialect import ALTERNATE_TERMINATOR, quote_identifier
from db_replicator.schema.models import (
    ComparisonResult,
    Difference,
    DifferenceType,
    ObjectType,
    ReplicationScript,
    ScriptStatement,
)

logger = logging.getLogger(__name__)

_GUID_DEFAULT = re.compile(
    r"(\bDEFAULT\s+)"
    r"([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})"
    r"(?![\w-])",
    re.IGNORECASE,
)

_ZERO_DATETIME_DEFAULT = re.compile(
    r"(\bDEFAULT\s+)"
    r"(0000-00-00(?: 00:00:00(?:\.0+)?)?|0001-01-01 00:00:00(?:\.0+)?)"
    r"(?![\w:.-])",
    re.IGNORECASE,
)

_DROP_KEYWORD = {
    ObjectType.PROCEDURE: "PROCEDURE",
    ObjectType.FUNCTION: "FUNCTION",
    ObjectType.TRIGGER: "TRIGGER",
}


def sanitize_statement(sql: str) -> str:
    """Quote bare GUID and zero-datetime ``DEFAULT`` literals.

    Catalog defaults come back without quotes; these two shapes are not
    valid SQL unquoted.

    Example:
        >>> sanitize_statement("`d` datetime DEFAULT 0000-00-00 00:00:00")
        "`d` datetime DEFAULT '0000-00-00 00:00:00'"
    """
    sql = _GUID_DEFAULT.sub(r"\1'\2'", sql)
    return _ZERO_DATETIME_DEFAULT.sub(r"\1'\2'", sql)


def _statement(sql: str, delimiter: str | None = None) -> ScriptStatement:
    return ScriptStatement(sql=sanitize_statement(sql.strip()), delimiter=delimiter)


def _comment(text: str) -> ScriptStatement:
    return ScriptStatement(sql=text, is_comment=True)


# ------------------------------------------------------------------
# Per-category generators
# ------------------------------------------------------------------


def _nested_key_statements(differences: list[Difference]) -> list[ScriptStatement]:
    """Index / foreign-key statements: add missing, drop+recreate different."""
    statements = []
    for diff in differences:
        if diff.kind == DifferenceType.MISSING and diff.source_definition:
            statements.append(_statement(diff.source_definition))
        elif diff.kind == DifferenceType.DIFFERENT and diff.source_definition:
            if diff.drop_statement:
                statements.append(_statement(diff.drop_statement))
            statements.append(_statement(diff.source_definition))
    return statements


def table_statements(diff: Difference) -> list[ScriptStatement]:
    """Statements for one table difference."""
    if diff.kind == DifferenceType.MISSING:
        if not diff.source_definition:
            return []
        return [_statement(diff.source_definition)]

    if diff.kind != DifferenceType.DIFFERENT:
        return []

    table = quote_identifier(diff.name)
    statements = []
    for col in diff.column_differences:
        if col.kind == DifferenceType.MISSING:
            statements.append(
                _statement(f"ALTER TABLE {table} ADD COLUMN {col.source_definition}")
            )
        elif col.kind == DifferenceType.DIFFERENT:
            statements.append(
                _statement(f"ALTER TABLE {table} MODIFY COLUMN {col.source_definition}")
            )
        else:
            statements.append(
                _comment(
                    f"Column {diff.name}.{col.name} exists only in the target "
                    f"and is left in place"
                )
            )

    statements.extend(_nested_key_statements(diff.index_differences))
    statements.extend(_nested_key_statements(diff.foreign_key_differences))
    return statements


def view_statements(diff: Difference) -> list[ScriptStatement]:
    if diff.kind == DifferenceType.EXTRA or not diff.source_definition:
        return []
    return [
        _statement(f"DROP VIEW IF EXISTS {quote_identifier(diff.name)}"),
        _statement(diff.source_definition),
    ]


def routine_statements(diff: Difference) -> list[ScriptStatement]:
    """Drop and recreate a procedure, function or trigger.

    The CREATE body may contain ``;`` so it is emitted under the alternate
    terminator.
    """
    if diff.kind == DifferenceType.EXTRA or not diff.source_definition:
        return []
    keyword = _DROP_KEYWORD[diff.object_type]
    return [
        _statement(f"DROP {keyword} IF EXISTS {quote_identifier(diff.name)}"),
        _statement(diff.source_definition, delimiter=ALTERNATE_TERMINATOR),
    ]


def generate_script(result: ComparisonResult) -> ReplicationScript:
    """Build the synchronization script for a comparison result.

    Categories are emitted in dependency order: tables, views, procedures,
    functions, triggers.

    Args:
        result: Output of ``compare_schemas`` / ``compare_snapshots``.

    Returns:
        ``ReplicationScript``; empty when there is nothing to apply.
    """
    statements: list[ScriptStatement] = []

    for diff in result.table_differences:
        statements.extend(table_statements(diff))
    for diff in result.view_differences:
        statements.extend(view_statements(diff))
    for diffs in (
        result.procedure_differences,
        result.function_differences,
        result.trigger_differences,
    ):
        for diff in diffs:
            statements.extend(routine_statements(diff))

    script = ReplicationScript(statements=statements)
    logger.debug(
        f"Generated synchronization script: {len(script.executable_statements)} "
        f"statements from {result.total_differences} differences"
    )
    return script
