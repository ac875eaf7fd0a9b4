"""Schema comparison using case-insensitive name-indexed maps.

``compare_snapshots`` is pure logic -- no I/O.  ``compare_schemas``
introspects both endpoints and delegates to it.

Usage:
    from db_replicator.schema.comparator import compare_schemas, compare_snapshots

    result = await compare_schemas(config.source, config.target)
    if result.has_differences:
        print(result.summary())
"""

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from db_replicator.config.models import ConnectionEndpoint
from db_replicator.schema.introspector import SchemaIntrospector
from db_replicator.schema.models import (
    ColumnSchema,
    ComparisonResult,
    Difference,
    DifferenceType,
    ForeignKeySchema,
    IndexSchema,
    ObjectType,
    RoutineSchema,
    SchemaSnapshot,
    TableSchema,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ------------------------------------------------------------------
# Equality helpers
# ------------------------------------------------------------------


def _text_equal(a: str | None, b: str | None) -> bool:
    """Null-aware, case-insensitive string equality."""
    if a is None or b is None:
        return a is None and b is None
    return a.lower() == b.lower()


def _names_equal(a: list[str], b: list[str]) -> bool:
    return [x.lower() for x in a] == [y.lower() for y in b]


def normalize_body(text: str | None) -> str:
    """Collapse whitespace and lowercase body text for comparison."""
    if not text:
        return ""
    return " ".join(text.split()).lower()


def columns_equal(source: ColumnSchema, target: ColumnSchema) -> bool:
    return (
        _text_equal(source.column_type, target.column_type)
        and source.is_nullable == target.is_nullable
        and _text_equal(source.default, target.default)
        and _text_equal(source.extra, target.extra)
    )


def indexes_equal(source: IndexSchema, target: IndexSchema) -> bool:
    return (
        _names_equal(source.columns, target.columns)
        and source.is_unique == target.is_unique
        and _text_equal(source.index_type, target.index_type)
    )


def foreign_keys_equal(source: ForeignKeySchema, target: ForeignKeySchema) -> bool:
    return (
        _names_equal(source.columns, target.columns)
        and _text_equal(source.referenced_table, target.referenced_table)
        and _names_equal(source.referenced_columns, target.referenced_columns)
        and _text_equal(source.on_update, target.on_update)
        and _text_equal(source.on_delete, target.on_delete)
    )


def routines_equal(source: RoutineSchema, target: RoutineSchema) -> bool:
    return normalize_body(source.body) == normalize_body(target.body)


# ------------------------------------------------------------------
# Generic name-indexed diff
# ------------------------------------------------------------------


def diff_named(
    source: Iterable[T],
    target: Iterable[T],
    object_type: ObjectType,
    name_of: Callable[[T], str],
    definition_of: Callable[[T], str],
    equal: Callable[[T, T], bool],
    drop_of: Callable[[T], str] | None = None,
) -> list[Difference]:
    """Diff two object collections by case-insensitive name.

    Objects only in *source* are ``missing`` (source order), objects in both
    that are not *equal* are ``different``, objects only in *target* are
    ``extra`` (target order).

    Args:
        source: Source-side objects.
        target: Target-side objects.
        object_type: Object type recorded on each difference.
        name_of: Returns an object's name.
        definition_of: Returns an object's DDL definition.
        equal: Field-by-field equality for objects present on both sides.
        drop_of: Returns the statement that drops an object; recorded from
            the target side on ``different`` entries.

    Returns:
        Ordered list of differences.
    """
    source_items = list(source)
    target_items = list(target)
    source_map = {name_of(item).lower(): item for item in source_items}
    target_map = {name_of(item).lower(): item for item in target_items}

    differences: list[Difference] = []

    for item in source_items:
        counterpart = target_map.get(name_of(item).lower())
        if counterpart is None:
            differences.append(
                Difference(
                    kind=DifferenceType.MISSING,
                    object_type=object_type,
                    name=name_of(item),
                    source_definition=definition_of(item),
                )
            )
        elif not equal(item, counterpart):
            differences.append(
                Difference(
                    kind=DifferenceType.DIFFERENT,
                    object_type=object_type,
                    name=name_of(item),
                    source_definition=definition_of(item),
                    target_definition=definition_of(counterpart),
                    drop_statement=drop_of(counterpart) if drop_of else None,
                )
            )

    for item in target_items:
        if name_of(item).lower() not in source_map:
            differences.append(
                Difference(
                    kind=DifferenceType.EXTRA,
                    object_type=object_type,
                    name=name_of(item),
                    target_definition=definition_of(item),
                )
            )

    return differences


def _diff_routines(
    source: dict[str, RoutineSchema],
    target: dict[str, RoutineSchema],
    object_type: ObjectType,
) -> list[Difference]:
    return diff_named(
        source.values(),
        target.values(),
        object_type,
        name_of=lambda r: r.name,
        definition_of=lambda r: r.definition,
        equal=routines_equal,
    )


def compare_tables(source: TableSchema, target: TableSchema) -> Difference | None:
    """Compare one table present on both sides.

    Returns:
        A ``different`` table difference carrying nested column, index and
        foreign-key differences, or ``None`` when there are none.
    """
    column_diffs = diff_named(
        source.columns,
        target.columns,
        ObjectType.COLUMN,
        name_of=lambda c: c.name,
        definition_of=lambda c: c.definition,
        equal=columns_equal,
    )
    index_diffs = diff_named(
        source.indexes,
        target.indexes,
        ObjectType.INDEX,
        name_of=lambda i: i.name,
        definition_of=lambda i: i.definition,
        equal=indexes_equal,
        drop_of=lambda i: i.drop_statement,
    )
    fk_diffs = diff_named(
        source.foreign_keys,
        target.foreign_keys,
        ObjectType.FOREIGN_KEY,
        name_of=lambda f: f.name,
        definition_of=lambda f: f.definition,
        equal=foreign_keys_equal,
        drop_of=lambda f: f.drop_statement,
    )

    if not (column_diffs or index_diffs or fk_diffs):
        return None

    return Difference(
        kind=DifferenceType.DIFFERENT,
        object_type=ObjectType.TABLE,
        name=source.name,
        source_definition=source.create_statement,
        target_definition=target.create_statement,
        column_differences=column_diffs,
        index_differences=index_diffs,
        foreign_key_differences=fk_diffs,
    )


def compare_snapshots(source: SchemaSnapshot, target: SchemaSnapshot) -> ComparisonResult:
    """Compare two snapshots category by category.

    Args:
        source: Snapshot of the source database.
        target: Snapshot of the target database.

    Returns:
        ``ComparisonResult`` with table, view, procedure, function and
        trigger differences.

    Examples:
        >>> compare_snapshots(SchemaSnapshot(), SchemaSnapshot()).has_differences
        False
    """
    target_tables = {name.lower(): table for name, table in target.tables.items()}

    table_diffs: list[Difference] = []
    for table in source.tables.values():
        counterpart = target_tables.get(table.name.lower())
        if counterpart is None:
            table_diffs.append(
                Difference(
                    kind=DifferenceType.MISSING,
                    object_type=ObjectType.TABLE,
                    name=table.name,
                    source_definition=table.create_statement,
                )
            )
            continue
        diff = compare_tables(table, counterpart)
        if diff is not None:
            table_diffs.append(diff)

    source_names = {name.lower() for name in source.tables}
    for table in target.tables.values():
        if table.name.lower() not in source_names:
            table_diffs.append(
                Difference(
                    kind=DifferenceType.EXTRA,
                    object_type=ObjectType.TABLE,
                    name=table.name,
                    target_definition=table.create_statement,
                )
            )

    return ComparisonResult(
        table_differences=table_diffs,
        view_differences=_diff_routines(source.views, target.views, ObjectType.VIEW),
        procedure_differences=_diff_routines(
            source.procedures, target.procedures, ObjectType.PROCEDURE
        ),
        function_differences=_diff_routines(
            source.functions, target.functions, ObjectType.FUNCTION
        ),
        trigger_differences=_diff_routines(
            source.triggers, target.triggers, ObjectType.TRIGGER
        ),
    )


async def compare_schemas(
    source: ConnectionEndpoint,
    target: ConnectionEndpoint,
) -> ComparisonResult:
    """Introspect both endpoints and compare them.

    Snapshots are built fresh on every call and not cached.  Connection and
    query errors propagate to the caller.
    """
    logger.info("Starting schema comparison between source and target databases")

    async with SchemaIntrospector(source) as introspector:
        source_snapshot = await introspector.introspect()
    async with SchemaIntrospector(target) as introspector:
        target_snapshot = await introspector.introspect()

    result = compare_snapshots(source_snapshot, target_snapshot)
    logger.info(f"Schema comparison completed: {result.summary()}")
    return result
