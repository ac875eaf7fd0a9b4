"""Table include/exclude filtering.

Patterns are table names compared case-insensitively.  A pattern that is
exactly ``*`` matches every table; any other pattern containing ``*``
matches the whole table name with ``*`` standing for any substring.
Exclusion always wins over inclusion.
"""

import re
from collections.abc import Iterable, Sequence


def matches_pattern(name: str, pattern: str) -> bool:
    """Case-insensitive table-name match with ``*`` wildcards.

    Examples:
        >>> matches_pattern("Orders_2024", "orders_*")
        True
        >>> matches_pattern("archived_orders", "orders_*")
        False
    """
    if pattern == "*":
        return True
    if "*" in pattern:
        regex = ".*".join(re.escape(part) for part in pattern.split("*"))
        return re.fullmatch(regex, name, re.IGNORECASE) is not None
    return name.lower() == pattern.lower()


def should_replicate_table(
    name: str,
    include: Sequence[str],
    exclude: Sequence[str],
) -> bool:
    """Decide whether *name* takes part in replication.

    An empty *include* list selects every table that is not excluded.
    """
    if any(matches_pattern(name, p) for p in exclude):
        return False
    if not include:
        return True
    return any(matches_pattern(name, p) for p in include)


def filter_tables(
    names: Iterable[str],
    include: Sequence[str],
    exclude: Sequence[str],
) -> list[str]:
    """Selected table names, in input order."""
    return [n for n in names if should_replicate_table(n, include, exclude)]
