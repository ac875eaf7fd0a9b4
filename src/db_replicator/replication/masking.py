"""Column value masking.

Masking is pure and total: every input value yields a value, ``None`` stays
``None``.  Non-string values are masked on their ``str()`` form, so a masked
column always produces text.

Usage:
    from db_replicator.replication.masking import mask_row

    masked = mask_row(columns, row, config.masking_rules_for("users"))
"""

from collections.abc import Sequence
from typing import Any

from db_replicator.config.models import DataMaskingRule, MaskingType

MASK_CHAR = "*"


def _full_mask(text: str) -> str:
    return MASK_CHAR * len(text)


def _partial_mask(text: str) -> str:
    if len(text) <= 2:
        return _full_mask(text)
    return text[0] + MASK_CHAR * (len(text) - 2) + text[-1]


def _pattern_mask(text: str, pattern: str) -> str:
    """Apply *pattern* cyclically, one pattern character per input character.

    ``#`` keeps a digit, ``X`` keeps a letter, ``*`` always masks; any other
    pattern character is written literally.
    """
    if not pattern:
        return _full_mask(text)

    out = []
    for i, ch in enumerate(text):
        p = pattern[i % len(pattern)]
        if p == "#":
            out.append(ch if ch.isdigit() else MASK_CHAR)
        elif p == "X":
            out.append(ch if ch.isalpha() else MASK_CHAR)
        elif p == MASK_CHAR:
            out.append(MASK_CHAR)
        else:
            out.append(p)
    return "".join(out)


def mask_value(value: Any, rule: DataMaskingRule) -> Any:
    """Mask one value according to *rule*.

    Examples:
        >>> from db_replicator.config.models import DataMaskingRule, MaskingType
        >>> mask_value("secret", DataMaskingRule(table="t", column="c"))
        '******'
        >>> rule = DataMaskingRule(table="t", column="c", masking_type=MaskingType.PARTIAL_MASK)
        >>> mask_value("alice", rule)
        'a***e'
        >>> rule = DataMaskingRule(table="t", column="c", masking_type=MaskingType.CUSTOM_PATTERN, pattern="##-X")
        >>> mask_value("12a4", rule)
        '12-*'
    """
    if value is None:
        return None

    text = value if isinstance(value, str) else str(value)

    if rule.masking_type == MaskingType.FULL_MASK:
        return _full_mask(text)
    if rule.masking_type == MaskingType.PARTIAL_MASK:
        return _partial_mask(text)
    if rule.masking_type == MaskingType.FIXED_VALUE:
        return rule.pattern
    if rule.masking_type == MaskingType.CUSTOM_PATTERN:
        return _pattern_mask(text, rule.pattern)
    return text


def find_rule(
    rules: Sequence[DataMaskingRule], table: str, column: str
) -> DataMaskingRule | None:
    """First rule matching (table, column), case-insensitively."""
    for rule in rules:
        if rule.matches(table, column):
            return rule
    return None


def mask_row(
    columns: Sequence[str],
    row: Sequence[Any],
    rules: Sequence[DataMaskingRule],
) -> tuple:
    """Return *row* with every ruled, non-null cell masked.

    Args:
        columns: Column names in row order.
        row: Row values.
        rules: Masking rules of the row's table
            (see ``ReplicationConfig.masking_rules_for``).

    Returns:
        New tuple; *row* is not modified.
    """
    if not rules:
        return tuple(row)

    by_column: dict[str, DataMaskingRule] = {}
    for rule in rules:
        by_column.setdefault(rule.column.lower(), rule)

    masked = []
    for column, value in zip(columns, row):
        rule = by_column.get(column.lower())
        masked.append(mask_value(value, rule) if rule and value is not None else value)
    return tuple(masked)
