"""Split a SQL script into individually executable statements.

Understands single-quoted strings (with backslash escapes), ``--`` line
comments and ``DELIMITER`` directives, so stored-routine bodies containing
``;`` stay in one piece.

Usage:
    from db_replicator.schema.splitter import iter_statements, strip_terminator

    for statement, terminator in iter_statements(script):
        sql = strip_terminator(statement, terminator)
"""

import re
from collections.abc import Iterator

from db_replicator.dialect import DEFAULT_TERMINATOR, DELIMITER_KEYWORD

_DIRECTIVE_PATTERN = re.compile(
    rf"{DELIMITER_KEYWORD}[ \t]+(\S+)[^\n]*(?:\n|$)", re.IGNORECASE
)


def iter_statements(
    script: str, terminator: str = DEFAULT_TERMINATOR
) -> Iterator[tuple[str, str]]:
    """Yield ``(statement, terminator)`` pairs in script order.

    Each statement is trimmed and ends with the terminator that was active
    when it was flushed, except a trailing statement with no terminator.
    ``DELIMITER`` directive lines are consumed and never yielded.

    Args:
        script: SQL text.
        terminator: Terminator active at the start of the script.

    Yields:
        Tuples of the statement text and its terminator.
    """
    active = terminator
    buffer: list[str] = []
    in_string = False
    in_comment = False
    line_blank = True
    i = 0
    n = len(script)

    while i < n:
        ch = script[i]

        if in_comment:
            buffer.append(ch)
            if ch in "\r\n":
                in_comment = False
                line_blank = True
            i += 1
            continue

        if in_string:
            buffer.append(ch)
            if ch == "\\" and i + 1 < n:
                buffer.append(script[i + 1])
                line_blank = False
                i += 2
                continue
            if ch == "'":
                in_string = False
            if ch == "\n":
                line_blank = True
            elif not ch.isspace():
                line_blank = False
            i += 1
            continue

        if line_blank and ch in "Dd":
            match = _DIRECTIVE_PATTERN.match(script, i)
            if match:
                active = match.group(1)
                i = match.end()
                continue

        if script.startswith(active, i):
            buffer.append(active)
            statement = "".join(buffer).strip()
            buffer = []
            yield statement, active
            i += len(active)
            line_blank = False
            continue

        if script.startswith("--", i):
            in_comment = True
        elif ch == "'":
            in_string = True

        buffer.append(ch)
        if ch == "\n":
            line_blank = True
        elif not ch.isspace():
            line_blank = False
        i += 1

    tail = "".join(buffer).strip()
    if tail:
        yield tail, active


def split_statements(script: str, terminator: str = DEFAULT_TERMINATOR) -> list[str]:
    """Split *script* into statements, each keeping its terminator.

    Example:
        >>> split_statements("SELECT 'a;b'; SELECT 2;")
        ["SELECT 'a;b';", 'SELECT 2;']
    """
    return [statement for statement, _ in iter_statements(script, terminator)]


def strip_terminator(statement: str, terminator: str = DEFAULT_TERMINATOR) -> str:
    """Remove a trailing *terminator* (and surrounding whitespace).

    Example:
        >>> strip_terminator("CREATE PROCEDURE p() BEGIN SELECT 1; END //", "//")
        'CREATE PROCEDURE p() BEGIN SELECT 1; END'
    """
    text = statement.rstrip()
    if terminator and text.endswith(terminator):
        text = text[: -len(terminator)].rstrip()
    return text


def is_comment_only(statement: str) -> bool:
    """True if *statement* holds nothing but blank lines and ``--`` comments."""
    for line in statement.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("--"):
            return False
    return True
