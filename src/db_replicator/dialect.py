"""MySQL dialect constants and identifier quoting."""

DEFAULT_TERMINATOR = ";"
ALTERNATE_TERMINATOR = "//"
DELIMITER_KEYWORD = "DELIMITER"


def quote_identifier(name: str) -> str:
    """Quote an identifier with backticks, doubling embedded backticks.

    Example:
        >>> quote_identifier("order`s")
        '`order``s`'
    """
    return "`" + name.replace("`", "``") + "`"


def quote_identifiers(names: list[str]) -> str:
    """Comma-separated list of quoted identifiers."""
    return ", ".join(quote_identifier(n) for n in names)
