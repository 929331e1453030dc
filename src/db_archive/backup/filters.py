"""Table include/exclude filtering shared by backup and restore."""

from collections.abc import Iterable


def include_table(
    table: str,
    includes: Iterable[str] | None = None,
    excludes: Iterable[str] | None = None,
) -> bool:
    """Return ``True`` if ``table`` should be processed.

    A table is processed when it is in ``includes`` (or ``includes`` is
    empty) and not in ``excludes``.  Matching ignores case.

    Examples:
        >>> include_table("Orders", ["orders"], [])
        True
        >>> include_table("Orders", [], ["ORDERS"])
        False
    """
    name = table.casefold()
    included = {t.casefold() for t in includes or ()}
    excluded = {t.casefold() for t in excludes or ()}
    return (not included or name in included) and name not in excluded


def parse_table_list(value: str | None) -> list[str]:
    """Split a comma-separated CLI value, dropping blanks.

    Example:
        >>> parse_table_list("orders, users,,")
        ['orders', 'users']
    """
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]
