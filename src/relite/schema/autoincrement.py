"""
Autoincrement column detection.

SQLite keeps no per-column autoincrement flag; the only trace is the
AUTOINCREMENT keyword in the table's original creation text. The scanner
below pulls the column name out of that text by proximity to the keyword
instead of parsing the statement.
"""

import re
from typing import Optional

AUTOINCREMENT_KEYWORD = "AUTOINCREMENT"

# quoted spans are matched first so the keyword is only found as a bare word
_KEYWORD_PATTERN = re.compile(
    r"'(?:[^']|'')*'"
    r'|"(?:[^"]|"")*"'
    r"|`[^`]*`"
    r"|\[[^\]]*\]"
    rf"|\b(?P<keyword>{AUTOINCREMENT_KEYWORD})\b",
    re.IGNORECASE,
)


def find_autoincrement_column(sql: Optional[str]) -> Optional[str]:
    """Return the name of the AUTOINCREMENT column declared in ``sql``.

    From the keyword the scan goes back to the nearest ``,`` or ``(`` and
    returns the first double-quoted identifier between that boundary and
    the keyword. A boundary that sits inside a closed parenthesized group
    (type arguments such as ``integer(11)`` or ``decimal(10,2)``) is
    skipped and the scan resumes before the group's opening parenthesis.
    """
    if not sql:
        return None

    keyword_at = _find_keyword(sql)
    if keyword_at is None:
        return None

    prefix = sql[:keyword_at]
    search_end = len(prefix)
    while True:
        boundary = max(
            prefix.rfind(",", 0, search_end), prefix.rfind("(", 0, search_end)
        )
        if boundary == -1:
            return None

        span = prefix[boundary + 1 :]
        if span.count(")") <= span.count("("):
            return _first_quoted_identifier(span)

        if prefix[boundary] == "(":
            search_end = boundary
        else:
            search_end = prefix.rfind("(", 0, boundary)
            if search_end == -1:
                return None


def _find_keyword(sql: str) -> Optional[int]:
    """Offset of the first AUTOINCREMENT outside quoted names and strings."""
    for match in _KEYWORD_PATTERN.finditer(sql):
        if match.group("keyword"):
            return match.start("keyword")
    return None


def _first_quoted_identifier(text: str) -> Optional[str]:
    opening = text.find('"')
    if opening == -1:
        return None
    closing = text.find('"', opening + 1)
    if closing == -1:
        return None
    return text[opening + 1 : closing]
