"""Identifier and ORDER BY validation.

Table, column and schema names coming from tool callers are the only caller
strings that reach SQL text, so they are checked against a strict allow-list
before the dialect quotes them. Validation never rewrites a bad name into a
good one: invalid input fails the operation.
"""

import re
from typing import Any, List

from localbridge.constants.sql import SortDirection

_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_.]+")
_SURROUNDING_QUOTES = "`\""
_DIRECTIONS = frozenset(direction.value for direction in SortDirection)


def is_valid_identifier(value: Any) -> bool:
    """Return True iff ``value`` is a non-empty string of ``[A-Za-z0-9_.]``.

    There is no length cap; engines reject over-long names themselves.
    """
    if not isinstance(value, str) or not value:
        return False
    return _IDENTIFIER_RE.fullmatch(value) is not None


def strip_identifier_quotes(value: str) -> str:
    """Drop surrounding whitespace, backticks and double quotes.

    Callers often echo names back already quoted (```users``` or ``"users"``).
    """
    return value.strip().strip(_SURROUNDING_QUOTES)


def identifier_parts(value: str) -> List[str]:
    """Split a validated identifier on dots.

    Returns an empty list when any segment is empty (``a..b``, ``.a``), which
    callers treat as invalid.
    """
    parts = value.split(".")
    if any(not part for part in parts):
        return []
    return parts


def is_valid_order_by(clause: Any) -> bool:
    """Validate a raw ORDER BY clause against the column/direction allow-list.

    The clause is split on commas; each part must be an identifier optionally
    followed by ASC/DESC (case-insensitive). An empty part, or any other
    token, rejects the whole clause.
    """
    if not isinstance(clause, str) or not clause.strip():
        return False

    for part in clause.split(","):
        tokens = part.split()
        if not tokens:
            return False
        column, *directions = tokens
        if not is_valid_identifier(column):
            return False
        if any(direction.upper() not in _DIRECTIONS for direction in directions):
            return False
    return True
