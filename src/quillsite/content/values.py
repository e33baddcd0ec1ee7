"""ContentValue classification over decoded JSON.

Content is kept as the plain Python values ``json`` produces. ``kind_of``
tags each node with a :class:`ValueKind` so traversal code can branch over
every variant explicitly.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ValueKind(StrEnum):
    """Variant tag of a ContentValue node."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"
    UNKNOWN = "unknown"


CONTAINER_KINDS = frozenset({ValueKind.OBJECT, ValueKind.ARRAY})


def kind_of(value: Any) -> ValueKind:
    """Classify a decoded JSON value.

    ``bool`` is checked before numbers since it subclasses ``int``.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, dict):
        return ValueKind.OBJECT
    if isinstance(value, list):
        return ValueKind.ARRAY
    return ValueKind.UNKNOWN


def is_leaf(value: Any) -> bool:
    return kind_of(value) not in CONTAINER_KINDS


def format_number(value: int | float) -> str:
    """Shortest decimal text that parses back to the same number."""
    if isinstance(value, int):
        return str(value)
    return repr(value)


def parse_number(text: str) -> int | float:
    """Parse submitted number text, preferring ``int``.

    Raises ValueError for anything that is not a finite decimal number.
    """
    stripped = text.strip()
    try:
        return int(stripped)
    except ValueError:
        pass
    number = float(stripped)
    if number != number or number in (float("inf"), float("-inf")):
        raise ValueError(f"not a finite number: {text!r}")
    return number


def has_text_leaves(value: Any) -> bool:
    """Whether a subtree holds any leaf a browser always submits.

    Checkboxes are omitted when unchecked and empty containers submit
    nothing, so a subtree made only of those may legitimately produce no
    submitted fields at all.
    """
    stack = [value]
    while stack:
        node = stack.pop()
        kind = kind_of(node)
        if kind == ValueKind.OBJECT:
            stack.extend(node.values())
        elif kind == ValueKind.ARRAY:
            stack.extend(node)
        elif kind != ValueKind.BOOL:
            return True
    return False
