"""Record identifiers and the root-folder marker."""

import enum
from typing import Any, Optional, Union

# ids live in a signed 64-bit INTEGER column
_MAX_ID = 2**63 - 1


class Root(enum.Enum):
    """Parent of top-level files. Stored as NULL, rendered as 0 over HTTP."""

    ROOT = "root"


ROOT = Root.ROOT

ParentId = Union[int, Root]


def is_valid_id(value: Any) -> bool:
    """True if value has the shape of a stored id: a positive int or its canonical decimal string."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0 < value <= _MAX_ID
    if isinstance(value, str):
        if not value.isascii() or not value.isdigit() or value.startswith("0"):
            return False
        return int(value) <= _MAX_ID
    return False


def parse_id(value: Any) -> Optional[int]:
    """Return value as an int id, or None when it cannot match any record."""
    if not is_valid_id(value):
        return None
    return int(value)


def parse_parent_id(value: Any) -> Optional[ParentId]:
    """
    Normalize an incoming parentId: None, 0 and "0" mean ROOT.
    Returns None for a malformed id (callers treat that as "matches nothing").
    """
    if value is None or value is ROOT or (not isinstance(value, bool) and value in (0, "0")):
        return ROOT
    return parse_id(value)


def render_parent_id(parent_id: Optional[int]) -> int:
    """Wire form of a stored parent_id column: 0 for root."""
    return 0 if parent_id is None else parent_id
