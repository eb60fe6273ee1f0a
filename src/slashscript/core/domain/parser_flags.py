"""
Parser flags toggled per script with ``/parser-flag NAME on|off``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum


class ParserFlag(str, Enum):
    """Flags altering how script text is read."""

    # Backslash escapes any character; double quotes protect unnamed arguments.
    STRICT_ESCAPING = "STRICT_ESCAPING"
    # {{getvar::x}} reads the scope chain instead of the variable store.
    REPLACE_GETVAR = "REPLACE_GETVAR"


def normalize_flags(flags: Mapping[ParserFlag | str, bool] | None) -> frozenset[ParserFlag]:
    """Return the set of enabled flags from a ``{flag: enabled}`` mapping."""
    if not flags:
        return frozenset()
    return frozenset(ParserFlag(str(getattr(k, "value", k)).upper()) for k, v in flags.items() if v)
