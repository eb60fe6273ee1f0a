"""
Engine-scoped variable references inside argument text.

Only the references the engine itself owns are substituted here:

- ``{{pipe}}``: the running pipe value
- ``{{var::name}}`` / ``{{var::name::index}}``: the scope chain
- ``{{getvar::name}}`` / ``{{getglobalvar::name}}``: the injected variable store
  (``getvar`` reads the scope chain instead under REPLACE_GETVAR)

Any other ``{{...}}`` text is left untouched for the host to handle.
"""

from __future__ import annotations

import json
import re
from typing import Any

from slashscript.core.domain.parser_flags import ParserFlag
from slashscript.core.domain.scope import Scope
from slashscript.core.interfaces.variable_store_interface import (
    IVariableStore,
    VariableTier,
)

MACRO_PATTERN = re.compile(
    r"\{\{(?:"
    r"(?P<pipe>pipe)"
    r"|var::(?P<var>[^:}]+)(?:::(?P<index>[^}]+))?"
    r"|getvar::(?P<getvar>[^}]+)"
    r"|getglobalvar::(?P<getglobalvar>[^}]+)"
    r")\}\}",
    re.IGNORECASE,
)


def _lookup(
    match: re.Match[str],
    scope: Scope,
    pipe: Any,
    flags: frozenset[ParserFlag],
    variable_store: IVariableStore | None,
) -> Any:
    if match.group("pipe") is not None:
        return pipe
    if match.group("var") is not None:
        return scope.get_variable(match.group("var").strip(), match.group("index"))
    if match.group("getvar") is not None:
        name = match.group("getvar").strip()
        if ParserFlag.REPLACE_GETVAR in flags or variable_store is None:
            return scope.get_variable(name)
        return variable_store.get(name, VariableTier.LOCAL)
    name = match.group("getglobalvar").strip()
    if variable_store is None:
        return None
    return variable_store.get(name, VariableTier.GLOBAL)


def stringify(value: Any) -> str:
    """Render a value the way it appears when embedded in text or the pipe."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list | dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def substitute(
    text: str,
    scope: Scope,
    pipe: Any,
    flags: frozenset[ParserFlag] = frozenset(),
    variable_store: IVariableStore | None = None,
) -> Any:
    """
    Replace engine references in ``text`` with their live values.

    When ``text`` consists of exactly one reference, the referenced value is
    returned as is, so lists, dictionaries and blocks survive intact.
    """
    if "{{" not in text:
        return text
    whole = MACRO_PATTERN.fullmatch(text)
    if whole is not None:
        return _lookup(whole, scope, pipe, flags, variable_store)
    return MACRO_PATTERN.sub(
        lambda m: stringify(_lookup(m, scope, pipe, flags, variable_store)), text
    )
