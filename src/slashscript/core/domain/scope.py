"""
Lexical variable scopes.

A scope holds local bindings and an optional parent. Lookups and
assignments walk up the parent chain. A block's scope gets its parent when
the block starts executing in a caller's context, not when it is parsed, so
one block definition sees different enclosing variables at different call
sites.
"""

from __future__ import annotations

import json
from typing import Any

from slashscript.core.common.exceptions import ScopeVariableNotFoundError

_UNSET = object()


class Scope:
    """A chain of variable bindings."""

    def __init__(self, parent: Scope | None = None) -> None:
        self.variables: dict[str, Any] = {}
        self.parent = parent
        self._pipe: Any = _UNSET

    def __repr__(self) -> str:
        return f"<Scope vars={sorted(self.variables)} parent={'yes' if self.parent else 'no'}>"

    @property
    def pipe(self) -> Any:
        """The running pipe value; falls through to the parent when unset."""
        if self._pipe is not _UNSET:
            return self._pipe
        if self.parent is not None:
            return self.parent.pipe
        return None

    @pipe.setter
    def pipe(self, value: Any) -> None:
        self._pipe = value

    def has_own_pipe(self) -> bool:
        return self._pipe is not _UNSET

    def get_copy(self) -> Scope:
        """Copy local bindings; the copy keeps the same parent link."""
        scope = Scope(self.parent)
        scope.variables = dict(self.variables)
        scope._pipe = self._pipe
        return scope

    def is_in_chain(self, other: Scope) -> bool:
        """True when ``other`` is this scope or one of its ancestors."""
        scope: Scope | None = self
        while scope is not None:
            if scope is other:
                return True
            scope = scope.parent
        return False

    def _find_owner(self, name: str) -> Scope | None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.variables:
                return scope
            scope = scope.parent
        return None

    def exists_variable_in_scope(self, name: str) -> bool:
        return name in self.variables

    def exists_variable(self, name: str) -> bool:
        return self._find_owner(name) is not None

    def let_variable(self, name: str, value: Any = "") -> None:
        """Declare ``name`` in this scope, rebinding it if already declared here."""
        self.variables[name] = value

    def set_variable(self, name: str, value: Any, index: Any = None) -> Any:
        """
        Assign to ``name`` in the nearest scope that declares it.

        Args:
            name: Variable name.
            value: New value, or new element value when ``index`` is given.
            index: Optional list index or dictionary key inside the stored value.

        Returns:
            The value stored under ``name`` after the assignment.

        Raises:
            ScopeVariableNotFoundError: If no scope in the chain declares ``name``.
        """
        owner = self._find_owner(name)
        if owner is None:
            raise ScopeVariableNotFoundError(name)
        if index is None or index == "":
            owner.variables[name] = value
        else:
            container = _as_container(owner.variables[name])
            if isinstance(container, list):
                position = int(index)
                while len(container) <= position:
                    container.append("")
                container[position] = value
            else:
                container[str(index)] = value
            owner.variables[name] = container
        return owner.variables[name]

    def get_variable(self, name: str, index: Any = None) -> Any:
        """Return the value of ``name`` from the nearest declaring scope, or None."""
        owner = self._find_owner(name)
        if owner is None:
            return None
        value = owner.variables[name]
        if index is None or index == "":
            return value
        container = _as_container(value)
        if isinstance(container, list):
            position = int(index)
            return container[position] if -len(container) <= position < len(container) else None
        return container.get(str(index))


def _as_container(value: Any) -> list | dict:
    """Interpret a stored value as a list or dict, decoding JSON strings."""
    if isinstance(value, list | dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list | dict):
            return decoded
    if value in (None, ""):
        return {}
    raise TypeError(f"Value of type {type(value).__name__} cannot be indexed")
