from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from slashscript.core.domain.parser_flags import ParserFlag

if TYPE_CHECKING:  # Avoid runtime circular import
    from slashscript.core.domain.closure import Block, ProgressTracker
    from slashscript.core.domain.controllers import (
        AbortController,
        BreakController,
        DebugController,
    )
    from slashscript.core.domain.scope import Scope
    from slashscript.core.interfaces.variable_store_interface import IVariableStore


@dataclass(slots=True)
class CommandContext:
    """Typed context handed to command callbacks alongside their arguments.

    Gives built-ins access to the executing block's scope and controllers
    without widening the ``callback(args, value)`` signature.
    """

    scope: Scope
    pipe: Any
    block: Block
    abort_controller: AbortController
    break_controller: BreakController
    debug_controller: DebugController | None = None
    parser_flags: frozenset[ParserFlag] = frozenset()
    variable_store: IVariableStore | None = None
    progress: ProgressTracker | None = None
    returned: bool = False
    return_value: Any = None

    def request_return(self, value: Any) -> None:
        """End the executing block after this command, with ``value`` as its pipe."""
        self.returned = True
        self.return_value = value


class CommandArguments(Mapping[str, Any]):
    """Read-only mapping of resolved named arguments plus the execution context."""

    __slots__ = ("_values", "context")

    def __init__(self, values: Mapping[str, Any], context: CommandContext) -> None:
        self._values = dict(values)
        self.context = context

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CommandArguments({self._values!r})"
