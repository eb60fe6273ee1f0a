"""
Parse products.

Nodes are immutable once the parser returns. Argument values are kept
unevaluated so they can be resolved against live scopes on every execution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from slashscript.core.common.positions import SourcePosition, build_hint
from slashscript.core.domain.parser_flags import ParserFlag

if TYPE_CHECKING:
    from slashscript.core.domain.closure import Block
    from slashscript.core.domain.command_definition import CommandDefinition

ArgumentPiece = Union[str, "Block"]
ArgumentValue = Union[str, "Block", tuple[ArgumentPiece, ...]]


@dataclass(frozen=True)
class ArgumentAssignment:
    """An argument as written in the script; ``name`` is empty for unnamed ones."""

    name: str
    value: ArgumentValue
    start: int = 0
    end: int = 0
    was_quoted: bool = False


@dataclass(frozen=True)
class ScriptNode:
    """Base for everything a block can contain."""

    start: int
    end: int
    source_text: str = field(repr=False, default="")
    flags: frozenset[ParserFlag] = frozenset()

    @property
    def line(self) -> int:
        return SourcePosition.from_index(self.source_text, self.start).line

    @property
    def column(self) -> int:
        return SourcePosition.from_index(self.source_text, self.start).column

    @property
    def hint(self) -> str:
        return build_hint(self.source_text, self.start)

    @property
    def raw_source(self) -> str:
        return self.source_text[self.start : self.end]


@dataclass(frozen=True)
class CommandNode(ScriptNode):
    """A single command invocation."""

    name: str = ""
    definition: CommandDefinition | None = None
    named_arguments: tuple[ArgumentAssignment, ...] = ()
    unnamed_arguments: tuple[ArgumentAssignment, ...] = ()
    inject_pipe: bool = True

    def nested_blocks(self) -> list[Block]:
        from slashscript.core.domain.closure import Block

        blocks: list[Block] = []
        for assignment in (*self.named_arguments, *self.unnamed_arguments):
            value = assignment.value
            pieces = value if isinstance(value, tuple) else (value,)
            blocks.extend(piece for piece in pieces if isinstance(piece, Block))
        return blocks


@dataclass(frozen=True)
class BreakNode(ScriptNode):
    """``/break [value]``: stop the current block and signal the enclosing loop."""

    value: ArgumentAssignment | None = None
    inject_pipe: bool = True


@dataclass(frozen=True)
class BreakpointNode(ScriptNode):
    """``/breakpoint``: stop here when a debugger is attached."""
