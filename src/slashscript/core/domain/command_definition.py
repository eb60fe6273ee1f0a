"""
Command definition domain model.

A definition is registered once and never mutated. The parser resolves
command names against definitions; the binder and executor use the argument
specs and callback.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from slashscript.core.domain.arguments import ArgumentSpec, ArgumentType

if TYPE_CHECKING:
    from slashscript.core.domain.command_context import CommandArguments

CommandCallback = Callable[["CommandArguments", Any], "Any | Awaitable[Any]"]

STRUCTURED_RETURN_TYPES = frozenset(
    {ArgumentType.LIST, ArgumentType.DICTIONARY, ArgumentType.CLOSURE}
)


@dataclass(frozen=True)
class CommandDefinition:
    """
    Immutable description of a registered command.

    Attributes:
        name: Unique command name (without the leading slash).
        callback: ``callback(args, value)``; may return an awaitable.
        aliases: Alternate names resolving to this definition.
        named_argument_list: Named argument specs, in declaration order.
        unnamed_argument_list: Positional argument specs.
        return_type: Declared return type; structured types keep the raw
            object in the pipe instead of its string form.
        help_string: Human-readable description.
        raw_quotes: Keep surrounding quotes on the unnamed argument.
        split_unnamed_argument: Split the unnamed argument on whitespace
            into one value per unnamed spec.
        split_unnamed_argument_count: Maximum number of parts to split into.
    """

    name: str
    callback: CommandCallback
    aliases: tuple[str, ...] = field(default_factory=tuple)
    named_argument_list: tuple[ArgumentSpec, ...] = field(default_factory=tuple)
    unnamed_argument_list: tuple[ArgumentSpec, ...] = field(default_factory=tuple)
    return_type: ArgumentType | None = None
    help_string: str = ""
    raw_quotes: bool = False
    split_unnamed_argument: bool = False
    split_unnamed_argument_count: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Command name must be a non-empty string.")
        if not callable(self.callback):
            raise TypeError(f"Command '{self.name}' callback must be callable.")
        object.__setattr__(self, "aliases", tuple(self.aliases))
        object.__setattr__(self, "named_argument_list", tuple(self.named_argument_list))
        object.__setattr__(
            self, "unnamed_argument_list", tuple(self.unnamed_argument_list)
        )

        names = [spec.name for spec in self.named_argument_list]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(
                f"Command '{self.name}' declares duplicate named arguments: {duplicates}"
            )
        for spec in self.unnamed_argument_list[:-1]:
            if spec.accepts_multiple:
                raise ValueError(
                    f"Command '{self.name}': only the last unnamed argument may accept multiple values"
                )

    @property
    def all_names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)

    @property
    def is_structured_return(self) -> bool:
        return self.return_type in STRUCTURED_RETURN_TYPES

