"""
Argument specifications for command definitions.

Specs are declarative: they describe what a command accepts. Resolution of
actual values against a spec happens in
:mod:`slashscript.core.commands.binder` every time a command executes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ArgumentType(str, Enum):
    """Types an argument may accept."""

    STRING = "string"
    NUMBER = "number"
    RANGE = "range"
    BOOLEAN = "bool"
    VARIABLE_NAME = "varname"
    CLOSURE = "closure"
    LIST = "list"
    DICTIONARY = "dictionary"


@dataclass(frozen=True)
class EnumValue:
    """A permitted value for an enum-restricted argument."""

    value: str
    description: str = ""


EnumProvider = Callable[[], Sequence["EnumValue | str"]]


@dataclass(frozen=True)
class ArgumentSpec:
    """
    Declaration of a single named or unnamed command argument.

    Attributes:
        name: Argument name; for unnamed arguments only used in messages.
        description: Help text.
        types: Accepted types, in coercion preference order.
        is_required: Whether a value must be supplied (a default also counts).
        accepts_multiple: Collect repeated assignments into a list.
        default_value: Value used when the argument is omitted.
        enum_list: Static permitted values.
        enum_provider: Callable producing permitted values at bind time.
        force_enum: Reject values outside the permitted set.
    """

    name: str
    description: str = ""
    types: tuple[ArgumentType, ...] = (ArgumentType.STRING,)
    is_required: bool = False
    accepts_multiple: bool = False
    default_value: Any = None
    enum_list: tuple[EnumValue, ...] = field(default_factory=tuple)
    enum_provider: EnumProvider | None = None
    force_enum: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.types, str):
            object.__setattr__(self, "types", (ArgumentType(self.types),))
        else:
            object.__setattr__(
                self, "types", tuple(ArgumentType(t) for t in self.types)
            )
        if not self.types:
            raise ValueError(f"Argument '{self.name}' must accept at least one type")
        object.__setattr__(
            self,
            "enum_list",
            tuple(
                e if isinstance(e, EnumValue) else EnumValue(str(e))
                for e in self.enum_list
            ),
        )

    def accepts(self, argument_type: ArgumentType) -> bool:
        return argument_type in self.types

    def permitted_values(self) -> list[str]:
        """Return the enum values currently permitted for this argument."""
        values: list[EnumValue | str] = list(self.enum_list)
        if self.enum_provider is not None:
            values.extend(self.enum_provider())
        return [v.value if isinstance(v, EnumValue) else str(v) for v in values]
