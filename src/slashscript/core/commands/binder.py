"""
Argument binding: turns a parsed command node into callback arguments.

Binding runs every time a command executes, so variable references and
variable-name arguments always see the live scope.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Sequence
from typing import Any

from slashscript.core.commands.macros import stringify, substitute
from slashscript.core.common.exceptions import (
    ArgumentTypeError,
    EnumValidationError,
    MissingArgumentError,
)
from slashscript.core.domain.arguments import ArgumentSpec, ArgumentType
from slashscript.core.domain.closure import Block
from slashscript.core.domain.command_context import CommandArguments, CommandContext
from slashscript.core.domain.command_definition import CommandDefinition
from slashscript.core.domain.nodes import ArgumentAssignment, ArgumentValue, CommandNode

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"true", "on", "yes", "1"})
FALSE_VALUES = frozenset({"false", "off", "no", "0"})
RANGE_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)?\s*-\s*(-?\d+(?:\.\d+)?)?\s*$")
TOKEN_PATTERN = re.compile(r'"(?:\\.|[^"\\])*"|\S+')

_MISSING = object()


def strip_quotes(text: str) -> str:
    """Remove one pair of surrounding double quotes."""
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def split_words(text: str, max_parts: int | None = None) -> list[str]:
    """
    Split on whitespace, keeping double-quoted runs together.

    With ``max_parts`` the final part holds the unsplit remainder.
    """
    parts: list[str] = []
    for match in TOKEN_PATTERN.finditer(text):
        if max_parts is not None and len(parts) == max_parts - 1:
            parts.append(text[match.start() :].strip())
            break
        parts.append(match.group(0))
    return parts


def parse_number(text: str) -> int | float | None:
    try:
        number = float(text.strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    if number.is_integer() and "." not in text and "e" not in text.lower():
        return int(number)
    return number


class ArgumentBinder:
    """Resolves and validates command arguments against their definition."""

    async def bind(
        self,
        node: CommandNode,
        definition: CommandDefinition,
        context: CommandContext,
    ) -> tuple[CommandArguments, Any]:
        """
        Resolve a node's arguments.

        Args:
            node: The command being executed.
            definition: Its command definition.
            context: Live execution context; ``context.pipe`` is injected as
                the unnamed value when the command gives none.

        Returns:
            ``(named, unnamed)`` ready for ``definition.callback``.

        Raises:
            ArgumentBindingError: When an argument is missing, mistyped or
                outside its permitted values.
        """
        named = await self._bind_named(node, definition, context)
        unnamed = await self._bind_unnamed(node, definition, context)
        return CommandArguments(named, context), unnamed

    async def resolve(
        self,
        value: ArgumentValue,
        context: CommandContext,
        flags: frozenset = frozenset(),
    ) -> Any:
        """Resolve an unevaluated argument value against the live context."""
        if isinstance(value, Block):
            return await self._resolve_block(value, context)
        if isinstance(value, tuple):
            return [await self.resolve(piece, context, flags) for piece in value]
        return substitute(
            value, context.scope, context.pipe, flags, context.variable_store
        )

    async def _resolve_block(self, block: Block, context: CommandContext) -> Any:
        block.bind_to_caller(
            context.scope,
            context.abort_controller,
            context.debug_controller,
            variable_store=context.variable_store,
            progress=context.progress,
        )
        if not block.execute_now:
            return block
        result = await block.execute()
        return result.pipe

    # -- named ---------------------------------------------------------

    async def _bind_named(
        self, node: CommandNode, definition: CommandDefinition, context: CommandContext
    ) -> dict[str, Any]:
        supplied: dict[str, list[tuple[Any, bool]]] = {}
        for assignment in node.named_arguments:
            value = await self.resolve(assignment.value, context, node.flags)
            if isinstance(assignment.value, tuple):
                value = self._join_pieces(value)
            supplied.setdefault(assignment.name, []).append(
                (value, assignment.was_quoted)
            )

        named: dict[str, Any] = {}
        for spec in definition.named_argument_list:
            entries = supplied.pop(spec.name, [])
            if not entries:
                named_value = self._default_or_missing(spec, definition, "named")
                if named_value is not _MISSING:
                    named[spec.name] = named_value
                continue
            if not spec.accepts_multiple:
                # Repeating a single-valued argument keeps the last value.
                entries = entries[-1:]
            coerced = [
                self._coerce(spec, value, was_quoted, context, definition)
                for value, was_quoted in entries
            ]
            named[spec.name] = coerced if spec.accepts_multiple else coerced[0]

        # Undeclared arguments pass through (closure arguments for /run).
        for name, entries in supplied.items():
            named[name] = entries[-1][0]
        return named

    # -- unnamed -------------------------------------------------------

    async def _bind_unnamed(
        self, node: CommandNode, definition: CommandDefinition, context: CommandContext
    ) -> Any:
        assignment: ArgumentAssignment | None = (
            node.unnamed_arguments[0] if node.unnamed_arguments else None
        )
        specs = definition.unnamed_argument_list

        pieces = assignment is not None and isinstance(assignment.value, tuple)
        if assignment is not None:
            value = await self.resolve(assignment.value, context, node.flags)
            provided = True
        elif node.inject_pipe and context.pipe not in (None, ""):
            value = context.pipe
            provided = True
        else:
            value = "" if node.inject_pipe else None
            provided = False

        if definition.split_unnamed_argument:
            parts = self._split(value, pieces, definition) if provided else []
            return self._bind_split_parts(parts, specs, context, definition)

        if pieces:
            value = self._merge_unnamed_pieces(value, specs, definition)
        elif isinstance(value, str) and not definition.raw_quotes:
            value = strip_quotes(value)

        if not specs:
            return value
        spec = specs[0]
        if not provided:
            default = self._default_or_missing(spec, definition, "unnamed")
            return value if default is _MISSING else default
        if spec.accepts_multiple and isinstance(value, list):
            return [self._coerce(spec, v, False, context, definition) for v in value]
        if pieces and isinstance(value, list):
            return value
        coerced = self._coerce(spec, value, False, context, definition)
        return [coerced] if spec.accepts_multiple else coerced

    def _merge_unnamed_pieces(
        self,
        pieces: list[Any],
        specs: Sequence[ArgumentSpec],
        definition: CommandDefinition,
    ) -> Any:
        if not any(isinstance(piece, Block) for piece in pieces):
            return self._join_pieces(pieces)
        items = [
            piece.strip() if isinstance(piece, str) else piece
            for piece in pieces
            if not (isinstance(piece, str) and not piece.strip())
        ]
        if len(items) == 1:
            return items[0]
        if not any(spec.accepts(ArgumentType.CLOSURE) for spec in specs):
            raise ArgumentTypeError(
                f"/{definition.name} does not accept closures mixed with text",
                argument_name=specs[0].name if specs else None,
                command_name=definition.name,
            )
        return items

    @staticmethod
    def _join_pieces(pieces: list[Any]) -> Any:
        if len(pieces) == 1:
            return pieces[0]
        if any(isinstance(piece, Block) for piece in pieces):
            return pieces
        return "".join(stringify(piece) for piece in pieces)

    def _split(
        self, value: Any, is_pieces: bool, definition: CommandDefinition
    ) -> list[Any]:
        max_parts = definition.split_unnamed_argument_count
        parts: list[Any] = []
        for piece in value if is_pieces else [value]:
            if not isinstance(piece, str):
                parts.append(piece)
                continue
            remaining = None if max_parts is None else max(max_parts - len(parts), 1)
            words = split_words(piece, remaining)
            if not definition.raw_quotes:
                words = [strip_quotes(word) for word in words]
            parts.extend(words)
        if max_parts is not None and len(parts) > max_parts:
            head = parts[: max_parts - 1]
            tail = parts[max_parts - 1 :]
            if all(isinstance(part, str) for part in tail):
                parts = [*head, " ".join(tail)]
            else:
                parts = [*head, tail]
        return parts

    def _bind_split_parts(
        self,
        parts: list[Any],
        specs: Sequence[ArgumentSpec],
        context: CommandContext,
        definition: CommandDefinition,
    ) -> list[Any]:
        bound: list[Any] = []
        for position, spec in enumerate(specs):
            if spec.accepts_multiple:
                rest = parts[position:]
                if not rest:
                    default = self._default_or_missing(spec, definition, "unnamed")
                    bound.append([] if default is _MISSING else default)
                else:
                    bound.append(
                        [self._coerce(spec, v, False, context, definition) for v in rest]
                    )
                return bound
            if position < len(parts):
                bound.append(
                    self._coerce(spec, parts[position], False, context, definition)
                )
            else:
                default = self._default_or_missing(spec, definition, "unnamed")
                if default is not _MISSING:
                    bound.append(default)
        bound.extend(parts[len(specs) :])
        return bound

    # -- shared --------------------------------------------------------

    @staticmethod
    def _default_or_missing(
        spec: ArgumentSpec, definition: CommandDefinition, kind: str
    ) -> Any:
        if spec.default_value is not None:
            return spec.default_value
        if spec.is_required:
            raise MissingArgumentError(
                f"Missing required {kind} argument '{spec.name}' for /{definition.name}",
                argument_name=spec.name,
                command_name=definition.name,
            )
        return _MISSING

    def _coerce(
        self,
        spec: ArgumentSpec,
        value: Any,
        was_quoted: bool,
        context: CommandContext,
        definition: CommandDefinition,
    ) -> Any:
        if (
            isinstance(value, str)
            and not was_quoted
            and spec.accepts(ArgumentType.VARIABLE_NAME)
            and len(spec.types) > 1
            and context.scope.exists_variable(value)
        ):
            value = context.scope.get_variable(value)

        coerced = self._coerce_value(spec, value, context)
        if coerced is _MISSING:
            accepted = ", ".join(t.value for t in spec.types)
            raise ArgumentTypeError(
                f"Argument '{spec.name}' of /{definition.name} must be of type "
                f"{accepted}, got {stringify(value)!r}",
                argument_name=spec.name,
                command_name=definition.name,
            )

        if spec.force_enum:
            permitted = spec.permitted_values()
            if permitted and stringify(coerced) not in permitted:
                raise EnumValidationError(
                    f"Invalid value {stringify(coerced)!r} for argument '{spec.name}' "
                    f"of /{definition.name}. Permitted values: {', '.join(permitted)}",
                    argument_name=spec.name,
                    allowed_values=permitted,
                    command_name=definition.name,
                )
        return coerced

    def _coerce_value(
        self, spec: ArgumentSpec, value: Any, context: CommandContext
    ) -> Any:
        if isinstance(value, Block):
            return value if spec.accepts(ArgumentType.CLOSURE) else _MISSING
        if not isinstance(value, str):
            if self._matches_native(spec, value):
                return value
            if spec.accepts(ArgumentType.STRING):
                return stringify(value)
            value = stringify(value)

        for argument_type in spec.types:
            coerced = self._coerce_text(argument_type, value, context)
            if coerced is not _MISSING:
                return coerced
        return _MISSING

    @staticmethod
    def _matches_native(spec: ArgumentSpec, value: Any) -> bool:
        if isinstance(value, bool):
            return spec.accepts(ArgumentType.BOOLEAN)
        if isinstance(value, int | float):
            return spec.accepts(ArgumentType.NUMBER)
        if isinstance(value, list):
            return spec.accepts(ArgumentType.LIST)
        if isinstance(value, dict):
            return spec.accepts(ArgumentType.DICTIONARY)
        return False

    @staticmethod
    def _coerce_text(
        argument_type: ArgumentType, text: str, context: CommandContext
    ) -> Any:
        if argument_type in (ArgumentType.STRING, ArgumentType.VARIABLE_NAME):
            return text
        if argument_type == ArgumentType.NUMBER:
            number = parse_number(text)
            return _MISSING if number is None else number
        if argument_type == ArgumentType.BOOLEAN:
            lowered = text.strip().lower()
            if lowered in TRUE_VALUES:
                return True
            if lowered in FALSE_VALUES:
                return False
            return _MISSING
        if argument_type in (ArgumentType.LIST, ArgumentType.DICTIONARY):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                return _MISSING
            expected = list if argument_type == ArgumentType.LIST else dict
            return decoded if isinstance(decoded, expected) else _MISSING
        if argument_type == ArgumentType.RANGE:
            match = RANGE_PATTERN.match(text)
            if match is None or not any(match.groups()):
                return _MISSING
            low, high = (
                parse_number(group) if group is not None else None
                for group in match.groups()
            )
            return (low, high)
        if argument_type == ArgumentType.CLOSURE:
            stored = context.scope.get_variable(text.strip())
            if isinstance(stored, Block):
                return stored.bind_to_caller(
                    context.scope,
                    context.abort_controller,
                    context.debug_controller,
                    variable_store=context.variable_store,
                    progress=context.progress,
                )
            return _MISSING
        return _MISSING
