"""
Parses script text into a tree of blocks.

Grammar summary::

    script     := sequence
    sequence   := (command (("|" | "||") command)*)?
    command    := "/" name named* unnamed?
                | "/:" name named*               run shorthand
                | "/#" text | "//" text          comment
                | "/parser-flag" FLAG ("on"|"off")
                | "/break" unnamed? | "/breakpoint"
    named      := key "=" (quoted | closure | bracketed | word)
    closure    := "{:" parameter* sequence ":}" "()"?
    parameter  := key ("=" value)?

``||`` separates commands like ``|`` but stops the pipe from being injected
into the next command. Parsing is a single recursive-descent pass; nothing is
evaluated here.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from slashscript.core.commands.registry import CommandRegistry
from slashscript.core.common.exceptions import ParseError
from slashscript.core.common.positions import SourcePosition, build_hint
from slashscript.core.domain.closure import Block
from slashscript.core.domain.controllers import AbortController, DebugController
from slashscript.core.domain.nodes import (
    ArgumentAssignment,
    ArgumentPiece,
    ArgumentValue,
    BreakNode,
    BreakpointNode,
    CommandNode,
    ScriptNode,
)
from slashscript.core.domain.parser_flags import ParserFlag, normalize_flags
from slashscript.core.domain.scope import Scope

logger = logging.getLogger(__name__)

CLOSURE_START = "{:"
CLOSURE_END = ":}"
KEY_PATTERN = re.compile(r"[A-Za-z_][\w\-.]*(?==)")
PARAMETER_PATTERN = re.compile(r"[A-Za-z_][\w\-.]*")
DEFAULT_ESCAPABLE = frozenset("|{}\\:")
RUN_COMMAND = "run"


class ScriptParser:
    """Turns script text into a :class:`Block`."""

    def __init__(
        self,
        registry: CommandRegistry | None = None,
        verify_command_names: bool = True,
    ) -> None:
        if registry is None:
            from slashscript.core.commands.registry import command_registry

            registry = command_registry
        self.registry = registry
        self.verify_command_names = verify_command_names

    def parse(
        self,
        text: str,
        allow_nested_closures: bool = True,
        parser_flags: Mapping[ParserFlag | str, bool] | None = None,
        abort_controller: AbortController | None = None,
        debug_controller: DebugController | None = None,
    ) -> Block:
        """
        Parse ``text`` into a top-level block.

        Args:
            text: The script.
            allow_nested_closures: Reject ``{: ... :}`` literals when False.
            parser_flags: Initial flag state, e.g. ``{ParserFlag.STRICT_ESCAPING: True}``.
            abort_controller: Shared by the returned block and every nested block.
            debug_controller: Attached to every block when given.

        Returns:
            The parsed block; its scope has no parent yet.

        Raises:
            ParseError: On malformed input, with line, column and hint.
        """
        try:
            flags = normalize_flags(parser_flags)
        except ValueError as exc:
            raise ParseError(f"Unknown parser flag: {exc}") from exc
        run = _ParseRun(
            parser=self,
            text=text,
            allow_nested_closures=allow_nested_closures,
            flags=set(flags),
            abort_controller=abort_controller or AbortController(),
            debug_controller=debug_controller,
        )
        block = run.parse_script()
        logger.debug(
            "Parsed script into %d top-level node(s)", len(block.commands)
        )
        return block


class _ParseRun:
    """Cursor and mutable state for one ``parse`` call."""

    def __init__(
        self,
        parser: ScriptParser,
        text: str,
        allow_nested_closures: bool,
        flags: set[ParserFlag],
        abort_controller: AbortController,
        debug_controller: DebugController | None,
    ) -> None:
        self.parser = parser
        self.text = text
        self.index = 0
        self.allow_nested_closures = allow_nested_closures
        self.flags = flags
        self.abort_controller = abort_controller
        self.debug_controller = debug_controller

    # -- helpers -------------------------------------------------------

    @property
    def strict(self) -> bool:
        return ParserFlag.STRICT_ESCAPING in self.flags

    def error(self, message: str, index: int | None = None) -> ParseError:
        at = self.index if index is None else index
        position = SourcePosition.from_index(self.text, at)
        return ParseError(
            message,
            line=position.line,
            column=position.column,
            hint=build_hint(self.text, at),
        )

    def at_end(self) -> bool:
        return self.index >= len(self.text)

    def peek(self, token: str) -> bool:
        return self.text.startswith(token, self.index)

    def current(self) -> str:
        return self.text[self.index] if self.index < len(self.text) else ""

    def skip_whitespace(self) -> None:
        while self.index < len(self.text) and self.text[self.index].isspace():
            self.index += 1

    def at_terminator(self) -> bool:
        return self.at_end() or self.peek("|") or self.peek(CLOSURE_END)

    def new_block(self, **kwargs) -> Block:
        return Block(
            scope=Scope(),
            abort_controller=self.abort_controller,
            debug_controller=self.debug_controller,
            **kwargs,
        )

    # -- structure -----------------------------------------------------

    def parse_script(self) -> Block:
        commands = self.parse_sequence(nested=False, block_start=0)
        return self.new_block(source_text=self.text, commands=commands, start=0)

    def parse_sequence(self, nested: bool, block_start: int) -> tuple[ScriptNode, ...]:
        nodes: list[ScriptNode] = []
        inject_pipe = True
        while True:
            self.skip_whitespace()
            if self.at_end():
                if nested:
                    raise self.error("Unclosed closure: missing ':}'", block_start)
                break
            if self.peek(CLOSURE_END):
                if nested:
                    break
                raise self.error("Unexpected closure end ':}' outside of a closure")
            if self.peek("|"):
                # Separator with no command before it.
                inject_pipe = not self.peek("||")
                self.index += 2 if self.peek("||") else 1
                continue
            if not self.peek("/"):
                raise self.error(
                    f"Expected a command starting with '/', found {self.current()!r}"
                )

            node = self.parse_command(inject_pipe)
            if node is not None:
                nodes.append(node)
            inject_pipe = self.consume_separator()
        return tuple(nodes)

    def consume_separator(self) -> bool:
        """Consume ``|`` or ``||`` after a command; return whether to inject the pipe."""
        if self.peek("||"):
            self.index += 2
            return False
        if self.peek("|"):
            self.index += 1
        return True

    # -- commands ------------------------------------------------------

    def parse_command(self, inject_pipe: bool) -> ScriptNode | None:
        start = self.index
        self.index += 1  # "/"

        if self.peek("#") or self.peek("/"):
            self.skip_comment()
            return None

        if self.peek(":") and not self.peek(CLOSURE_END):
            self.index += 1
            return self.parse_run_shorthand(start, inject_pipe)

        name_start = self.index
        name = self.read_command_name()
        if not name:
            raise self.error("Expected a command name after '/'", name_start)

        if name == "parser-flag":
            self.parse_parser_flag()
            return None
        if name == "breakpoint":
            self.skip_whitespace()
            if not self.at_terminator():
                raise self.error("/breakpoint does not take arguments")
            return BreakpointNode(
                start=start,
                end=self.index,
                source_text=self.text,
                flags=frozenset(self.flags),
            )
        if name == "break":
            value = self.parse_unnamed_value()
            return BreakNode(
                start=start,
                end=self.index,
                source_text=self.text,
                flags=frozenset(self.flags),
                value=value,
                inject_pipe=inject_pipe,
            )

        definition = self.parser.registry.get_command(name)
        if definition is None and self.parser.verify_command_names:
            raise self.error(f"Unknown command: /{name}", start)

        named = self.parse_named_arguments()
        unnamed = self.parse_unnamed_value()
        return CommandNode(
            start=start,
            end=self.index,
            source_text=self.text,
            flags=frozenset(self.flags),
            name=name,
            definition=definition,
            named_arguments=named,
            unnamed_arguments=(unnamed,) if unnamed is not None else (),
            inject_pipe=inject_pipe,
        )

    def read_command_name(self) -> str:
        name_start = self.index
        while not self.at_end():
            char = self.text[self.index]
            if char.isspace() or char in "|{}" or self.peek(CLOSURE_END):
                break
            self.index += 1
        return self.text[name_start : self.index]

    def skip_comment(self) -> None:
        while not self.at_end():
            if self.current() == "\\" and self.index + 1 < len(self.text):
                self.index += 2
                continue
            if self.peek("|") or self.peek(CLOSURE_END):
                return
            self.index += 1

    def parse_run_shorthand(self, start: int, inject_pipe: bool) -> CommandNode:
        definition = self.parser.registry.get_command(RUN_COMMAND)
        if definition is None:
            raise self.error("Run shorthand '/:' requires the /run command", start)
        target_start = self.index
        if self.peek('"'):
            target, _ = self.read_quoted()
        else:
            target = self.read_word()
        if not target:
            raise self.error("Expected a closure name after '/:'", target_start)
        named = self.parse_named_arguments()
        self.skip_whitespace()
        if not self.at_terminator():
            raise self.error("Unexpected text after run shorthand")
        return CommandNode(
            start=start,
            end=self.index,
            source_text=self.text,
            flags=frozenset(self.flags),
            name=RUN_COMMAND,
            definition=definition,
            named_arguments=named,
            unnamed_arguments=(
                ArgumentAssignment("", target, target_start, target_start + len(target)),
            ),
            inject_pipe=inject_pipe,
        )

    def parse_parser_flag(self) -> None:
        self.skip_whitespace()
        flag_start = self.index
        flag_name = self.read_word()
        try:
            flag = ParserFlag(flag_name.upper())
        except ValueError:
            raise self.error(f"Unknown parser flag: {flag_name!r}", flag_start) from None
        self.skip_whitespace()
        state_start = self.index
        state = self.read_word().lower() if not self.at_terminator() else "on"
        if state in ("on", "true", "1"):
            self.flags.add(flag)
        elif state in ("off", "false", "0"):
            self.flags.discard(flag)
        else:
            raise self.error(
                f"Parser flag state must be 'on' or 'off', found {state!r}", state_start
            )
        self.skip_whitespace()
        if not self.at_terminator():
            raise self.error("Unexpected text after /parser-flag")

    # -- named arguments -----------------------------------------------

    def parse_named_arguments(self) -> tuple[ArgumentAssignment, ...]:
        assignments: list[ArgumentAssignment] = []
        while True:
            checkpoint = self.index
            self.skip_whitespace()
            match = KEY_PATTERN.match(self.text, self.index)
            if match is None:
                self.index = checkpoint
                break
            key = match.group(0)
            arg_start = self.index
            self.index = match.end() + 1  # past "="
            value, was_quoted = self.parse_named_value(key)
            assignments.append(
                ArgumentAssignment(key, value, arg_start, self.index, was_quoted)
            )
        return tuple(assignments)

    def parse_named_value(self, key: str) -> tuple[ArgumentValue, bool]:
        if self.at_end() or self.current().isspace() or self.at_terminator():
            raise self.error(f"Expected a value after '{key}='")
        if self.peek('"'):
            return self.read_quoted()
        if self.peek(CLOSURE_START):
            return self.parse_closure(), False
        if self.peek("[") or (self.peek("{") and not self.peek("{{")):
            return self.read_bracketed(), False
        return self.read_word(), False

    def read_quoted(self) -> tuple[str, bool]:
        quote_start = self.index
        self.index += 1
        chars: list[str] = []
        while not self.at_end():
            char = self.text[self.index]
            if char == "\\" and self.index + 1 < len(self.text):
                following = self.text[self.index + 1]
                if following in ('"', "\\") or self.strict:
                    chars.append(following)
                else:
                    chars.append(char + following)
                self.index += 2
                continue
            if char == '"':
                self.index += 1
                return "".join(chars), True
            chars.append(char)
            self.index += 1
        raise self.error("Unterminated quoted value", quote_start)

    def read_bracketed(self) -> str:
        """Read a JSON-ish ``[...]``/``{...}`` value, balancing brackets outside quotes."""
        value_start = self.index
        depth = 0
        in_quote = False
        while not self.at_end():
            char = self.text[self.index]
            if in_quote:
                if char == "\\":
                    self.index += 2
                    continue
                if char == '"':
                    in_quote = False
            elif char == '"':
                in_quote = True
            elif char in "[{":
                depth += 1
            elif char in "]}":
                depth -= 1
                if depth == 0:
                    self.index += 1
                    return self.text[value_start : self.index]
            self.index += 1
        if in_quote:
            raise self.error("Unterminated quoted value", value_start)
        raise self.error("Unbalanced brackets in argument value", value_start)

    def read_word(self) -> str:
        chars: list[str] = []
        while not self.at_end():
            char = self.text[self.index]
            if char.isspace() or self.peek("|") or self.peek(CLOSURE_END):
                break
            if char == "\\" and self.index + 1 < len(self.text):
                escaped = self.read_escape()
                chars.append(escaped)
                continue
            chars.append(char)
            self.index += 1
        return "".join(chars)

    def read_escape(self) -> str:
        following = self.text[self.index + 1]
        if self.strict or following in DEFAULT_ESCAPABLE:
            self.index += 2
            return following
        self.index += 1
        return "\\"

    # -- unnamed argument ----------------------------------------------

    def parse_unnamed_value(self) -> ArgumentAssignment | None:
        self.skip_whitespace()
        value_start = self.index
        pieces: list[ArgumentPiece] = []
        chars: list[str] = []

        def flush() -> None:
            if chars:
                pieces.append("".join(chars))
                chars.clear()

        while not self.at_terminator():
            char = self.text[self.index]
            if self.peek(CLOSURE_START):
                flush()
                pieces.append(self.parse_closure())
                continue
            if char == "\\" and self.index + 1 < len(self.text):
                chars.append(self.read_escape())
                continue
            if char == '"' and self.strict:
                chars.append(self.read_strict_quoted_segment())
                continue
            chars.append(char)
            self.index += 1
        flush()

        value_end = self.index
        if pieces and isinstance(pieces[0], str):
            pieces[0] = pieces[0].lstrip()
        if pieces and isinstance(pieces[-1], str):
            pieces[-1] = pieces[-1].rstrip()
        pieces = [p for p in pieces if not (isinstance(p, str) and p == "")]
        if not pieces:
            return None
        value: ArgumentValue = pieces[0] if len(pieces) == 1 else tuple(pieces)
        return ArgumentAssignment("", value, value_start, value_end)

    def read_strict_quoted_segment(self) -> str:
        """Read ``"..."`` keeping the quotes; inside it terminators are literal."""
        quote_start = self.index
        self.index += 1
        chars = ['"']
        while not self.at_end():
            char = self.text[self.index]
            if char == "\\" and self.index + 1 < len(self.text):
                following = self.text[self.index + 1]
                chars.append(following)
                self.index += 2
                continue
            chars.append(char)
            self.index += 1
            if char == '"':
                return "".join(chars)
        raise self.error("Unterminated quoted value", quote_start)

    # -- closures ------------------------------------------------------

    def parse_closure(self) -> Block:
        closure_start = self.index
        if not self.allow_nested_closures:
            raise self.error("Nested closures are not allowed here", closure_start)
        self.index += len(CLOSURE_START)

        parameters = self.parse_closure_parameters()
        commands = self.parse_sequence(nested=True, block_start=closure_start)
        self.index += len(CLOSURE_END)
        closure_end = self.index

        execute_now = False
        if self.peek("()"):
            self.index += 2
            execute_now = True

        return self.new_block(
            source_text=self.text[closure_start:closure_end],
            commands=commands,
            argument_list=parameters,
            execute_now=execute_now,
            start=closure_start,
        )

    def parse_closure_parameters(self) -> tuple[ArgumentAssignment, ...]:
        parameters: list[ArgumentAssignment] = []
        seen: set[str] = set()
        while True:
            self.skip_whitespace()
            match = PARAMETER_PATTERN.match(self.text, self.index)
            if match is None:
                break
            name = match.group(0)
            param_start = self.index
            if name in seen:
                raise self.error(f"Duplicate closure parameter: {name!r}", param_start)
            seen.add(name)
            self.index = match.end()
            value: ArgumentValue = ""
            was_quoted = False
            if self.peek("="):
                self.index += 1
                value, was_quoted = self.parse_named_value(name)
            elif not (self.at_end() or self.current().isspace() or self.at_terminator()):
                raise self.error(
                    f"Unexpected character after closure parameter {name!r}", self.index
                )
            parameters.append(
                ArgumentAssignment(name, value, param_start, self.index, was_quoted)
            )
        return tuple(parameters)
