import logging
from collections.abc import Callable
from typing import Any

import pytest
from slashscript.core.commands.builtins import register_core_commands
from slashscript.core.commands.parser import ScriptParser
from slashscript.core.commands.registry import CommandRegistry
from slashscript.core.domain.closure import Block
from slashscript.core.domain.command_context import CommandArguments
from slashscript.core.domain.execution_result import ExecutionResult
from slashscript.core.domain.scope import Scope
from slashscript.core.interfaces.variable_store_interface import IVariableStore


@pytest.fixture(autouse=True)
def _configure_logging_for_tests() -> None:
    """
    Automatically configure logging for all unit tests to ensure
    consistent output and proper environment tagging.
    """
    from slashscript.core.common.logging_utils import (
        configure_logging_with_environment_tagging,
    )

    configure_logging_with_environment_tagging(level=logging.INFO)


class CallRecorder:
    """Records the arguments of every call made to a registered command."""

    def __init__(self, result: Callable[[CommandArguments, Any], Any] | None = None):
        self.calls: list[tuple[dict[str, Any], Any]] = []
        self._result = result

    def __call__(self, args: CommandArguments, value: Any) -> Any:
        self.calls.append((dict(args), value))
        if self._result is not None:
            return self._result(args, value)
        return value

    @property
    def count(self) -> int:
        return len(self.calls)

    @property
    def values(self) -> list[Any]:
        return [value for _, value in self.calls]


@pytest.fixture
def registry() -> CommandRegistry:
    """A registry holding the core built-ins."""
    return register_core_commands(CommandRegistry())


@pytest.fixture
def parser(registry: CommandRegistry) -> ScriptParser:
    return ScriptParser(registry)


@pytest.fixture
def run_script(parser: ScriptParser) -> Callable[..., Any]:
    """Parse and execute a script in a fresh root scope."""

    async def _run(
        text: str,
        scope: Scope | None = None,
        variable_store: IVariableStore | None = None,
        parser_flags: dict[str, bool] | None = None,
        **kwargs: Any,
    ) -> ExecutionResult:
        block = parse_and_bind(
            parser, text, scope or Scope(), variable_store, parser_flags
        )
        return await block.execute(**kwargs)

    return _run


def parse_and_bind(
    parser: ScriptParser,
    text: str,
    scope: Scope,
    variable_store: IVariableStore | None = None,
    parser_flags: dict[str, bool] | None = None,
) -> Block:
    block = parser.parse(text, parser_flags=parser_flags)
    return block.bind_to_caller(
        scope, block.abort_controller, block.debug_controller, variable_store=variable_store
    )


@pytest.fixture
def make_recorder() -> type[CallRecorder]:
    return CallRecorder


@pytest.fixture
def bind() -> Callable[..., Block]:
    return parse_and_bind
