"""Tests for the script execution entry point."""

import logging
from unittest.mock import MagicMock

import pytest
from slashscript.core.commands.registry import CommandRegistry
from slashscript.core.common.exceptions import ExecutionError, ParseError
from slashscript.core.config.app_config import EngineConfig, ParserConfig
from slashscript.core.domain.controllers import AbortController
from slashscript.core.domain.execution_result import ExecutionResult
from slashscript.core.domain.parser_flags import ParserFlag
from slashscript.core.domain.scope import Scope
from slashscript.core.interfaces.error_reporter_interface import IErrorReporter
from slashscript.core.repositories.in_memory_variable_store import (
    InMemoryVariableStore,
)
from slashscript.core.services.script_service import (
    ExecuteOptions,
    LoggingErrorReporter,
    ScriptService,
)


@pytest.fixture
def reporter() -> MagicMock:
    return MagicMock(spec=IErrorReporter)


@pytest.fixture
def service(registry: CommandRegistry, reporter: MagicMock) -> ScriptService:
    def boom(args, value):
        raise RuntimeError("exploded")

    registry.register("boom", boom)
    return ScriptService(registry, InMemoryVariableStore(), reporter)


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   \n  "])
async def test_empty_script_returns_none(service: ScriptService, text: str) -> None:
    assert await service.execute(text) is None


@pytest.mark.asyncio
async def test_executes_script(service: ScriptService) -> None:
    result = await service.execute("/pass hello | /pass {{pipe}} world")

    assert result.pipe == "hello world"
    assert result.is_completed


@pytest.mark.asyncio
async def test_parse_errors_are_handled_by_default(
    service: ScriptService, reporter: MagicMock
) -> None:
    result = await service.execute("/nope", ExecuteOptions(source="chat"))

    assert result == ExecutionResult()
    reporter.report_parse_error.assert_called_once()
    error, source = reporter.report_parse_error.call_args.args
    assert isinstance(error, ParseError)
    assert source == "chat"


@pytest.mark.asyncio
async def test_parse_errors_can_be_raised(service: ScriptService) -> None:
    with pytest.raises(ParseError, match="Unknown command"):
        await service.execute("/nope", ExecuteOptions(handle_parser_errors=False))


@pytest.mark.asyncio
async def test_execution_errors_are_raised_by_default(
    service: ScriptService, reporter: MagicMock
) -> None:
    with pytest.raises(ExecutionError, match="exploded"):
        await service.execute("/boom")

    reporter.report_execution_error.assert_not_called()


@pytest.mark.asyncio
async def test_execution_errors_can_be_handled(
    service: ScriptService, reporter: MagicMock
) -> None:
    result = await service.execute(
        "/pass a | /boom", ExecuteOptions(handle_execution_errors=True)
    )

    assert result.is_error
    assert result.error_message == "exploded"
    assert result.error.command_name == "boom"
    reporter.report_execution_error.assert_called_once()


@pytest.mark.asyncio
async def test_configured_error_handling(registry: CommandRegistry, reporter: MagicMock) -> None:
    config = EngineConfig()
    config.execution.handle_parser_errors = False
    service = ScriptService(registry, error_reporter=reporter, config=config)

    with pytest.raises(ParseError):
        await service.execute("/nope")


@pytest.mark.asyncio
async def test_aborts_are_reported_unless_quiet(
    service: ScriptService, reporter: MagicMock
) -> None:
    loud = await service.execute("/abort stop")
    quiet = await service.execute("/abort quiet=on")

    assert loud.is_aborted and loud.abort_reason == "stop"
    assert quiet.is_quietly_aborted
    reporter.report_abort.assert_called_once()
    assert reporter.report_abort.call_args.args[0] is loud


@pytest.mark.asyncio
async def test_external_abort_controller(service: ScriptService) -> None:
    controller = AbortController()
    controller.abort("before start")

    result = await service.execute(
        "/pass never", ExecuteOptions(abort_controller=controller)
    )

    assert result.is_aborted
    assert result.abort_reason == "before start"


@pytest.mark.asyncio
async def test_scope_and_progress_options(service: ScriptService) -> None:
    scope = Scope()
    scope.let_variable("name", "bob")
    progress: list[tuple[int, int]] = []

    result = await service.execute(
        "/pass {{var::name}} | /pass {{pipe}}!",
        ExecuteOptions(scope=scope, on_progress=lambda d, t: progress.append((d, t))),
    )

    assert result.pipe == "bob!"
    assert progress == [(1, 2), (2, 2)]
    assert scope.pipe is None


@pytest.mark.asyncio
async def test_variable_store_is_shared(service: ScriptService) -> None:
    await service.execute("/setvar key=color blue")
    result = await service.execute("/pass {{getvar::color}}")

    assert result.pipe == "blue"


@pytest.mark.asyncio
async def test_parser_flag_options(service: ScriptService) -> None:
    scope = Scope()
    scope.let_variable("color", "red")
    await service.execute("/setvar key=color blue")

    result = await service.execute(
        "/pass {{getvar::color}}",
        ExecuteOptions(scope=scope, parser_flags={ParserFlag.REPLACE_GETVAR: True}),
    )

    assert result.pipe == "red"


@pytest.mark.asyncio
async def test_strict_escaping_from_config(registry: CommandRegistry) -> None:
    config = EngineConfig(parser=ParserConfig(strict_escaping=True))
    service = ScriptService(registry, config=config)

    result = await service.execute('/pass "a | b"')

    assert result.pipe == "a | b"


def test_parse_uses_configured_nesting(registry: CommandRegistry) -> None:
    config = EngineConfig(parser=ParserConfig(allow_nested_closures=False))
    service = ScriptService(registry, config=config)

    with pytest.raises(ParseError, match="Nested closures"):
        service.parse("/run {: /pass :}")


def test_logging_error_reporter(caplog: pytest.LogCaptureFixture) -> None:
    reporter = LoggingErrorReporter()
    error = ParseError("Unterminated quoted value", line=1, column=14, hint="x\n^")

    with caplog.at_level(logging.ERROR):
        reporter.report_parse_error(error, "script.txt")
        reporter.report_execution_error(
            ExecutionError("failed", 2, 3, command_name="boom"), "script.txt"
        )

    assert "Script parse error" in caplog.text
    assert "Unterminated quoted value" in caplog.text
    assert "Script execution error" in caplog.text
    assert "command='boom'" in caplog.text
