"""
Script execution entry point.

Parses script text, links the top-level block into the caller's context and
runs it, reporting parse errors, execution errors and aborts according to
the options given.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from slashscript.core.commands.parser import ScriptParser
from slashscript.core.commands.registry import CommandRegistry, command_registry
from slashscript.core.common.exceptions import ExecutionError, ParseError
from slashscript.core.common.logging_utils import LogContext, get_logger, summarize
from slashscript.core.config.app_config import EngineConfig
from slashscript.core.domain.closure import Block, ProgressCallback
from slashscript.core.domain.controllers import AbortController, DebugController
from slashscript.core.domain.execution_result import ExecutionResult
from slashscript.core.domain.parser_flags import ParserFlag
from slashscript.core.domain.scope import Scope
from slashscript.core.interfaces.error_reporter_interface import IErrorReporter
from slashscript.core.interfaces.script_service_interface import IScriptService
from slashscript.core.interfaces.variable_store_interface import IVariableStore

logger = get_logger(__name__)


@dataclass
class ExecuteOptions:
    """
    Per-call execution options.

    ``None`` for the two error-handling switches means "use the configured
    default".
    """

    handle_parser_errors: bool | None = None
    handle_execution_errors: bool | None = None
    scope: Scope | None = None
    parser_flags: Mapping[ParserFlag | str, bool] | None = None
    abort_controller: AbortController | None = None
    debug_controller: DebugController | None = None
    on_progress: ProgressCallback | None = None
    source: str | None = None


class LoggingErrorReporter(IErrorReporter):
    """Reports script problems through the structured logger."""

    def report_parse_error(self, error: ParseError, source: str | None = None) -> None:
        logger.error(
            "Script parse error",
            error=error.message,
            line=error.line,
            column=error.column,
            hint=error.hint,
            source=source,
        )

    def report_execution_error(
        self, error: Exception, source: str | None = None
    ) -> None:
        logger.error(
            "Script execution error",
            error=getattr(error, "message", str(error)),
            command=getattr(error, "command_name", None),
            line=getattr(error, "line", None),
            column=getattr(error, "column", None),
            hint=getattr(error, "hint", ""),
            source=source,
        )

    def report_abort(self, result: ExecutionResult, source: str | None = None) -> None:
        logger.warning("Script aborted", reason=result.abort_reason, source=source)


class ScriptService(IScriptService):
    """Parses and executes scripts against a command registry."""

    def __init__(
        self,
        registry: CommandRegistry | None = None,
        variable_store: IVariableStore | None = None,
        error_reporter: IErrorReporter | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.registry = registry if registry is not None else command_registry
        self.variable_store = variable_store
        self.error_reporter = error_reporter or LoggingErrorReporter()
        self.config = config or EngineConfig()
        self.parser = ScriptParser(
            self.registry,
            verify_command_names=self.config.parser.verify_command_names,
        )

    def _parser_flags(self, options: ExecuteOptions) -> dict[ParserFlag | str, bool]:
        flags: dict[ParserFlag | str, bool] = {
            ParserFlag.STRICT_ESCAPING: self.config.parser.strict_escaping,
            ParserFlag.REPLACE_GETVAR: self.config.parser.replace_getvar,
        }
        if options.parser_flags:
            flags.update(options.parser_flags)
        return flags

    def parse(self, text: str, options: ExecuteOptions | None = None) -> Block:
        """Parse ``text`` with the configured parser settings."""
        options = options or ExecuteOptions()
        return self.parser.parse(
            text,
            allow_nested_closures=self.config.parser.allow_nested_closures,
            parser_flags=self._parser_flags(options),
            abort_controller=options.abort_controller,
            debug_controller=options.debug_controller,
        )

    async def execute(
        self, text: str, options: ExecuteOptions | None = None
    ) -> ExecutionResult | None:
        """
        Parse and execute a script.

        Args:
            text: Script text.
            options: Execution options; configured defaults apply when omitted.

        Returns:
            The execution result, or None when ``text`` is empty.

        Raises:
            ParseError: When parsing fails and parser errors are not handled.
            ExecutionError: When execution fails and execution errors are not
                handled.
        """
        if not text or not text.strip():
            return None
        options = options or ExecuteOptions()
        handle_parser_errors = (
            self.config.execution.handle_parser_errors
            if options.handle_parser_errors is None
            else options.handle_parser_errors
        )
        handle_execution_errors = (
            self.config.execution.handle_execution_errors
            if options.handle_execution_errors is None
            else options.handle_execution_errors
        )

        with LogContext(logger, source=options.source) as log:
            return await self._execute(
                text, options, handle_parser_errors, handle_execution_errors, log
            )

    async def _execute(
        self,
        text: str,
        options: ExecuteOptions,
        handle_parser_errors: bool,
        handle_execution_errors: bool,
        log: Any,
    ) -> ExecutionResult:
        try:
            block = self.parse(text, options)
        except ParseError as exc:
            if not handle_parser_errors:
                raise
            self.error_reporter.report_parse_error(exc, options.source)
            return ExecutionResult()

        scope = options.scope if options.scope is not None else Scope()
        block.bind_to_caller(
            scope,
            block.abort_controller,
            block.debug_controller,
            variable_store=self.variable_store,
        )
        block.on_progress = options.on_progress
        block.source = options.source

        log.debug("Executing script", script=summarize(text))
        try:
            result = await block.execute()
        except ExecutionError as exc:
            if not handle_execution_errors:
                raise
            self.error_reporter.report_execution_error(exc, options.source)
            return ExecutionResult.from_error(exc)

        if result.is_aborted and not result.is_quietly_aborted:
            self.error_reporter.report_abort(result, options.source)
        log.debug(
            "Script finished",
            pipe=summarize(result.pipe),
            aborted=result.is_aborted,
        )
        return result
