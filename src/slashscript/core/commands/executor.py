"""
Block executor.

Runs one invocation of a block: Idle -> Running -> (Suspended <-> Running)
-> Completed | Aborted | Errored. Abort, pause and the debugger are checked
before every node; the pipe threads each command's output into the next.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from slashscript.core.commands.binder import ArgumentBinder
from slashscript.core.commands.macros import stringify, substitute
from slashscript.core.common.exceptions import ExecutionError
from slashscript.core.common.logging_utils import summarize
from slashscript.core.domain.closure import Block, ProgressTracker
from slashscript.core.domain.command_context import CommandContext
from slashscript.core.domain.execution_result import ExecutionResult
from slashscript.core.domain.nodes import (
    BreakNode,
    BreakpointNode,
    CommandNode,
    ScriptNode,
)

logger = logging.getLogger(__name__)


class ExecutionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"


class BlockExecutor:
    """Executes the nodes of a single block once."""

    def __init__(self, block: Block, binder: ArgumentBinder | None = None) -> None:
        self.block = block
        self.binder = binder or ArgumentBinder()
        self.state = ExecutionState.IDLE
        self.pipe: Any = ""
        self.progress: ProgressTracker | None = None

    def _transition(self, state: ExecutionState) -> None:
        logger.debug(
            "Block %s: %s -> %s", self.block.source or "<script>", self.state.value, state.value
        )
        self.state = state

    async def run(
        self,
        provided_arguments: Mapping[str, Any] | None = None,
        pipe: Any = None,
        catch_errors: bool = False,
    ) -> ExecutionResult:
        """
        Execute the block.

        Args:
            provided_arguments: Closure argument values for this invocation.
            pipe: Initial pipe; defaults to the caller scope's pipe, else "".
            catch_errors: Return an errored result instead of raising.

        Returns:
            The result of the invocation.
        """
        block = self.block
        scope = block.scope
        self._transition(ExecutionState.RUNNING)
        self.progress = block.progress
        if self.progress is None and block.on_progress is not None:
            self.progress = ProgressTracker(block.on_progress, block.command_count)

        if pipe is None:
            pipe = scope.parent.pipe if scope.parent is not None else None
        self.pipe = "" if pipe is None else pipe
        scope.pipe = self.pipe

        debug = block.debug_controller
        if debug is not None:
            debug.enter(block)
        try:
            self._bind_parameters(provided_arguments or {})
            return await self._run_nodes()
        except ExecutionError as exc:
            self._transition(ExecutionState.ERRORED)
            logger.debug("Block failed: %s", exc.message)
            if catch_errors:
                return ExecutionResult.from_error(exc, self.pipe)
            raise
        finally:
            if debug is not None:
                debug.leave(block)

    def _bind_parameters(self, provided: Mapping[str, Any]) -> None:
        block = self.block
        scope = block.scope
        for parameter in block.argument_list:
            if parameter.name in provided:
                scope.let_variable(parameter.name, provided[parameter.name])
                continue
            default = parameter.value
            if isinstance(default, Block):
                default.bind_to_caller(
                    scope,
                    block.abort_controller,
                    block.debug_controller,
                    variable_store=block.variable_store,
                    progress=self.progress,
                )
            elif isinstance(default, str):
                default = substitute(default, scope, self.pipe, frozenset(), block.variable_store)
            scope.let_variable(parameter.name, default)
        declared = {parameter.name for parameter in block.argument_list}
        for name, value in provided.items():
            if name not in declared:
                scope.let_variable(name, value)

    async def _run_nodes(self) -> ExecutionResult:
        block = self.block
        abort = block.abort_controller
        debug = block.debug_controller
        for node in block.commands:
            if abort.signal.aborted:
                return self._aborted()
            if abort.signal.paused:
                self._transition(ExecutionState.SUSPENDED)
                await abort.wait_while_paused()
                self._transition(ExecutionState.RUNNING)
                if abort.signal.aborted:
                    return self._aborted()

            if debug is not None:
                is_breakpoint = isinstance(node, BreakpointNode)
                if is_breakpoint or debug.should_pause(debug.depth):
                    self._transition(ExecutionState.SUSPENDED)
                    await debug.pause_at(
                        block,
                        node,
                        block.scope,
                        self.pipe,
                        is_breakpoint=is_breakpoint,
                        abort_controller=abort,
                    )
                    self._transition(ExecutionState.RUNNING)
                    if abort.signal.aborted:
                        return self._aborted()

            if isinstance(node, BreakNode):
                await self._run_break(node)
                self._report_progress()
                self._transition(ExecutionState.COMPLETED)
                return ExecutionResult(pipe=self.pipe, is_break=True)

            if isinstance(node, CommandNode):
                context = await self._run_command(node)
                block.scope.pipe = self.pipe
                self._report_progress()
                if context.returned:
                    break
                if block.break_controller.is_break:
                    self._transition(ExecutionState.COMPLETED)
                    return ExecutionResult(pipe=self.pipe, is_break=True)
            else:
                self._report_progress()

        if abort.signal.aborted:
            return self._aborted()
        self._transition(ExecutionState.COMPLETED)
        return ExecutionResult(pipe=self.pipe)

    def _aborted(self) -> ExecutionResult:
        signal = self.block.abort_controller.signal
        self._transition(ExecutionState.ABORTED)
        return ExecutionResult(
            pipe=self.pipe,
            is_aborted=True,
            is_quietly_aborted=signal.is_quiet,
            abort_reason=signal.reason,
        )

    def _report_progress(self) -> None:
        if self.progress is not None:
            self.progress.advance()

    def _context(self) -> CommandContext:
        block = self.block
        return CommandContext(
            scope=block.scope,
            pipe=self.pipe,
            block=block,
            abort_controller=block.abort_controller,
            break_controller=block.break_controller,
            debug_controller=block.debug_controller,
            variable_store=block.variable_store,
            progress=self.progress,
        )

    async def _run_break(self, node: BreakNode) -> None:
        if node.value is not None:
            context = self._context()
            context.parser_flags = node.flags
            try:
                self.pipe = await self.binder.resolve(node.value.value, context, node.flags)
            except ExecutionError as exc:
                raise self._attribute(exc, node, "break") from None
            except Exception as exc:
                raise self._wrap(exc, node, "break") from exc
        self.block.break_controller.break_()
        self.block.scope.pipe = self.pipe
        logger.debug("Break at line %s with pipe %s", node.line, summarize(self.pipe))

    async def _run_command(self, node: CommandNode) -> CommandContext:
        definition = node.definition
        if definition is None:
            raise ExecutionError(
                f"Unknown command: /{node.name}",
                node.line,
                node.column,
                node.hint,
                command_name=node.name,
            )

        context = self._context()
        context.parser_flags = node.flags
        try:
            args, value = await self.binder.bind(node, definition, context)
            logger.debug("Executing /%s with %s", node.name, summarize(value))
            result = definition.callback(args, value)
            if inspect.isawaitable(result):
                result = await result
        except ExecutionError as exc:
            raise self._attribute(exc, node, node.name) from None
        except Exception as exc:
            raise self._wrap(exc, node, node.name) from exc

        if context.returned:
            result = context.return_value
        if isinstance(result, Block) or definition.is_structured_return:
            self.pipe = result
        else:
            self.pipe = stringify(result)
        return context

    @staticmethod
    def _attribute(exc: ExecutionError, node: ScriptNode, command_name: str) -> ExecutionError:
        """Fill in the node's position on errors that do not carry one yet."""
        if exc.line is None:
            exc.line = node.line
            exc.column = node.column
            exc.hint = node.hint
        if exc.command_name is None:
            exc.command_name = command_name
        return exc

    @staticmethod
    def _wrap(exc: Exception, node: ScriptNode, command_name: str) -> ExecutionError:
        message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        return ExecutionError(
            message,
            node.line,
            node.column,
            node.hint,
            command_name=command_name,
            details={"exception_type": exc.__class__.__name__},
        )
