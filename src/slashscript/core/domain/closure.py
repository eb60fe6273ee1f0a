"""
Blocks (closures): first-class, re-invocable command sequences.

A Block owns its Scope. The scope's parent is linked to the caller's scope
when the block is bound as an argument or run, never at parse time, so the
same block sees the enclosing variables of wherever it is invoked from.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from slashscript.core.common.exceptions import ExecutionError
from slashscript.core.domain.controllers import (
    AbortController,
    BreakController,
    DebugController,
)
from slashscript.core.domain.nodes import ArgumentAssignment, CommandNode, ScriptNode
from slashscript.core.domain.scope import Scope

if TYPE_CHECKING:
    from slashscript.core.domain.execution_result import ExecutionResult
    from slashscript.core.interfaces.variable_store_interface import IVariableStore

ProgressCallback = Callable[[int, int], None]


class ProgressTracker:
    """
    Counts finished commands across a block and every block it runs.

    ``total`` starts at the outermost block's command count and grows when
    loops or recursion run more commands than the source contains.
    """

    def __init__(self, callback: ProgressCallback, total: int) -> None:
        self.callback = callback
        self.total = total
        self.done = 0

    def advance(self) -> None:
        self.done += 1
        self.total = max(self.total, self.done)
        self.callback(self.done, self.total)


class Block:
    """
    A parsed command sequence with its own scope.

    Attributes:
        source_text: The block's own text (the literal body, or the whole script).
        commands: Nodes executed in order.
        scope: Local scope; parent assigned at bind/run time.
        argument_list: Closure parameters declared before the first command.
        execute_now: Literal was followed by ``()``; the binder runs it and
            uses its pipe as the argument value.
        source: Provenance tag for diagnostics.
    """

    def __init__(
        self,
        source_text: str = "",
        commands: tuple[ScriptNode, ...] = (),
        scope: Scope | None = None,
        argument_list: tuple[ArgumentAssignment, ...] = (),
        execute_now: bool = False,
        abort_controller: AbortController | None = None,
        debug_controller: DebugController | None = None,
        break_controller: BreakController | None = None,
        on_progress: ProgressCallback | None = None,
        source: str | None = None,
        variable_store: IVariableStore | None = None,
        start: int = 0,
        progress: ProgressTracker | None = None,
    ) -> None:
        self.source_text = source_text
        self.commands = tuple(commands)
        self.scope = scope or Scope()
        self.argument_list = tuple(argument_list)
        self.execute_now = execute_now
        self.abort_controller = abort_controller or AbortController()
        self.debug_controller = debug_controller
        self.break_controller = break_controller or BreakController()
        self.on_progress = on_progress
        self.source = source
        self.variable_store = variable_store
        self.start = start
        self.progress = progress

    def __repr__(self) -> str:
        return f"<Block commands={len(self.commands)} source={self.source!r}>"

    def __str__(self) -> str:
        return self.source_text

    @property
    def command_count(self) -> int:
        """Number of commands including those of nested blocks."""
        count = 0
        for node in self.commands:
            count += 1
            if isinstance(node, CommandNode):
                count += sum(b.command_count for b in node.nested_blocks())
        return count

    def bind_to_caller(
        self,
        scope: Scope,
        abort_controller: AbortController,
        debug_controller: DebugController | None = None,
        break_controller: BreakController | None = None,
        variable_store: IVariableStore | None = None,
        progress: ProgressTracker | None = None,
    ) -> Block:
        """
        Link this block into a caller's context before it runs there.

        Raises:
            ExecutionError: When ``scope`` is this block's own scope or one of
                its descendants. Run a copy (:meth:`get_copy`) instead.
        """
        if scope.is_in_chain(self.scope):
            raise ExecutionError(
                "A closure cannot be linked into its own scope chain",
                details={"closure": self.source_text},
            )
        self.scope.parent = scope
        self.progress = progress
        self.abort_controller = abort_controller
        self.debug_controller = debug_controller
        if break_controller is not None:
            self.break_controller = break_controller
        if variable_store is not None:
            self.variable_store = variable_store
        return self

    def get_copy(self) -> Block:
        """Return an independent block with a copied scope and fresh break state."""
        return Block(
            source_text=self.source_text,
            commands=self.commands,
            scope=self.scope.get_copy(),
            argument_list=self.argument_list,
            execute_now=self.execute_now,
            abort_controller=self.abort_controller,
            debug_controller=self.debug_controller,
            break_controller=BreakController(),
            on_progress=self.on_progress,
            source=self.source,
            variable_store=self.variable_store,
            start=self.start,
            progress=self.progress,
        )

    async def execute(
        self,
        provided_arguments: Mapping[str, Any] | None = None,
        pipe: Any = None,
        catch_errors: bool = False,
    ) -> ExecutionResult:
        """
        Run the block once.

        Args:
            provided_arguments: Values for the block's declared parameters;
                parameters not provided fall back to their declared defaults.
            pipe: Initial pipe value; when None the scope chain's pipe is used.
            catch_errors: Return an errored result instead of raising.

        Returns:
            The ExecutionResult of this invocation.

        Raises:
            ExecutionError: When a command fails and ``catch_errors`` is False.
        """
        from slashscript.core.commands.executor import BlockExecutor

        executor = BlockExecutor(self)
        return await executor.run(
            provided_arguments=provided_arguments,
            pipe=pipe,
            catch_errors=catch_errors,
        )
