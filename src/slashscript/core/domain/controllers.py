"""
Cooperative control signals consulted by the block executor.

- AbortController: abort and pause/continue, shared by reference with every
  block a script spawns unless a caller substitutes a fresh one.
- BreakController: side channel letting an iterating command end its loop
  early.
- DebugController: breakpoints and stepping.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from slashscript.core.domain.closure import Block
    from slashscript.core.domain.nodes import ScriptNode
    from slashscript.core.domain.scope import Scope

logger = logging.getLogger(__name__)


@dataclass
class AbortSignal:
    aborted: bool = False
    reason: str = ""
    is_quiet: bool = False
    paused: bool = False


class AbortController:
    """Abort and pause/continue signal for a running script."""

    def __init__(self) -> None:
        self.signal = AbortSignal()
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._aborted = asyncio.Event()

    def abort(self, reason: str = "No reason.", quiet: bool = False) -> None:
        self.signal.aborted = True
        self.signal.reason = reason
        self.signal.is_quiet = quiet
        logger.debug("Abort requested: %s (quiet=%s)", reason, quiet)
        self._aborted.set()
        # Wake anything waiting on a pause so it can observe the abort.
        self._resumed.set()

    def pause(self, reason: str = "") -> None:
        self.signal.paused = True
        self.signal.reason = reason
        self._resumed.clear()
        logger.debug("Pause requested: %s", reason)

    def continue_(self, reason: str = "") -> None:
        self.signal.paused = False
        self.signal.reason = reason
        self._resumed.set()
        logger.debug("Continue requested: %s", reason)

    async def wait_while_paused(self) -> None:
        """Block until the signal is neither paused nor superseded by an abort."""
        while self.signal.paused and not self.signal.aborted:
            await self._resumed.wait()

    async def wait_aborted(self) -> None:
        await self._aborted.wait()


class BreakController:
    """Set by ``/break``; consulted by iterating commands and the executor."""

    def __init__(self) -> None:
        self.is_break = False

    def break_(self) -> None:
        self.is_break = True

    def reset(self) -> None:
        self.is_break = False


class StepMode(str, Enum):
    CONTINUE = "continue"
    STEP_OVER = "step_over"
    STEP_INTO = "step_into"
    STEP_OUT = "step_out"


@dataclass(frozen=True)
class DebugSnapshot:
    """State exposed to a debugger while execution is paused."""

    block: Block
    node: ScriptNode
    scope: Scope
    pipe: Any
    depth: int
    is_breakpoint: bool


BreakpointHook = Callable[[DebugSnapshot], Awaitable[None] | None]


class DebugController:
    """
    Breakpoint and stepping control.

    The executor reports every block it enters and every command it is
    about to run. When the controller decides to stop, execution waits
    until one of :meth:`resume`, :meth:`step_over`, :meth:`step_into` or
    :meth:`step_out` is called. ``on_breakpoint`` is invoked on every stop
    with a :class:`DebugSnapshot`.
    """

    def __init__(self, on_breakpoint: BreakpointHook | None = None) -> None:
        self.on_breakpoint = on_breakpoint
        self.stack: list[Block] = []
        self.mode = StepMode.CONTINUE
        self.snapshot: DebugSnapshot | None = None
        self._anchor_depth = 0
        self._released = asyncio.Event()

    @property
    def depth(self) -> int:
        return len(self.stack)

    @property
    def is_paused(self) -> bool:
        return self.snapshot is not None

    def enter(self, block: Block) -> None:
        self.stack.append(block)

    def leave(self, block: Block) -> None:
        if self.stack and self.stack[-1] is block:
            self.stack.pop()
        elif block in self.stack:
            self.stack.remove(block)

    def should_pause(self, depth: int) -> bool:
        if self.mode == StepMode.STEP_INTO:
            return True
        if self.mode == StepMode.STEP_OVER:
            return depth <= self._anchor_depth
        if self.mode == StepMode.STEP_OUT:
            return depth < self._anchor_depth
        return False

    async def pause_at(
        self,
        block: Block,
        node: ScriptNode,
        scope: Scope,
        pipe: Any,
        is_breakpoint: bool = False,
        abort_controller: AbortController | None = None,
    ) -> None:
        """Stop before ``node`` until the debugger releases execution."""
        self.snapshot = DebugSnapshot(
            block=block,
            node=node,
            scope=scope,
            pipe=pipe,
            depth=self.depth,
            is_breakpoint=is_breakpoint,
        )
        self._released.clear()
        logger.debug(
            "Debugger stopped at line %s column %s", node.line, node.column
        )
        try:
            if self.on_breakpoint is not None:
                outcome = self.on_breakpoint(self.snapshot)
                if inspect.isawaitable(outcome):
                    await outcome
            await self._wait_for_release(abort_controller)
        finally:
            self.snapshot = None

    async def _wait_for_release(self, abort_controller: AbortController | None) -> None:
        if abort_controller is None:
            await self._released.wait()
            return
        while not self._released.is_set() and not abort_controller.signal.aborted:
            abort_wait = asyncio.ensure_future(abort_controller.wait_aborted())
            release_wait = asyncio.ensure_future(self._released.wait())
            _, pending = await asyncio.wait(
                {abort_wait, release_wait}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()

    def _release(self, mode: StepMode) -> None:
        self.mode = mode
        self._anchor_depth = self.snapshot.depth if self.snapshot else self.depth
        self._released.set()

    def resume(self) -> None:
        self._release(StepMode.CONTINUE)

    def step_over(self) -> None:
        self._release(StepMode.STEP_OVER)

    def step_into(self) -> None:
        self._release(StepMode.STEP_INTO)

    def step_out(self) -> None:
        self._release(StepMode.STEP_OUT)
