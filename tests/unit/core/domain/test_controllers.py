import asyncio

import pytest
from slashscript.core.domain.controllers import (
    AbortController,
    BreakController,
    DebugController,
    StepMode,
)


class TestAbortController:
    def test_abort_sets_signal(self) -> None:
        controller = AbortController()

        controller.abort("stop", quiet=True)

        assert controller.signal.aborted
        assert controller.signal.reason == "stop"
        assert controller.signal.is_quiet

    def test_default_reason(self) -> None:
        controller = AbortController()

        controller.abort()

        assert controller.signal.reason == "No reason."
        assert not controller.signal.is_quiet

    def test_pause_and_continue(self) -> None:
        controller = AbortController()

        controller.pause("wait")
        assert controller.signal.paused
        controller.continue_()
        assert not controller.signal.paused

    @pytest.mark.asyncio
    async def test_wait_returns_immediately_when_running(self) -> None:
        await asyncio.wait_for(AbortController().wait_while_paused(), timeout=1)

    @pytest.mark.asyncio
    async def test_wait_is_released_by_continue(self) -> None:
        controller = AbortController()
        controller.pause()
        waiter = asyncio.create_task(controller.wait_while_paused())
        await asyncio.sleep(0)
        assert not waiter.done()

        controller.continue_()

        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_is_released_by_abort(self) -> None:
        controller = AbortController()
        controller.pause()
        waiter = asyncio.create_task(controller.wait_while_paused())
        await asyncio.sleep(0)

        controller.abort("gone")

        await asyncio.wait_for(waiter, timeout=1)
        await asyncio.wait_for(controller.wait_aborted(), timeout=1)


def test_break_controller() -> None:
    controller = BreakController()
    assert not controller.is_break

    controller.break_()
    assert controller.is_break

    controller.reset()
    assert not controller.is_break


class TestDebugController:
    def test_stack_tracking(self) -> None:
        debug = DebugController()
        outer, inner = object(), object()

        debug.enter(outer)
        debug.enter(inner)
        assert debug.depth == 2

        debug.leave(outer)
        assert debug.stack == [inner]
        debug.leave(inner)
        assert debug.depth == 0

    @pytest.mark.parametrize(
        ("mode", "depth", "expected"),
        [
            (StepMode.CONTINUE, 1, False),
            (StepMode.STEP_INTO, 5, True),
            (StepMode.STEP_OVER, 2, True),
            (StepMode.STEP_OVER, 3, False),
            (StepMode.STEP_OUT, 2, False),
            (StepMode.STEP_OUT, 1, True),
        ],
    )
    def test_should_pause(self, mode: StepMode, depth: int, expected: bool) -> None:
        debug = DebugController()
        debug.mode = mode
        debug._anchor_depth = 2

        assert debug.should_pause(depth) is expected

    def test_release_anchors_at_current_depth(self) -> None:
        debug = DebugController()
        debug.enter(object())
        debug.enter(object())

        debug.step_out()

        assert debug.mode == StepMode.STEP_OUT
        assert debug._anchor_depth == 2
