"""Tests for the hover affordance state machine, driven by a manual clock."""

import asyncio

import pytest

from ifc_graph_viewer.display.hover import (
    AsyncioScheduler,
    HoverAffordanceCoordinator,
    HoverState,
    TextualScheduler,
)


@pytest.fixture
def displayed():
    return {"a", "b", "c"}


@pytest.fixture
def expanded():
    return []


@pytest.fixture
def hover(scheduler, view, displayed, expanded):
    return HoverAffordanceCoordinator(
        scheduler,
        view,
        on_expand=expanded.append,
        is_displayed=displayed.__contains__,
        show_delay=0.3,
        visible_for=3.0,
        fade_for=0.3,
    )


def test_show_after_delay(hover, scheduler, view):
    hover.pointer_enter("a")
    assert hover.state is HoverState.PENDING
    scheduler.advance(0.29)
    assert view.events == []
    scheduler.advance(0.01)
    assert view.events == [("show", "a")]
    assert hover.state is HoverState.SHOWN


def test_pointer_leave_before_show_cancels(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.1)
    hover.pointer_leave("a")
    assert hover.state is HoverState.IDLE
    scheduler.advance(5.0)
    assert view.events == []
    assert scheduler.active == 0


def test_pointer_leave_while_shown_keeps_affordance(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.3)
    hover.pointer_leave("a")
    assert hover.state is HoverState.SHOWN
    assert view.visible == {"a"}


def test_auto_dismiss_fades_then_removes(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.3)
    scheduler.advance(3.0)
    assert hover.state is HoverState.FADING_OUT
    assert view.events[-1] == ("fade_out", "a")
    scheduler.advance(0.3)
    assert hover.state is HoverState.IDLE
    assert view.events == [("show", "a"), ("fade_out", "a"), ("remove", "a")]
    assert view.visible == set()


def test_hover_a_then_b_removes_a_before_arming_b(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.3)
    assert view.visible == {"a"}

    hover.pointer_enter("b")
    # a is gone immediately, b only pending
    assert view.events == [("show", "a"), ("remove", "a")]
    assert view.visible == set()
    assert hover.node_id == "b"
    assert scheduler.active == 1

    scheduler.advance(0.3)
    assert view.visible == {"b"}
    assert len(view.visible) == 1


def test_hover_b_while_a_pending_drops_a_timer(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.2)
    hover.pointer_enter("b")
    scheduler.advance(0.2)
    assert view.events == []
    scheduler.advance(0.1)
    assert view.events == [("show", "b")]


def test_hover_b_while_a_fading_removes_a(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(3.3)
    assert hover.state is HoverState.FADING_OUT
    hover.pointer_enter("b")
    assert view.events[-1] == ("remove", "a")
    scheduler.advance(0.3)
    assert view.visible == {"b"}


def test_click_expands_then_dismisses_without_fade(hover, scheduler, view, expanded):
    hover.pointer_enter("a")
    scheduler.advance(0.3)
    assert hover.click() == "a"
    assert expanded == ["a"]
    assert view.events == [("show", "a"), ("remove", "a")]
    assert hover.state is HoverState.IDLE
    assert scheduler.active == 0


def test_click_without_affordance_does_nothing(hover, expanded):
    assert hover.click() is None
    hover.pointer_enter("a")
    assert hover.click() is None
    assert expanded == []


def test_click_while_fading_expands_but_not_after_removal(hover, scheduler, expanded):
    hover.pointer_enter("a")
    scheduler.advance(3.3)
    assert hover.state is HoverState.FADING_OUT
    assert hover.click() == "a"

    hover.pointer_enter("b")
    scheduler.advance(3.6)
    assert hover.state is HoverState.IDLE
    assert hover.node_id is None
    assert hover.click() is None
    assert expanded == ["a"]


def test_show_for_node_no_longer_displayed_returns_to_idle(
    hover, scheduler, view, displayed
):
    hover.pointer_enter("c")
    displayed.discard("c")
    scheduler.advance(0.3)
    assert view.events == []
    assert hover.state is HoverState.IDLE


def test_node_removed_dismisses_its_affordance(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.3)
    hover.node_removed("b")
    assert view.visible == {"a"}
    hover.node_removed("a")
    assert view.visible == set()
    assert hover.state is HoverState.IDLE


def test_teardown_cancels_everything(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.3)
    hover.teardown()
    assert scheduler.active == 0
    assert view.visible == set()
    scheduler.advance(10.0)
    assert view.events == [("show", "a"), ("remove", "a")]


def test_reentering_same_node_does_not_restart_timer(hover, scheduler, view):
    hover.pointer_enter("a")
    scheduler.advance(0.2)
    hover.pointer_enter("a")
    scheduler.advance(0.1)
    assert view.events == [("show", "a")]


def test_asyncio_scheduler_runs_and_cancels():
    fired = []

    async def scenario():
        scheduler = AsyncioScheduler()
        scheduler.call_later(0.01, lambda: fired.append("kept"))
        handle = scheduler.call_later(0.01, lambda: fired.append("cancelled"))
        handle.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == ["kept"]


def test_textual_scheduler_stops_timer():
    class FakeTimer:
        stopped = False

        def stop(self):
            self.stopped = True

    class FakeOwner:
        def __init__(self):
            self.calls = []
            self.timer = FakeTimer()

        def set_timer(self, delay, callback):
            self.calls.append((delay, callback))
            return self.timer

    owner = FakeOwner()
    handle = TextualScheduler(owner).call_later(0.3, print)
    assert owner.calls == [(0.3, print)]
    handle.cancel()
    assert owner.timer.stopped
