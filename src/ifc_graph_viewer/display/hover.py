"""Hover affordance: the transient "expand" control shown over a hovered node.

State machine::

    IDLE --enter--> PENDING --show delay--> SHOWN --visible_for--> FADING_OUT
      ^                |                                               |
      +----leave-------+                  fade_for                     |
      +----------------------------------------------------------------+

There is at most one affordance at a time. The coordinator owns a single
timer handle and cancels it before every transition, so a callback from an
earlier hover can never act on a later one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

LOG = logging.getLogger(__name__)

DEFAULT_SHOW_DELAY = 0.3
DEFAULT_VISIBLE_FOR = 3.0
DEFAULT_FADE_FOR = 0.3


class HoverState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SHOWN = "shown"
    FADING_OUT = "fading_out"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AffordanceView(Protocol):
    """Where the affordance is drawn (a Textual button, a test recorder...)."""

    def show(self, node_id: str) -> None: ...

    def fade_out(self, node_id: str) -> None: ...

    def remove(self, node_id: str) -> None: ...


class AsyncioScheduler:
    """Timers on an asyncio event loop (the running loop unless one is given)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _TextualTimerHandle:
    def __init__(self, timer: Any) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


class TextualScheduler:
    """Timers from a Textual widget or app (``set_timer`` / ``Timer.stop``)."""

    def __init__(self, owner: Any) -> None:
        self._owner = owner

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _TextualTimerHandle(self._owner.set_timer(delay, callback))


class HoverAffordanceCoordinator:
    """Drives one AffordanceView from pointer events and timers.

    Args:
        scheduler: Source of cancellable timers.
        view: Draws, fades and removes the affordance.
        on_expand: Called with the node id when the affordance is clicked.
        is_displayed: Checked when the show timer fires; a node that has
            left the display in the meantime is not decorated.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        view: AffordanceView,
        *,
        on_expand: Callable[[str], object],
        is_displayed: Callable[[str], bool],
        show_delay: float = DEFAULT_SHOW_DELAY,
        visible_for: float = DEFAULT_VISIBLE_FOR,
        fade_for: float = DEFAULT_FADE_FOR,
    ) -> None:
        self._scheduler = scheduler
        self._view = view
        self._on_expand = on_expand
        self._is_displayed = is_displayed
        self.show_delay = show_delay
        self.visible_for = visible_for
        self.fade_for = fade_for
        self._state = HoverState.IDLE
        self._node_id: str | None = None
        self._handle: TimerHandle | None = None

    @property
    def state(self) -> HoverState:
        return self._state

    @property
    def node_id(self) -> str | None:
        return self._node_id

    # ----------------------------------------------------------- pointer input

    def pointer_enter(self, node_id: str) -> None:
        if node_id == self._node_id and self._state in (
            HoverState.PENDING,
            HoverState.SHOWN,
        ):
            return
        # any other affordance goes away before the new show timer is armed
        self._dismiss()
        self._node_id = node_id
        self._state = HoverState.PENDING
        self._arm(self.show_delay, self._show_due)

    def pointer_leave(self, node_id: str) -> None:
        # once shown, the affordance stays so the pointer can move onto it
        if self._state is HoverState.PENDING and node_id == self._node_id:
            self._cancel_timer()
            self._reset()

    def click(self) -> str | None:
        """Expand the node under the affordance, then drop it without fading.

        Returns the expanded node id, or None when nothing was showing.
        """
        node_id = self._node_id
        if node_id is None or self._state not in (
            HoverState.SHOWN,
            HoverState.FADING_OUT,
        ):
            return None
        self._on_expand(node_id)
        self._dismiss()
        return node_id

    def node_removed(self, node_id: str) -> None:
        if node_id == self._node_id:
            self._dismiss()

    def teardown(self) -> None:
        self._dismiss()

    # ----------------------------------------------------------------- timers

    def _show_due(self) -> None:
        self._handle = None
        if self._state is not HoverState.PENDING or self._node_id is None:
            return
        if not self._is_displayed(self._node_id):
            LOG.debug("Hover target %s no longer displayed", self._node_id)
            self._reset()
            return
        self._view.show(self._node_id)
        self._state = HoverState.SHOWN
        self._arm(self.visible_for, self._visible_elapsed)

    def _visible_elapsed(self) -> None:
        self._handle = None
        if self._state is not HoverState.SHOWN or self._node_id is None:
            return
        self._view.fade_out(self._node_id)
        self._state = HoverState.FADING_OUT
        self._arm(self.fade_for, self._fade_done)

    def _fade_done(self) -> None:
        self._handle = None
        if self._state is not HoverState.FADING_OUT or self._node_id is None:
            return
        self._view.remove(self._node_id)
        self._reset()

    # -------------------------------------------------------------- internals

    def _arm(self, delay: float, callback: Callable[[], None]) -> None:
        self._cancel_timer()
        self._handle = self._scheduler.call_later(delay, callback)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _dismiss(self) -> None:
        self._cancel_timer()
        if self._node_id is not None and self._state in (
            HoverState.SHOWN,
            HoverState.FADING_OUT,
        ):
            self._view.remove(self._node_id)
        self._reset()

    def _reset(self) -> None:
        self._state = HoverState.IDLE
        self._node_id = None
