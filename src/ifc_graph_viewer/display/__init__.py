"""What is displayed, how it is laid out, and the hover affordance."""

from __future__ import annotations

from .hover import (
    AsyncioScheduler,
    HoverAffordanceCoordinator,
    HoverState,
    TextualScheduler,
)
from .layout import Intent, LayoutRequest, layout_for
from .surface import RenderingSurface, RenderState, Viewport
from .synchronizer import (
    DisplayState,
    DisplaySynchronizer,
    SyncResult,
    closure_violations,
)

__all__ = [
    "AsyncioScheduler",
    "DisplayState",
    "DisplaySynchronizer",
    "HoverAffordanceCoordinator",
    "HoverState",
    "Intent",
    "LayoutRequest",
    "RenderState",
    "RenderingSurface",
    "SyncResult",
    "TextualScheduler",
    "Viewport",
    "closure_violations",
    "layout_for",
]
