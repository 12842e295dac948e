from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    LOAD = "load"
    TOGGLE_TYPE = "toggle_type"
    SET_CAP = "set_display_cap"
    RESET = "reset_view"
    EXPAND = "expand"
    ISOLATE = "isolate"
    CLEAR = "clear"


@dataclass(frozen=True)
class LayoutRequest:
    # randomize=False keeps positions of nodes that are already placed
    randomize: bool = False
    fit: bool = False


# Only the initial load and an explicit reset re-frame the viewport; every
# other mutation keeps the user's current view.
_FIT_INTENTS = frozenset({Intent.LOAD, Intent.RESET})


def layout_for(intent: Intent, *, changed: bool) -> LayoutRequest | None:
    """Layout pass to run after a mutation, or None when nothing needs it.

    Load and reset always re-frame, even when the node set is unchanged.
    """
    if intent is Intent.CLEAR:
        return None
    if not changed and intent not in _FIT_INTENTS:
        return None
    return LayoutRequest(randomize=False, fit=intent in _FIT_INTENTS)
