"""Plain terminal output for the viewer's --summary mode."""

from __future__ import annotations

import sys
from typing import Any

from ifc_graph_viewer.display.synchronizer import SyncResult

# ANSI escape codes for terminal styling.
_BOLD = "\033[1m"
_DIM = "\033[2m"
_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_RESET = "\033[0m"

# Maximum entity types listed before the rest are summarized.
_TYPE_DISPLAY_LIMIT = 20


def _supports_color() -> bool:
    """Return True if stdout likely supports ANSI colours."""
    if not hasattr(sys.stdout, "isatty"):
        return False
    return sys.stdout.isatty()


# Disable colour codes when piped.
if not _supports_color():
    _BOLD = _DIM = _CYAN = _GREEN = _YELLOW = _RED = _RESET = ""


# ── Public API ──────────────────────────────────────────────────────────


def print_welcome(backend_url: str, mode: str) -> None:
    """Print the startup banner."""
    print(f"{_BOLD}IFC Graph Viewer{_RESET}")
    print(f"  backend: {_DIM}{backend_url}{_RESET} ({mode} upload)")


def print_progress(percent: int) -> None:
    """Overwrite a single progress line on stdout."""
    end = "\n" if percent >= 100 else ""
    print(f"\r  uploading... {percent:3d}%", end=end, flush=True)


def print_intent(result: SyncResult) -> None:
    """One line per display intent: what was added and removed."""
    target = f" {result.target}" if result.target else ""
    print(
        f"{_CYAN}{result.intent.value}{target}{_RESET}  "
        f"{_GREEN}+{len(result.added_nodes)}n +{len(result.added_edges)}e{_RESET}  "
        f"{_YELLOW}-{len(result.removed_nodes)}n -{len(result.removed_edges)}e{_RESET}"
    )


def print_summary(summary: dict[str, Any]) -> None:
    """Print a session summary (see ViewerSession.summary)."""
    error = summary.get("error")
    if error:
        _print_error(str(error))

    source = summary.get("source") or "(none)"
    print(f"\n{_BOLD}Source:{_RESET} {source}")
    if summary.get("state") == "empty":
        print(f"   {_DIM}No graph loaded.{_RESET}")
        return

    print(
        f"   graph: {summary['graph_nodes']} nodes, {summary['graph_edges']} edges"
    )
    dropped = summary.get("dropped_edges") or 0
    if dropped:
        print(f"   {_YELLOW}{dropped} edge(s) dropped (missing endpoint){_RESET}")
    print(
        f"   displayed: {summary['displayed_nodes']} nodes, "
        f"{summary['displayed_edges']} edges (cap {summary['display_cap']})"
    )
    _print_types(
        summary.get("entity_types") or [], set(summary.get("active_types") or [])
    )
    if summary.get("selected"):
        print(f"   selected: {summary['selected']}")


# ── Helpers ─────────────────────────────────────────────────────────────


def _print_types(entity_types: list[str], active: set[str]) -> None:
    print(f"\n   {_DIM}Entity types ({len(entity_types)}):{_RESET}")
    for entity_type in entity_types[:_TYPE_DISPLAY_LIMIT]:
        mark = f"{_GREEN}[x]{_RESET}" if entity_type in active else "[ ]"
        print(f"   {mark} {_truncate(entity_type, 40)}")
    not_shown = len(entity_types) - _TYPE_DISPLAY_LIMIT
    if not_shown > 0:
        print(f"   {_DIM}({not_shown} more not shown){_RESET}")


def _print_error(error: str) -> None:
    """Print an error message."""
    print(f"\n{_BOLD}{_RED}Error:{_RESET} {error}")


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
