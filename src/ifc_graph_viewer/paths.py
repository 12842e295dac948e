"""Centralized path discovery for the ifc-graph-viewer package."""

from __future__ import annotations

from pathlib import Path


def find_project_root(start_dir: Path | None = None) -> Path | None:
    """Find the project root by searching upwards for pyproject.toml."""
    if start_dir is None:
        start_dir = Path.cwd()
    for base in (start_dir, *start_dir.parents):
        if (base / "pyproject.toml").is_file():
            return base
    return None


def find_output_dir(start_dir: Path | None = None) -> Path:
    """Return <project-root>/output, falling back to ./output."""
    root = find_project_root(start_dir)
    if root is None:
        root = Path.cwd()
    return root / "output"


def default_graph_path(start_dir: Path | None = None) -> Path:
    """
    Returns the default location of the startup graph asset.

    The file is optional. When it is missing the viewer simply starts empty
    and waits for an upload.
    """
    return find_output_dir(start_dir) / "default_graph.json"


def default_trace_path(start_dir: Path | None = None) -> Path:
    """Returns the default JSONL session trace path (output/viewer_trace.jsonl)."""
    return find_output_dir(start_dir) / "viewer_trace.jsonl"
