"""Environment-driven configuration for the viewer."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv

from ifc_graph_viewer.paths import default_graph_path, find_project_root

UploadMode = Literal["chunked", "single"]

# 5 MiB per chunk, same as the browser client the backend was written for.
DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024
DEFAULT_BACKEND_URL = "http://127.0.0.1:5050"
DEFAULT_CAP = 50

_UPLOAD_MODE_ALIASES: dict[str, UploadMode] = {
    "chunked": "chunked",
    "chunks": "chunked",
    "single": "single",
    "single-shot": "single",
    "multipart": "single",
}


def load_env() -> None:
    project_root = find_project_root(Path(__file__).resolve().parent)
    if project_root is not None:
        load_dotenv(project_root / ".env")


@dataclass(frozen=True)
class ViewerConfig:
    backend_url: str = DEFAULT_BACKEND_URL
    upload_mode: UploadMode = "chunked"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    timeout: float = 120.0
    default_cap: int = DEFAULT_CAP
    default_graph: Path | None = None
    hover_delay: float = 0.3
    hover_visible: float = 3.0
    hover_fade: float = 0.3

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer")
        if self.default_cap <= 0:
            raise ValueError("default_cap must be a positive integer")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        for name in ("hover_delay", "hover_visible", "hover_fade"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @property
    def upload_url(self) -> str:
        return f"{self.backend_url.rstrip('/')}/upload"

    @property
    def neighbors_url(self) -> str:
        return f"{self.backend_url.rstrip('/')}/fetch_neighbors"

    def with_overrides(self, **changes: object) -> ViewerConfig:
        """Return a copy with non-None overrides applied (CLI flags)."""
        filtered = {k: v for k, v in changes.items() if v is not None}
        if not filtered:
            return self
        return replace(self, **filtered)  # type: ignore[arg-type]

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        load_dotenv_file: bool = True,
    ) -> ViewerConfig:
        """Build a config from IFC_VIEWER_* variables.

        Args:
            environ: Mapping to read instead of os.environ (tests).
            load_dotenv_file: Load the project .env before reading os.environ.
                Ignored when environ is given.

        Raises:
            ValueError: If a variable is present but cannot be parsed.
        """
        if environ is None:
            if load_dotenv_file:
                load_env()
            environ = os.environ

        default_graph_raw = environ.get("IFC_VIEWER_DEFAULT_GRAPH", "").strip()
        return cls(
            backend_url=environ.get("IFC_VIEWER_BACKEND_URL", "").strip()
            or DEFAULT_BACKEND_URL,
            upload_mode=_parse_mode(environ.get("IFC_VIEWER_UPLOAD_MODE")),
            chunk_size=_parse_int(
                environ, "IFC_VIEWER_CHUNK_SIZE", DEFAULT_CHUNK_SIZE
            ),
            timeout=_parse_float(
                environ, "IFC_VIEWER_TIMEOUT", 120.0, allow_zero=False
            ),
            default_cap=_parse_int(environ, "IFC_VIEWER_DEFAULT_CAP", DEFAULT_CAP),
            default_graph=(
                Path(default_graph_raw).expanduser()
                if default_graph_raw
                else default_graph_path(Path(__file__).resolve().parent)
            ),
            hover_delay=_parse_float(environ, "IFC_VIEWER_HOVER_DELAY", 0.3),
            hover_visible=_parse_float(environ, "IFC_VIEWER_HOVER_VISIBLE", 3.0),
            hover_fade=_parse_float(environ, "IFC_VIEWER_HOVER_FADE", 0.3),
        )


def _parse_mode(value: str | None) -> UploadMode:
    if value is None or not value.strip():
        return "chunked"
    mode = _UPLOAD_MODE_ALIASES.get(value.strip().lower())
    if mode is None:
        raise ValueError(
            f"IFC_VIEWER_UPLOAD_MODE must be 'chunked' or 'single', got {value!r}"
        )
    return mode


def _parse_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}")
    return value


def _parse_float(
    environ: Mapping[str, str], name: str, default: float, *, allow_zero: bool = True
) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0 or (value == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise ValueError(f"{name} must be {bound}, got {raw!r}")
    return value
