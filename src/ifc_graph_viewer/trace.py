"""JSONL session trace: one line per upload outcome or display intent."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class TraceEvent:
    timestamp: str
    run_id: str
    event: str
    step_id: int
    payload: dict[str, Any]


class TraceWriter:
    """Appends events to a JSONL file, numbering them per writer."""

    def __init__(self, path: Path) -> None:
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file = path.open("a", encoding="utf-8")
        self._step = 0

    @property
    def path(self) -> Path:
        return self._path

    def record(
        self, run_id: str, event: str, payload: dict[str, Any] | None = None
    ) -> TraceEvent:
        """Stamp, number and append one event; returns what was written."""
        self._step += 1
        entry = TraceEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            run_id=run_id,
            event=event,
            step_id=self._step,
            payload=payload or {},
        )
        # payloads carry node ids and paths; str() anything json can't encode
        line = json.dumps(asdict(entry), separators=(",", ":"), default=str)
        self._file.write(line + "\n")
        self._file.flush()
        return entry

    def close(self) -> None:
        self._file.close()


def short_error(exc: BaseException, max_length: int = 120) -> str:
    """Single-line error text for trace payloads."""
    text = " ".join(str(exc).split()) or type(exc).__name__
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
