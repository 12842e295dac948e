"""Fixed-size chunk planning for streamed uploads."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO


@dataclass(frozen=True)
class Chunk:
    number: int
    total: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def is_last(self) -> bool:
        return self.number == self.total - 1

    def headers(self, file_id: str) -> dict[str, str]:
        return {
            "Content-Type": "application/octet-stream",
            "file-id": file_id,
            "chunk-number": str(self.number),
            "total-chunks": str(self.total),
        }


def total_chunks(file_size: int, chunk_size: int) -> int:
    # an empty file still goes out as one (empty) chunk so the backend answers
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if file_size < 0:
        raise ValueError("file_size must not be negative")
    return max(1, math.ceil(file_size / chunk_size))


def plan_chunks(file_size: int, chunk_size: int) -> list[Chunk]:
    """Ordered chunk boundaries 0..total-1 covering [0, file_size)."""
    total = total_chunks(file_size, chunk_size)
    chunks: list[Chunk] = []
    for number in range(total):
        start = number * chunk_size
        end = min(file_size, start + chunk_size)
        chunks.append(Chunk(number=number, total=total, start=start, end=end))
    return chunks


def read_chunks(
    fh: BinaryIO, file_size: int, chunk_size: int
) -> Iterator[tuple[Chunk, bytes]]:
    """Yield (chunk, bytes) in order, reading lazily from an open file."""
    for chunk in plan_chunks(file_size, chunk_size):
        fh.seek(chunk.start)
        yield chunk, fh.read(chunk.size)


def progress_percent(chunks_sent: int, total: int) -> int:
    # half rounds up (12.5 -> 13), unlike round()
    return math.floor(chunks_sent / total * 100 + 0.5)


_FILE_ID_LOCK = threading.Lock()
_last_file_id = 0


def new_file_id() -> str:
    """Millisecond timestamp id, bumped if two uploads start in the same ms."""
    global _last_file_id
    with _FILE_ID_LOCK:
        candidate = int(time.time() * 1000)
        if candidate <= _last_file_id:
            candidate = _last_file_id + 1
        _last_file_id = candidate
        return str(candidate)
