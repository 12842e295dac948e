"""Error taxonomy for ingestion and display operations.

None of these are fatal to the process. Ingestion errors abort a single
upload; the remaining conditions degrade to "nothing changed" plus a log line.
"""

from __future__ import annotations


class IngestError(RuntimeError):
    """Base class for failures while loading a graph."""


class IngestTransportError(IngestError):
    """Raised when a chunk or whole-file request fails (network or HTTP status)."""

    def __init__(
        self,
        message: str,
        *,
        chunk_number: int | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.chunk_number = chunk_number
        self.status_code = status_code


class IngestDataError(IngestError):
    """Raised when the terminal response is not a usable graph document."""


class ReferentialIntegrityViolation(UserWarning):
    """Category for edges dropped because an endpoint is absent.

    Used only to tag log records; dropping such edges is normalization, not
    failure.
    """


class StaleOperationError(LookupError):
    """A node referenced by an intent is no longer rendered."""

    def __init__(self, node_id: str, operation: str) -> None:
        super().__init__(f"{operation}: node {node_id!r} is not displayed")
        self.node_id = node_id
        self.operation = operation
