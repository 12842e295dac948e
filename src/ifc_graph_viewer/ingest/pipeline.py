"""Upload a source file to the backend and resolve the graph it returns.

Two transports are supported:

- chunked: one octet-stream POST per fixed-size chunk, strictly in order.
  Only the body of the last chunk's response is graph data; earlier bodies
  are acknowledgements and are discarded.
- single: one multipart POST of the whole file; its response is the graph.

The pipeline never touches display state. Clearing the viewer before the
first chunk goes out is the session's job (see ViewerSession.begin_upload).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

import httpx
from pydantic import ValidationError

from ifc_graph_viewer.config import UploadMode
from ifc_graph_viewer.errors import (
    IngestDataError,
    IngestError,
    IngestTransportError,
)
from ifc_graph_viewer.graph.models import Graph, GraphPayload
from ifc_graph_viewer.graph.store import GraphStore
from ifc_graph_viewer.ingest.chunking import (
    new_file_id,
    progress_percent,
    read_chunks,
    total_chunks,
)
from ifc_graph_viewer.ingest.client import BackendClient

LOG = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def parse_graph_document(body: bytes | str) -> GraphPayload:
    """Decode a ``{nodes: [...], edges: [...]}`` document.

    Raises:
        IngestDataError: Invalid JSON, a non-object document, or missing /
            malformed ``nodes``/``edges``.
    """
    if not body.strip():
        raise IngestDataError("No graph data received (empty response body)")
    try:
        decoded = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise IngestDataError(
            f"No graph data received (invalid JSON: {exc})"
        ) from exc
    if not isinstance(decoded, dict):
        raise IngestDataError("No graph data received (document is not an object)")
    missing = [key for key in ("nodes", "edges") if key not in decoded]
    if missing:
        raise IngestDataError(
            f"No graph data received (missing {', '.join(missing)})"
        )
    try:
        return GraphPayload.model_validate(decoded)
    except ValidationError as exc:
        raise IngestDataError(
            f"Malformed graph document: {exc.error_count()} error(s)"
        ) from exc


def load_graph_document(path: Path) -> GraphPayload:
    """Read a local graph JSON document (default asset or --graph file)."""
    try:
        body = path.read_bytes()
    except OSError as exc:
        raise IngestDataError(f"Cannot read graph document {path}: {exc}") from exc
    return parse_graph_document(body)


def load_default_graph(path: Path | None) -> GraphPayload | None:
    """Load the optional startup asset; a missing file is not an error."""
    if path is None or not path.is_file():
        LOG.debug("No default graph asset at %s", path)
        return None
    LOG.info("Loading default graph from %s", path)
    return load_graph_document(path)


class IngestionPipeline:
    """Chunked or single-shot upload with terminal-response resolution."""

    def __init__(
        self,
        client: BackendClient,
        *,
        mode: UploadMode = "chunked",
        chunk_size: int,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._client = client
        self.mode: UploadMode = mode
        self.chunk_size = chunk_size

    def fetch(
        self, path: Path, *, progress: ProgressCallback | None = None
    ) -> GraphPayload:
        """Send the file and return the authoritative graph document.

        Raises:
            IngestTransportError: Any request failed, or the source file could
                not be read; the upload is abandoned.
            IngestDataError: The terminal response is not a graph document.
        """
        if not path.is_file():
            raise IngestError(f"Source file not found: {path}")
        try:
            if self.mode == "single":
                return self._fetch_single(path, progress)
            return self._fetch_chunked(path, progress)
        except OSError as exc:
            raise IngestTransportError(
                f"Cannot read source file {path}: {exc}"
            ) from exc

    def upload(
        self,
        path: Path,
        store: GraphStore,
        *,
        progress: ProgressCallback | None = None,
    ) -> Graph:
        """Fetch, then hand the nodes/edges to the store."""
        payload = self.fetch(path, progress=progress)
        return store.set_payload(payload)

    def _fetch_chunked(
        self, path: Path, progress: ProgressCallback | None
    ) -> GraphPayload:
        size = path.stat().st_size
        total = total_chunks(size, self.chunk_size)
        file_id = new_file_id()
        LOG.info(
            "Uploading %s (%d bytes) in %d chunk(s), file-id %s",
            path.name,
            size,
            total,
            file_id,
        )

        last_response: httpx.Response | None = None
        with path.open("rb") as fh:
            for chunk, data in read_chunks(fh, size, self.chunk_size):
                last_response = self._client.post_chunk(chunk, data, file_id)
                LOG.debug("Uploaded chunk %d/%d", chunk.number + 1, total)
                if progress is not None:
                    progress(progress_percent(chunk.number + 1, total))

        if last_response is None:
            raise IngestDataError("No graph data received (no chunks sent)")
        return parse_graph_document(last_response.content)

    def _fetch_single(
        self, path: Path, progress: ProgressCallback | None
    ) -> GraphPayload:
        LOG.info("Uploading %s as a single multipart request", path.name)
        response = self._client.post_file(path)
        if progress is not None:
            progress(100)
        return parse_graph_document(response.content)


class RemoteNeighborSource:
    """Neighbourhood lookups served by POST /fetch_neighbors.

    Used when the full graph is not held client-side. Returned edges may
    reference nodes that are neither displayed nor part of the response; the
    synchronizer skips those.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def neighborhood(self, node_id: str) -> Graph:
        response = self._client.post_neighbors(node_id)
        payload = parse_graph_document(response.content)
        nodes = [el.data.to_node() for el in payload.nodes]
        edges = [el.data.to_edge() for el in payload.edges]
        return Graph(nodes=tuple(nodes), edges=tuple(edges))
