"""One viewer session: graph store, ingestion, display and trace wired together.

Both front ends (the Textual app and the plain ``--summary`` CLI) drive the
viewer through this object. Upload is split into ``begin_upload`` /
``fetch`` / ``finish_upload`` so the Textual app can run the network part in
a worker thread and apply the result back on the UI thread.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

from ifc_graph_viewer.config import ViewerConfig
from ifc_graph_viewer.display.surface import RenderState
from ifc_graph_viewer.display.synchronizer import DisplaySynchronizer, SyncResult
from ifc_graph_viewer.errors import IngestError
from ifc_graph_viewer.graph.models import Graph, GraphPayload
from ifc_graph_viewer.graph.store import GraphStore
from ifc_graph_viewer.ingest.client import BackendClient
from ifc_graph_viewer.ingest.pipeline import (
    IngestionPipeline,
    ProgressCallback,
    RemoteNeighborSource,
    load_default_graph,
    load_graph_document,
)
from ifc_graph_viewer.trace import TraceWriter, short_error

LOG = logging.getLogger(__name__)


class ViewerSession:
    """Owns the store, the surface and the synchronizer for one viewer run.

    Args:
        config: Backend and display settings.
        client: Backend client; built from ``config`` when omitted.
        surface: Rendering surface; a fresh RenderState when omitted.
        trace: Optional JSONL trace; one event per upload outcome and per
            display intent.
        remote_neighbors: Serve expansion from ``/fetch_neighbors`` instead
            of the client-side graph.
    """

    def __init__(
        self,
        config: ViewerConfig,
        *,
        client: BackendClient | None = None,
        surface: RenderState | None = None,
        trace: TraceWriter | None = None,
        run_id: str | None = None,
        remote_neighbors: bool = False,
    ) -> None:
        self.config = config
        self._client = client or BackendClient(config)
        self.store = GraphStore()
        self.surface = surface or RenderState()
        self.pipeline = IngestionPipeline(
            self._client, mode=config.upload_mode, chunk_size=config.chunk_size
        )
        self.sync = DisplaySynchronizer(
            self.store,
            self.surface,
            default_cap=config.default_cap,
            neighbors=RemoteNeighborSource(self._client) if remote_neighbors else None,
        )
        self._trace = trace
        self.run_id = run_id or uuid.uuid4().hex
        self.loading = False
        self.progress = 0
        self.last_error: str | None = None
        self.source: str | None = None
        self.sync.add_listener(self._trace_intent)

    def close(self) -> None:
        self._client.close()

    # ----------------------------------------------------------------- upload

    def begin_upload(self, source: str | None = None) -> None:
        """Clear graph, display, active types and selection before any I/O.

        A failed upload therefore leaves the viewer empty, never showing the
        previous graph.
        """
        self.store.clear()
        self.sync.clear()
        self.loading = True
        self.progress = 0
        self.last_error = None
        self.source = source
        self._write_trace("upload_start", {"source": source})

    def report_progress(self, percent: int) -> None:
        self.progress = percent

    def fetch(
        self, path: Path, *, progress: ProgressCallback | None = None
    ) -> GraphPayload:
        """Network part of an upload; safe to call from a worker thread."""
        return self.pipeline.fetch(path, progress=progress)

    def finish_upload(self, payload: GraphPayload) -> bool:
        """Apply a fetched document. Returns False if it could not be loaded."""
        try:
            graph = self.store.set_payload(payload)
        except IngestError as exc:
            self.fail_upload(exc)
            return False
        self._loaded(graph)
        return True

    def fail_upload(self, exc: BaseException) -> None:
        self.loading = False
        self.last_error = str(exc)
        LOG.error("Upload failed: %s", exc)
        self._write_trace(
            "upload_error",
            {
                "source": self.source,
                "error_type": type(exc).__name__,
                "error": short_error(exc),
            },
        )

    def upload(self, path: Path, *, progress: ProgressCallback | None = None) -> bool:
        """Blocking upload of an IFC file through the backend."""

        def _progress(percent: int) -> None:
            self.report_progress(percent)
            if progress is not None:
                progress(percent)

        self.begin_upload(str(path))
        try:
            payload = self.fetch(path, progress=_progress)
        except IngestError as exc:
            self.fail_upload(exc)
            return False
        return self.finish_upload(payload)

    def load_graph_file(self, path: Path) -> bool:
        """Load a graph document from disk instead of the backend."""
        self.begin_upload(str(path))
        try:
            payload = load_graph_document(path)
        except IngestError as exc:
            self.fail_upload(exc)
            return False
        return self.finish_upload(payload)

    def load_default(self) -> bool:
        """Load the optional startup asset. Returns False when there is none."""
        path = self.config.default_graph
        try:
            payload = load_default_graph(path)
        except IngestError as exc:
            # a broken startup asset is reported but the viewer stays usable
            self.begin_upload(str(path))
            self.fail_upload(exc)
            return False
        if payload is None:
            return False
        self.begin_upload(str(path))
        return self.finish_upload(payload)

    # ---------------------------------------------------------------- summary

    def summary(self) -> dict[str, Any]:
        graph = self.store.graph
        selected = self.sync.selected_node_id
        return {
            "source": self.source,
            "state": self.sync.state.value,
            "loading": self.loading,
            "progress": self.progress,
            "error": self.last_error,
            "graph_nodes": len(graph.nodes) if graph else 0,
            "graph_edges": len(graph.edges) if graph else 0,
            "dropped_edges": len(self.store.last_dropped_edges),
            "entity_types": list(self.store.entity_types),
            "active_types": sorted(self.sync.active_types),
            "display_cap": self.sync.display_cap,
            "displayed_nodes": len(self.surface.node_ids()),
            "displayed_edges": len(self.surface.edge_ids()),
            "selected": selected,
        }

    # -------------------------------------------------------------- internals

    def _loaded(self, graph: Graph) -> None:
        self.loading = False
        self.progress = 100
        self.sync.load()
        self._write_trace(
            "upload_complete",
            {
                "source": self.source,
                "nodes": len(graph.nodes),
                "edges": len(graph.edges),
                "dropped_edges": len(self.store.last_dropped_edges),
                "entity_types": len(self.store.entity_types),
            },
        )

    def _trace_intent(self, result: SyncResult) -> None:
        self._write_trace(result.intent.value, result.summary())

    def _write_trace(self, event: str, payload: dict[str, Any]) -> None:
        if self._trace is None:
            return
        self._trace.record(self.run_id, event, payload)
