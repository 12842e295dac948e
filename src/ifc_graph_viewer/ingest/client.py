"""HTTP transport to the IFC graph backend."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from ifc_graph_viewer.config import ViewerConfig
from ifc_graph_viewer.errors import IngestTransportError
from ifc_graph_viewer.ingest.chunking import Chunk

LOG = logging.getLogger(__name__)


class BackendClient:
    """Thin wrapper over httpx.Client that maps failures to IngestTransportError.

    Pass ``client`` to inject a preconfigured httpx.Client (e.g. one built on
    httpx.MockTransport); the wrapper then does not close it.
    """

    def __init__(
        self, config: ViewerConfig, *, client: httpx.Client | None = None
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.timeout)

    def __enter__(self) -> BackendClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def post_chunk(self, chunk: Chunk, data: bytes, file_id: str) -> httpx.Response:
        """POST one raw chunk; returns the acknowledged response."""
        return self._send(
            "POST",
            self._config.upload_url,
            chunk_number=chunk.number,
            content=data,
            headers=chunk.headers(file_id),
        )

    def post_file(self, path: Path) -> httpx.Response:
        """POST the whole file as a multipart form upload."""
        with path.open("rb") as fh:
            return self._send(
                "POST",
                self._config.upload_url,
                files={"file": (path.name, fh, "application/octet-stream")},
            )

    def post_neighbors(self, node_id: str) -> httpx.Response:
        return self._send(
            "POST", self._config.neighbors_url, json={"node_id": node_id}
        )

    def _send(
        self,
        method: str,
        url: str,
        *,
        chunk_number: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise IngestTransportError(
                f"{method} {url} failed with HTTP {status}",
                chunk_number=chunk_number,
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise IngestTransportError(
                f"{method} {url} failed: {exc}", chunk_number=chunk_number
            ) from exc
        return response
