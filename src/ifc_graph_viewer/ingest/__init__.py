"""Chunked ingestion of IFC files into graph documents."""

from __future__ import annotations

from .client import BackendClient
from .pipeline import (
    IngestionPipeline,
    RemoteNeighborSource,
    load_default_graph,
    load_graph_document,
    parse_graph_document,
)

__all__ = [
    "BackendClient",
    "IngestionPipeline",
    "RemoteNeighborSource",
    "load_default_graph",
    "load_graph_document",
    "parse_graph_document",
]
