"""Full-graph data model and store."""

from __future__ import annotations

from .models import Edge, Graph, GraphPayload, Node
from .store import GraphStore

__all__ = ["Edge", "Graph", "GraphPayload", "GraphStore", "Node"]
