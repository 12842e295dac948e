"""Rendering surface: what is currently shown, and where.

The synchronizer talks to the surface only through the narrow command
interface below (add/remove nodes and edges, run a layout, group commands in
a batch). ``RenderState`` is the in-memory implementation used by the
Textual viewer, the HTML export and the tests. It places nodes with
networkx's spring layout, pinning every node that already has a position so
incremental operations never move what the user is looking at.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import Protocol

import networkx as nx
import numpy as np

from ifc_graph_viewer.display.layout import LayoutRequest
from ifc_graph_viewer.graph.models import Edge, Node

LOG = logging.getLogger(__name__)

Position = tuple[float, float]

# Fraction of the bounding box added on each side when fitting the viewport.
_FIT_PADDING = 0.1
_SEED_RADIUS = 0.05


@dataclass(frozen=True)
class Viewport:
    x_min: float
    y_min: float
    x_max: float
    y_max: float


class RenderingSurface(Protocol):
    """Command interface the display synchronizer drives."""

    def node_ids(self) -> frozenset[str]: ...

    def edge_ids(self) -> frozenset[str]: ...

    def has_node(self, node_id: str) -> bool: ...

    def has_edge(self, edge_id: str) -> bool: ...

    def nodes(self) -> list[Node]: ...

    def edges(self) -> list[Edge]: ...

    def add_nodes(self, nodes: Iterable[Node]) -> list[str]: ...

    def remove_nodes(self, node_ids: Iterable[str]) -> list[str]: ...

    def add_edges(self, edges: Iterable[Edge]) -> list[str]: ...

    def remove_edges(self, edge_ids: Iterable[str]) -> list[str]: ...

    def run_layout(self, request: LayoutRequest) -> None: ...

    def batch(self) -> AbstractContextManager[object]: ...


class RenderState:
    """In-memory rendering surface with incremental spring layout.

    All add/remove commands are idempotent and return the ids that actually
    changed. Edges are only accepted when both endpoints are present.
    """

    def __init__(self, *, seed: int | None = 7, layout_iterations: int = 50) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self.positions: dict[str, Position] = {}
        self.viewport: Viewport | None = None
        self.layout_history: list[LayoutRequest] = []
        self._seed = seed
        self._layout_iterations = layout_iterations
        self._batch_depth = 0
        self._pending_layout: LayoutRequest | None = None
        # positions of nodes removed inside the current batch; a node removed
        # and re-added in the same batch (full re-derivation) keeps its place
        self._stash: dict[str, Position] = {}

    # ------------------------------------------------------------------ reads

    def node_ids(self) -> frozenset[str]:
        return frozenset(self._nodes)

    def edge_ids(self) -> frozenset[str]:
        return frozenset(self._edges)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def dangling_edges(self) -> list[Edge]:
        return [
            e
            for e in self._edges.values()
            if e.source not in self._nodes or e.target not in self._nodes
        ]

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    # --------------------------------------------------------------- commands

    def add_nodes(self, nodes: Iterable[Node]) -> list[str]:
        added: list[str] = []
        for node in nodes:
            if node.id in self._nodes:
                continue
            self._nodes[node.id] = node
            if node.id in self._stash:
                self.positions[node.id] = self._stash.pop(node.id)
            added.append(node.id)
        return added

    def remove_nodes(self, node_ids: Iterable[str]) -> list[str]:
        removed: list[str] = []
        for node_id in node_ids:
            if self._nodes.pop(node_id, None) is None:
                continue
            pos = self.positions.pop(node_id, None)
            if pos is not None and self._batch_depth > 0:
                self._stash[node_id] = pos
            removed.append(node_id)
        return removed

    def add_edges(self, edges: Iterable[Edge]) -> list[str]:
        added: list[str] = []
        for edge in edges:
            if edge.id in self._edges:
                continue
            if edge.source not in self._nodes or edge.target not in self._nodes:
                raise ValueError(
                    f"Edge {edge.id} references a node that is not displayed"
                )
            self._edges[edge.id] = edge
            added.append(edge.id)
        return added

    def remove_edges(self, edge_ids: Iterable[str]) -> list[str]:
        removed: list[str] = []
        for edge_id in edge_ids:
            if self._edges.pop(edge_id, None) is not None:
                removed.append(edge_id)
        return removed

    def clear(self) -> None:
        self._edges.clear()
        self._nodes.clear()
        self.positions.clear()
        self.viewport = None

    @contextmanager
    def batch(self) -> Iterator[RenderState]:
        """Group mutations; layout requests are deferred to the outermost exit."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._stash.clear()
                dangling = self.dangling_edges()
                if dangling:
                    LOG.warning(
                        "Batch closed with %d dangling edge(s), e.g. %s",
                        len(dangling),
                        dangling[0].id,
                    )
                pending, self._pending_layout = self._pending_layout, None
                if pending is not None:
                    self._layout(pending)

    def run_layout(self, request: LayoutRequest) -> None:
        if self._batch_depth > 0:
            if self._pending_layout is None:
                self._pending_layout = request
            else:
                self._pending_layout = LayoutRequest(
                    randomize=self._pending_layout.randomize or request.randomize,
                    fit=self._pending_layout.fit or request.fit,
                )
            return
        self._layout(request)

    # ----------------------------------------------------------------- layout

    def _layout(self, request: LayoutRequest) -> None:
        self.layout_history.append(request)
        if request.randomize:
            self.positions.clear()

        unplaced = [n for n in self._nodes if n not in self.positions]
        if unplaced:
            self._place(unplaced)
        if request.fit:
            self.viewport = self._fit()

    def _place(self, unplaced: list[str]) -> None:
        G = nx.Graph()
        G.add_nodes_from(self._nodes)
        G.add_edges_from((e.source, e.target) for e in self._edges.values())

        fixed = [n for n in self._nodes if n in self.positions]
        if not fixed:
            pos = nx.spring_layout(
                G, seed=self._seed, iterations=self._layout_iterations
            )
        else:
            initial: dict[str, Position] = dict(self.positions)
            # seed new nodes at the centroid of already-placed neighbours so
            # they settle next to whatever they were expanded from
            for k, node_id in enumerate(unplaced):
                placed = [
                    self.positions[m]
                    for m in G.neighbors(node_id)
                    if m in self.positions
                ]
                if placed:
                    cx, cy = np.asarray(placed, dtype=float).mean(axis=0)
                    # small ring offset so siblings don't start stacked
                    angle = 2 * math.pi * k / len(unplaced)
                    initial[node_id] = (
                        cx + _SEED_RADIUS * math.cos(angle),
                        cy + _SEED_RADIUS * math.sin(angle),
                    )
            pos = nx.spring_layout(
                G,
                pos=initial or None,
                fixed=fixed,
                seed=self._seed,
                iterations=self._layout_iterations,
            )

        for node_id in unplaced:
            x, y = pos[node_id]
            self.positions[node_id] = (float(x), float(y))

    def _fit(self) -> Viewport | None:
        if not self.positions:
            return None
        arr = np.asarray(list(self.positions.values()), dtype=float)
        lo = arr.min(axis=0)
        hi = arr.max(axis=0)
        pad = np.maximum((hi - lo) * _FIT_PADDING, 0.1)
        return Viewport(
            x_min=float(lo[0] - pad[0]),
            y_min=float(lo[1] - pad[1]),
            x_max=float(hi[0] + pad[0]),
            y_max=float(hi[1] + pad[1]),
        )
