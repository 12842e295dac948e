"""Display synchronizer: turns user intents into surface add/remove commands.

The surface is the single source of truth for what is shown. Every operation
runs inside a surface batch so a layout pass never sees a half-applied change,
and no operation leaves an edge on screen without both of its endpoints.

Display cap rule: the cap bounds how many nodes of one type are admitted per
admission pass. A toggle-on admits at most ``cap`` not-yet-shown nodes of the
type; a full re-derivation (cap change, reset) admits the first ``cap`` nodes
of every active type. Both passes take nodes in graph order.

Each type remembers the nodes its admission pass put on screen. Toggling the
type off removes exactly those, so an on/off pair restores the display it
started from even after expand or isolate reshaped it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ifc_graph_viewer.config import DEFAULT_CAP
from ifc_graph_viewer.display.layout import Intent, LayoutRequest, layout_for
from ifc_graph_viewer.display.surface import RenderingSurface
from ifc_graph_viewer.errors import IngestError, StaleOperationError
from ifc_graph_viewer.graph.models import Edge, Graph, Node
from ifc_graph_viewer.graph.store import GraphStore

LOG = logging.getLogger(__name__)


class DisplayState(str, Enum):
    EMPTY = "empty"
    POPULATED = "populated"


class NeighborSource(Protocol):
    def neighborhood(self, node_id: str) -> Graph: ...


@dataclass
class SyncResult:
    """Net effect of one intent on the surface."""

    intent: Intent
    target: str | None = None
    added_nodes: list[str] = field(default_factory=list)
    removed_nodes: list[str] = field(default_factory=list)
    added_edges: list[str] = field(default_factory=list)
    removed_edges: list[str] = field(default_factory=list)
    layout: LayoutRequest | None = None

    @property
    def changed(self) -> bool:
        return bool(
            self.added_nodes
            or self.removed_nodes
            or self.added_edges
            or self.removed_edges
        )

    def summary(self) -> dict[str, object]:
        return {
            "intent": self.intent.value,
            "target": self.target,
            "added_nodes": len(self.added_nodes),
            "removed_nodes": len(self.removed_nodes),
            "added_edges": len(self.added_edges),
            "removed_edges": len(self.removed_edges),
            "fit": self.layout.fit if self.layout else None,
        }


SyncListener = Callable[[SyncResult], None]


def _validate_cap(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Display cap must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"Display cap must be positive, got {value}")
    return value


class DisplaySynchronizer:
    """Reconciles the displayed subset of the store's graph with a surface."""

    def __init__(
        self,
        store: GraphStore,
        surface: RenderingSurface,
        *,
        default_cap: int = DEFAULT_CAP,
        neighbors: NeighborSource | None = None,
    ) -> None:
        self._store = store
        self._surface = surface
        self._default_cap = _validate_cap(default_cap)
        self._cap = self._default_cap
        self._neighbors: NeighborSource = neighbors or store
        self._active: set[str] = set()
        self._admitted: dict[str, set[str]] = {}
        self._selected: str | None = None
        self._listeners: list[SyncListener] = []

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> DisplayState:
        return DisplayState.EMPTY if self._store.is_empty else DisplayState.POPULATED

    @property
    def surface(self) -> RenderingSurface:
        return self._surface

    @property
    def active_types(self) -> frozenset[str]:
        return frozenset(self._active)

    @property
    def display_cap(self) -> int:
        return self._cap

    @property
    def default_cap(self) -> int:
        return self._default_cap

    @property
    def selected_node_id(self) -> str | None:
        return self._selected

    def add_listener(self, listener: SyncListener) -> None:
        self._listeners.append(listener)

    def set_neighbor_source(self, neighbors: NeighborSource | None) -> None:
        self._neighbors = neighbors or self._store

    # -------------------------------------------------------------- lifecycle

    def clear(self) -> SyncResult:
        """Empty the surface and forget active types, cap and selection."""
        self._active.clear()
        self._admitted.clear()
        self._cap = self._default_cap
        self._selected = None
        with self._surface.batch():
            removed_edges = self._surface.remove_edges(self._surface.edge_ids())
            removed_nodes = self._surface.remove_nodes(self._surface.node_ids())
        result = SyncResult(
            Intent.CLEAR, removed_nodes=removed_nodes, removed_edges=removed_edges
        )
        self._notify(result)
        return result

    def load(self) -> SyncResult:
        """Start a session on the store's current graph.

        Nothing is displayed until a type is toggled on; the layout pass still
        runs so the viewport is framed for the first admission.
        """
        self.clear()
        result = SyncResult(Intent.LOAD)
        with self._surface.batch():
            self._finish(result)
        self._notify(result)
        return result

    # ---------------------------------------------------------------- intents

    def toggle_type(self, entity_type: str) -> SyncResult:
        if self.state is DisplayState.EMPTY:
            LOG.debug("toggle_type(%s) ignored: no graph loaded", entity_type)
            return SyncResult(Intent.TOGGLE_TYPE, target=entity_type)
        if entity_type not in self._store.entity_types:
            LOG.warning("Unknown entity type: %s", entity_type)
            return SyncResult(Intent.TOGGLE_TYPE, target=entity_type)

        if entity_type in self._active:
            self._active.discard(entity_type)
            return self._deactivate(entity_type)
        self._active.add(entity_type)
        return self._activate(entity_type)

    def set_display_cap(self, cap: int) -> SyncResult:
        self._cap = _validate_cap(cap)
        return self._rederive(Intent.SET_CAP)

    def reset_view(self) -> SyncResult:
        self._cap = self._default_cap
        self._selected = None
        return self._rederive(Intent.RESET)

    def expand(self, node_id: str) -> SyncResult:
        """Reveal the first-degree neighbourhood of a displayed node.

        Ignores the active type set and the cap.
        """
        result = SyncResult(Intent.EXPAND, target=node_id)
        try:
            self._require_displayed(node_id, "expand")
            hood = self._neighbors.neighborhood(node_id)
        except StaleOperationError as exc:
            LOG.debug("%s; ignoring", exc)
            return result
        except IngestError as exc:
            LOG.warning("Could not fetch neighbours of %s: %s", node_id, exc)
            return result

        touching = [e for e in hood.edges if e.touches(node_id)]
        candidates = {n.id: n for n in hood.nodes}

        with self._surface.batch():
            to_add: list[Node] = []
            queued: set[str] = set()
            for edge in touching:
                other = edge.opposite(node_id)
                if other in queued or self._surface.has_node(other):
                    continue
                node = candidates.get(other)
                if node is None:
                    continue
                queued.add(other)
                to_add.append(node)
            result.added_nodes = self._surface.add_nodes(to_add)

            edges: list[Edge] = []
            for edge in touching:
                if self._surface.has_edge(edge.id):
                    continue
                if not (
                    self._surface.has_node(edge.source)
                    and self._surface.has_node(edge.target)
                ):
                    LOG.warning(
                        "Skipping edge %s: endpoint %s is not available",
                        edge.id,
                        edge.opposite(node_id),
                    )
                    continue
                edges.append(edge)
            result.added_edges = self._surface.add_edges(edges)
            self._finish(result)
        self._notify(result)
        return result

    def isolate(self, node_id: str) -> SyncResult:
        """Reduce the display to node_id alone, with no edges."""
        result = SyncResult(Intent.ISOLATE, target=node_id)
        try:
            self._require_displayed(node_id, "isolate")
        except StaleOperationError as exc:
            LOG.debug("%s; ignoring", exc)
            return result

        with self._surface.batch():
            result.removed_edges = self._surface.remove_edges(self._surface.edge_ids())
            result.removed_nodes = self._surface.remove_nodes(
                n for n in self._surface.node_ids() if n != node_id
            )
            self._finish(result)
        self._notify(result)
        return result

    # -------------------------------------------------------------- selection

    def select_node(self, node_id: str) -> bool:
        """Select a displayed node. Returns False (and keeps state) otherwise."""
        if not self._surface.has_node(node_id):
            LOG.debug("select_node(%s) rejected: not displayed", node_id)
            return False
        self._selected = node_id
        return True

    def clear_selection(self) -> None:
        self._selected = None

    def inspect(self, node_id: str) -> Node | None:
        """Full node (type, label, attributes) for a displayed node."""
        if not self._surface.has_node(node_id):
            return None
        node = self._store.node(node_id)
        if node is not None:
            return node
        for candidate in self._surface.nodes():
            if candidate.id == node_id:
                return candidate
        return None

    def selected_node(self) -> Node | None:
        if self._selected is None:
            return None
        return self.inspect(self._selected)

    # -------------------------------------------------------------- internals

    def _activate(self, entity_type: str) -> SyncResult:
        result = SyncResult(Intent.TOGGLE_TYPE, target=entity_type)
        admitted: list[Node] = []
        for node in self._store.nodes_of_type(entity_type):
            if len(admitted) >= self._cap:
                break
            if not self._surface.has_node(node.id):
                admitted.append(node)

        with self._surface.batch():
            result.added_nodes = self._surface.add_nodes(admitted)
            self._admitted[entity_type] = set(result.added_nodes)
            result.removed_edges = self._prune_dangling()
            result.added_edges = self._surface.add_edges(
                self._edges_touching(result.added_nodes)
            )
            self._finish(result)
        LOG.debug(
            "Toggled %s on: %d node(s) admitted (cap %d)",
            entity_type,
            len(result.added_nodes),
            self._cap,
        )
        self._notify(result)
        return result

    def _deactivate(self, entity_type: str) -> SyncResult:
        result = SyncResult(Intent.TOGGLE_TYPE, target=entity_type)
        admitted = self._admitted.pop(entity_type, set())
        with self._surface.batch():
            result.removed_nodes = self._surface.remove_nodes(
                [n.id for n in self._surface.nodes() if n.id in admitted]
            )
            result.removed_edges = self._prune_dangling()
            self._finish(result)
        self._notify(result)
        return result

    def _rederive(self, intent: Intent) -> SyncResult:
        """Rebuild the surface from the active types (remove all, then add)."""
        result = SyncResult(intent)
        admitted: dict[str, set[str]] = {}
        for entity_type in self._store.entity_types:
            if entity_type not in self._active:
                continue
            admitted[entity_type] = {
                node.id for node in self._store.nodes_of_type(entity_type)[: self._cap]
            }
        desired_ids: set[str] = set().union(*admitted.values())

        graph = self._store.graph
        desired_nodes = (
            [n for n in graph.nodes if n.id in desired_ids] if graph else []
        )
        desired_edges = self._store.edges_within(desired_ids)

        before_nodes = self._surface.node_ids()
        before_edges = self._surface.edge_ids()
        with self._surface.batch():
            self._surface.remove_edges(before_edges)
            self._surface.remove_nodes(before_nodes)
            self._surface.add_nodes(desired_nodes)
            self._surface.add_edges(desired_edges)
            self._admitted = admitted

            after_edges = {e.id for e in desired_edges}
            result.added_nodes = [
                n.id for n in desired_nodes if n.id not in before_nodes
            ]
            result.removed_nodes = sorted(before_nodes - desired_ids)
            result.added_edges = [
                e.id for e in desired_edges if e.id not in before_edges
            ]
            result.removed_edges = sorted(before_edges - after_edges)
            self._finish(result)
        self._notify(result)
        return result

    def _edges_touching(self, node_ids: list[str]) -> list[Edge]:
        """Graph edges with an endpoint in node_ids and both endpoints shown."""
        fresh = set(node_ids)
        if not fresh:
            return []
        shown = self._surface.node_ids()
        return [
            e
            for e in self._store.edges_within(shown)
            if (e.source in fresh or e.target in fresh)
            and not self._surface.has_edge(e.id)
        ]

    def _prune_dangling(self) -> list[str]:
        shown = self._surface.node_ids()
        dangling = [
            e.id
            for e in self._surface.edges()
            if e.source not in shown or e.target not in shown
        ]
        return self._surface.remove_edges(dangling)

    def _require_displayed(self, node_id: str, operation: str) -> None:
        if not self._surface.has_node(node_id):
            raise StaleOperationError(node_id, operation)

    def _finish(self, result: SyncResult) -> None:
        """Selection upkeep and layout request; called inside the batch."""
        if self._selected is not None and not self._surface.has_node(self._selected):
            LOG.debug("Selected node %s removed; clearing selection", self._selected)
            self._selected = None
        result.layout = layout_for(result.intent, changed=result.changed)
        if result.layout is not None:
            self._surface.run_layout(result.layout)

    def _notify(self, result: SyncResult) -> None:
        for listener in self._listeners:
            listener(result)


def closure_violations(surface: RenderingSurface) -> list[Edge]:
    """Displayed edges with an endpoint that is not displayed."""
    shown = surface.node_ids()
    return [
        e for e in surface.edges() if e.source not in shown or e.target not in shown
    ]

