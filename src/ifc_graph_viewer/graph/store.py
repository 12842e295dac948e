# holds the canonical full graph that every display operation reads from
# the graph itself is an immutable snapshot; a networkx MultiDiGraph sits next
# to it purely as an adjacency index so neighbourhood lookups don't scan every edge

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import networkx as nx
from pydantic import TypeAdapter, ValidationError

from ifc_graph_viewer.errors import IngestDataError, ReferentialIntegrityViolation
from ifc_graph_viewer.graph.models import (
    Edge,
    EdgeElement,
    Graph,
    GraphPayload,
    Node,
    NodeElement,
)

LOG = logging.getLogger(__name__)

_NODE_LIST = TypeAdapter(list[NodeElement])
_EDGE_LIST = TypeAdapter(list[EdgeElement])


def parse_nodes(raw_nodes: Any) -> list[Node]:
    try:
        elements = _NODE_LIST.validate_python(raw_nodes)
    except ValidationError as exc:
        raise IngestDataError(f"Malformed node list: {_first_error(exc)}") from exc
    return [el.data.to_node() for el in elements]


def parse_edges(raw_edges: Any) -> list[Edge]:
    try:
        elements = _EDGE_LIST.validate_python(raw_edges)
    except ValidationError as exc:
        raise IngestDataError(f"Malformed edge list: {_first_error(exc)}") from exc
    return [el.data.to_edge() for el in elements]


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg', 'invalid')}"


def filter_valid_edges(
    node_ids: set[str] | frozenset[str], edges: Iterable[Edge]
) -> tuple[list[Edge], list[Edge]]:
    """Split edges into (valid, dropped) by endpoint presence."""
    valid: list[Edge] = []
    dropped: list[Edge] = []
    for edge in edges:
        if edge.source in node_ids and edge.target in node_ids:
            valid.append(edge)
        else:
            dropped.append(edge)
    return valid, dropped


class GraphStore:
    """Owner of the full graph and the entity type universe."""

    def __init__(self) -> None:
        self._graph: Graph | None = None
        self._entity_types: tuple[str, ...] = ()
        self._nodes_by_id: dict[str, Node] = {}
        self._nodes_by_type: dict[str, tuple[Node, ...]] = {}
        self._edges_by_id: dict[str, Edge] = {}
        self._edge_order: dict[str, int] = {}
        self._index = nx.MultiDiGraph()
        self.last_dropped_edges: tuple[Edge, ...] = ()

    # ------------------------------------------------------------------ state

    @property
    def graph(self) -> Graph | None:
        return self._graph

    @property
    def entity_types(self) -> tuple[str, ...]:
        """Distinct node types in first-seen order."""
        return self._entity_types

    @property
    def is_empty(self) -> bool:
        return self._graph is None

    def clear(self) -> None:
        self._graph = None
        self._entity_types = ()
        self._nodes_by_id = {}
        self._nodes_by_type = {}
        self._edges_by_id = {}
        self._edge_order = {}
        self._index = nx.MultiDiGraph()
        self.last_dropped_edges = ()

    # --------------------------------------------------------------- ingestion

    def set_graph(self, raw_nodes: Any, raw_edges: Any) -> Graph:
        """Validate raw wire elements and replace the stored graph.

        Edges whose source or target is not among raw_nodes are dropped.
        On IngestDataError the previous graph is kept.
        """
        nodes = parse_nodes(raw_nodes)
        edges = parse_edges(raw_edges)
        return self.replace(nodes, edges)

    def set_payload(self, payload: GraphPayload) -> Graph:
        nodes = [el.data.to_node() for el in payload.nodes]
        edges = [el.data.to_edge() for el in payload.edges]
        return self.replace(nodes, edges)

    def replace(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> Graph:
        nodes_by_id: dict[str, Node] = {}
        nodes_by_type: dict[str, list[Node]] = {}
        for node in nodes:
            if node.id in nodes_by_id:
                raise IngestDataError(f"Duplicate node id: {node.id}")
            nodes_by_id[node.id] = node
            # dict keeps insertion order, which gives first-seen type order
            nodes_by_type.setdefault(node.type, []).append(node)

        valid, dropped = filter_valid_edges(nodes_by_id.keys(), edges)
        if dropped:
            LOG.warning(
                "Dropped %d edge(s) referencing absent nodes, e.g. %s",
                len(dropped),
                dropped[0].id,
                extra={"category": ReferentialIntegrityViolation.__name__},
            )

        edges_by_id: dict[str, Edge] = {}
        kept: list[Edge] = []
        for edge in valid:
            if edge.id in edges_by_id:
                LOG.warning("Duplicate edge id %s; keeping first occurrence", edge.id)
                continue
            edges_by_id[edge.id] = edge
            kept.append(edge)

        index = nx.MultiDiGraph()
        index.add_nodes_from(nodes_by_id)
        for edge in kept:
            index.add_edge(edge.source, edge.target, key=edge.id)

        graph = Graph(nodes=tuple(nodes), edges=tuple(kept))

        self._graph = graph
        self._entity_types = tuple(nodes_by_type)
        self._nodes_by_id = nodes_by_id
        self._nodes_by_type = {t: tuple(ns) for t, ns in nodes_by_type.items()}
        self._edges_by_id = edges_by_id
        self._edge_order = {edge.id: i for i, edge in enumerate(kept)}
        self._index = index
        self.last_dropped_edges = tuple(dropped)

        LOG.info(
            "Graph loaded: %d nodes, %d edges, %d entity types",
            len(graph.nodes),
            len(graph.edges),
            len(self._entity_types),
        )
        return graph

    # ----------------------------------------------------------------- lookups

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes_by_id

    def node(self, node_id: str) -> Node | None:
        return self._nodes_by_id.get(node_id)

    def edge(self, edge_id: str) -> Edge | None:
        return self._edges_by_id.get(edge_id)

    def nodes_of_type(self, entity_type: str) -> tuple[Node, ...]:
        """Nodes of the given type in graph order."""
        return self._nodes_by_type.get(entity_type, ())

    def incident_edges(self, node_id: str) -> list[Edge]:
        """Every edge touching node_id, in graph order."""
        if node_id not in self._index:
            return []
        keys: set[str] = set()
        for _, _, key in self._index.out_edges(node_id, keys=True):
            keys.add(key)
        for _, _, key in self._index.in_edges(node_id, keys=True):
            keys.add(key)
        return [self._edges_by_id[k] for k in sorted(keys, key=self._edge_order.get)]

    def neighborhood(self, node_id: str) -> Graph:
        """First-degree neighbourhood: touching edges plus their opposite nodes."""
        edges = self.incident_edges(node_id)
        seen: set[str] = set()
        nodes: list[Node] = []
        for edge in edges:
            other = edge.opposite(node_id)
            if other in seen:
                continue
            seen.add(other)
            nodes.append(self._nodes_by_id[other])
        return Graph(nodes=tuple(nodes), edges=tuple(edges))

    def edges_within(self, node_ids: set[str] | frozenset[str]) -> list[Edge]:
        """Graph edges whose endpoints are both in node_ids, in graph order."""
        if self._graph is None:
            return []
        return [
            e
            for e in self._graph.edges
            if e.source in node_ids and e.target in node_ids
        ]
