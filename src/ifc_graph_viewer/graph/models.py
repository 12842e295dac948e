"""Graph data model and the wire format returned by the backend.

The backend answers with Cytoscape-style element lists::

    {"nodes": [{"data": {"id": "...", "type": "IfcWall", "label": "..."}}],
     "edges": [{"data": {"id": "...", "source": "...", "target": "..."}}]}

Wire elements are validated with pydantic and converted into immutable
``Node``/``Edge`` values before they reach the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_TYPE = "Unknown"

# Keys on node data that map onto Node fields rather than attributes.
_NODE_FIELDS = frozenset({"id", "type", "label"})


@dataclass(frozen=True)
class Node:
    id: str
    type: str
    label: str
    attributes: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def to_element(self) -> dict[str, Any]:
        """Serialize back to the ``{"data": {...}}`` wire shape."""
        data: dict[str, Any] = dict(self.attributes)
        data.update(id=self.id, type=self.type, label=self.label)
        return {"data": data}


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    label: str = ""

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def opposite(self, node_id: str) -> str:
        """Return the endpoint that is not node_id (node_id itself for loops)."""
        return self.target if self.source == node_id else self.source

    def to_element(self) -> dict[str, Any]:
        return {
            "data": {
                "id": self.id,
                "source": self.source,
                "target": self.target,
                "label": self.label,
            }
        }


@dataclass(frozen=True)
class Graph:
    """The full validated dataset. Never mutated; replaced wholesale."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @property
    def node_ids(self) -> frozenset[str]:
        return frozenset(n.id for n in self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)


# --- wire models ---


def _coerce_scalar(value: Any) -> Any:
    # express ids and numeric names arrive as numbers; identity is always a string
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class NodeData(BaseModel):
    id: str
    type: str = UNKNOWN_TYPE
    label: str | None = None

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    _coerce = field_validator("id", "label", mode="before")(_coerce_scalar)

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNKNOWN_TYPE
        return _coerce_scalar(value)

    def to_node(self) -> Node:
        extra = {k: v for k, v in (self.model_extra or {}).items()}
        for key in _NODE_FIELDS:
            extra.pop(key, None)
        return Node(
            id=self.id,
            type=self.type,
            label=self.label if self.label else self.id,
            attributes=MappingProxyType(extra),
        )


class EdgeData(BaseModel):
    id: str | None = None
    source: str
    target: str
    label: str | None = None

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    _coerce = field_validator("id", "source", "target", "label", mode="before")(
        _coerce_scalar
    )

    def to_edge(self) -> Edge:
        edge_id = self.id or self.fallback_id()
        return Edge(
            id=edge_id, source=self.source, target=self.target, label=self.label or ""
        )

    def fallback_id(self) -> str:
        """Stable id for an edge the backend sent without one."""
        if self.label:
            return f"{self.source}->{self.target}:{self.label}"
        return f"{self.source}->{self.target}"


class NodeElement(BaseModel):
    data: NodeData

    model_config = ConfigDict(extra="ignore")


class EdgeElement(BaseModel):
    data: EdgeData

    model_config = ConfigDict(extra="ignore")


class GraphPayload(BaseModel):
    """Terminal upload response / neighbor response / default asset document."""

    nodes: list[NodeElement] = Field(description="Node elements")
    edges: list[EdgeElement] = Field(description="Edge elements")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_graph(cls, graph: Graph) -> GraphPayload:
        return cls.model_validate(
            {
                "nodes": [n.to_element() for n in graph.nodes],
                "edges": [e.to_element() for e in graph.edges],
            }
        )
