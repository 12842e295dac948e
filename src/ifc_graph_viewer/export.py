"""Interactive HTML snapshot of the displayed subgraph."""

from __future__ import annotations

import logging
from pathlib import Path

import plotly.graph_objects as go
import plotly.io as pio

from ifc_graph_viewer.display.layout import LayoutRequest
from ifc_graph_viewer.display.surface import RenderState

LOG = logging.getLogger(__name__)


def build_figure(render_state: RenderState, *, title: str = "IFC Graph") -> go.Figure:
    if any(n not in render_state.positions for n in render_state.node_ids()):
        render_state.run_layout(LayoutRequest(fit=True))
    pos = render_state.positions

    edge_x: list[float | None] = []
    edge_y: list[float | None] = []
    for edge in render_state.edges():
        ps = pos[edge.source]
        pt = pos[edge.target]
        # None breaks the line between separate edges in Plotly
        edge_x += [ps[0], pt[0], None]
        edge_y += [ps[1], pt[1], None]

    traces: list[go.Scatter] = [
        go.Scatter(
            x=edge_x,
            y=edge_y,
            mode="lines",
            line={"width": 0.8, "color": "#888"},
            hoverinfo="none",
            name="edges",
        )
    ]

    # one trace per entity type so the legend doubles as a type key
    by_type: dict[str, list[str]] = {}
    for node in render_state.nodes():
        by_type.setdefault(node.type, []).append(node.id)
    for entity_type, node_ids in by_type.items():
        text = []
        for node_id in node_ids:
            node = render_state.node(node_id)
            label = node.label if node is not None else node_id
            text.append(f"{label}<br>{entity_type}<br>{node_id}")
        traces.append(
            go.Scatter(
                x=[pos[n][0] for n in node_ids],
                y=[pos[n][1] for n in node_ids],
                mode="markers",
                marker={"size": 9, "opacity": 0.85},
                text=text,
                hoverinfo="text",
                name=entity_type,
            )
        )

    layout = go.Layout(
        title=title,
        showlegend=True,
        hovermode="closest",
        margin={"l": 0, "r": 0, "b": 0, "t": 40},
        xaxis={"visible": False},
        yaxis={"visible": False, "scaleanchor": "x"},
    )
    viewport = render_state.viewport
    if viewport is not None:
        layout.xaxis.range = [viewport.x_min, viewport.x_max]
        layout.yaxis.range = [viewport.y_min, viewport.y_max]
    return go.Figure(data=traces, layout=layout)


def write_html(
    render_state: RenderState, path: Path, *, title: str = "IFC Graph"
) -> Path:
    fig = build_figure(render_state, title=title)
    path.parent.mkdir(parents=True, exist_ok=True)
    pio.write_html(fig, str(path))
    LOG.info(
        "Visualization saved to %s (%d nodes, %d edges)",
        path,
        len(render_state.node_ids()),
        len(render_state.edge_ids()),
    )
    return path
