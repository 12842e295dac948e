import json
from collections.abc import Callable
from pathlib import Path

import pytest

from ifc_graph_viewer.config import ViewerConfig
from ifc_graph_viewer.display.surface import RenderState
from ifc_graph_viewer.display.synchronizer import DisplaySynchronizer
from ifc_graph_viewer.graph.store import GraphStore


def _node(node_id: str, node_type: str, **extra: object) -> dict:
    data = {"id": node_id, "type": node_type, "label": node_id.upper(), **extra}
    return {"data": data}


def _edge(edge_id: str, source: str, target: str, label: str = "") -> dict:
    return {"data": {"id": edge_id, "source": source, "target": target, "label": label}}


# storey st contains w1..w3; w1 and w2 each host a door; w4-w5 form their own pair
SAMPLE_NODES = [
    _node("st", "IfcBuildingStorey", elevation=0.0),
    _node("w1", "IfcWall", GlobalId="2O2Fr$t4X7Zf8NOew3FLOH"),
    _node("w2", "IfcWall"),
    _node("w3", "IfcWall"),
    _node("w4", "IfcWall"),
    _node("w5", "IfcWall"),
    _node("d1", "IfcDoor"),
    _node("d2", "IfcDoor"),
]

SAMPLE_EDGES = [
    _edge("st-w1", "st", "w1", "contains"),
    _edge("st-w2", "st", "w2", "contains"),
    _edge("st-w3", "st", "w3", "contains"),
    _edge("w1-d1", "w1", "d1", "hosts"),
    _edge("w2-d2", "w2", "d2", "hosts"),
    _edge("w1-w2", "w1", "w2", "connects"),
    _edge("w4-w5", "w4", "w5", "connects"),
]


@pytest.fixture
def sample_document() -> dict:
    return {"nodes": list(SAMPLE_NODES), "edges": list(SAMPLE_EDGES)}


@pytest.fixture
def sample_json(sample_document: dict) -> bytes:
    return json.dumps(sample_document).encode()


@pytest.fixture
def store(sample_document: dict) -> GraphStore:
    s = GraphStore()
    s.set_graph(sample_document["nodes"], sample_document["edges"])
    return s


@pytest.fixture
def surface() -> RenderState:
    return RenderState(seed=1, layout_iterations=10)


@pytest.fixture
def sync(store: GraphStore, surface: RenderState) -> DisplaySynchronizer:
    s = DisplaySynchronizer(store, surface, default_cap=50)
    s.load()
    return s


@pytest.fixture
def config(tmp_path: Path) -> ViewerConfig:
    return ViewerConfig(
        backend_url="http://backend.test",
        chunk_size=4,
        default_graph=tmp_path / "missing.json",
    )


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic clock: callbacks only run inside advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._timers: list[tuple[float, int, ManualHandle, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle()
        self._seq += 1
        self._timers.append((self.now + delay, self._seq, handle, callback))
        return handle

    @property
    def active(self) -> int:
        return sum(1 for _, _, h, _ in self._timers if not (h.cancelled or h.fired))

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [
                t
                for t in self._timers
                if t[0] <= target + 1e-9 and not (t[2].cancelled or t[2].fired)
            ]
            if not due:
                break
            when, _, handle, callback = min(due, key=lambda t: (t[0], t[1]))
            self.now = when
            handle.fired = True
            callback()
        self.now = target


class RecordingView:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []
        self.visible: set[str] = set()

    def show(self, node_id: str) -> None:
        self.events.append(("show", node_id))
        self.visible.add(node_id)

    def fade_out(self, node_id: str) -> None:
        self.events.append(("fade_out", node_id))

    def remove(self, node_id: str) -> None:
        self.events.append(("remove", node_id))
        self.visible.discard(node_id)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()
