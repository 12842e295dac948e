"""Tests for the layout trigger policy and RenderState batching."""

import pytest

from ifc_graph_viewer.display.layout import Intent, LayoutRequest, layout_for
from ifc_graph_viewer.display.surface import RenderState
from ifc_graph_viewer.graph.models import Edge, Node


@pytest.mark.parametrize(
    "intent", [Intent.TOGGLE_TYPE, Intent.SET_CAP, Intent.EXPAND, Intent.ISOLATE]
)
def test_incremental_intents_never_fit(intent):
    assert layout_for(intent, changed=True) == LayoutRequest(randomize=False, fit=False)
    assert layout_for(intent, changed=False) is None


@pytest.mark.parametrize("intent", [Intent.LOAD, Intent.RESET])
def test_load_and_reset_fit(intent):
    assert layout_for(intent, changed=True) == LayoutRequest(randomize=False, fit=True)
    assert layout_for(intent, changed=False) == LayoutRequest(randomize=False, fit=True)


def test_clear_runs_no_layout():
    assert layout_for(Intent.CLEAR, changed=True) is None


def _nodes(*ids):
    return [Node(i, "IfcWall", i) for i in ids]


def test_layout_is_deferred_until_outer_batch_exits():
    surface = RenderState(layout_iterations=5)
    with surface.batch():
        surface.add_nodes(_nodes("a", "b"))
        surface.run_layout(LayoutRequest())
        with surface.batch():
            surface.run_layout(LayoutRequest(fit=True))
        assert surface.layout_history == []
        assert surface.positions == {}
    assert surface.layout_history == [LayoutRequest(randomize=False, fit=True)]
    assert set(surface.positions) == {"a", "b"}
    assert surface.viewport is not None


def test_incremental_layout_keeps_existing_positions():
    surface = RenderState(layout_iterations=5)
    surface.add_nodes(_nodes("a", "b"))
    surface.add_edges([Edge("ab", "a", "b")])
    surface.run_layout(LayoutRequest(fit=True))
    before = dict(surface.positions)

    surface.add_nodes(_nodes("c"))
    surface.add_edges([Edge("ac", "a", "c")])
    surface.run_layout(LayoutRequest())

    assert surface.positions["a"] == before["a"]
    assert surface.positions["b"] == before["b"]
    assert "c" in surface.positions


def test_add_and_remove_are_idempotent():
    surface = RenderState()
    assert surface.add_nodes(_nodes("a", "b")) == ["a", "b"]
    assert surface.add_nodes(_nodes("a")) == []
    assert surface.remove_nodes(["a", "zz"]) == ["a"]
    assert surface.remove_nodes(["a"]) == []


def test_edge_requires_both_endpoints():
    surface = RenderState()
    surface.add_nodes(_nodes("a"))
    with pytest.raises(ValueError, match="not displayed"):
        surface.add_edges([Edge("ab", "a", "b")])
