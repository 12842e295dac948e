"""Tests for the viewer session: eager clear, failures, trace, export."""

import json
from pathlib import Path

import httpx

from ifc_graph_viewer.display.synchronizer import DisplayState
from ifc_graph_viewer.export import build_figure, write_html
from ifc_graph_viewer.ingest.client import BackendClient
from ifc_graph_viewer.session import ViewerSession
from ifc_graph_viewer.trace import TraceWriter, short_error


def _session(config, handler, **kwargs) -> ViewerSession:
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return ViewerSession(config, client=BackendClient(config, client=http), **kwargs)


def _ok(sample_json):
    return lambda request: httpx.Response(200, content=sample_json)


def test_upload_loads_graph(config, tmp_path, sample_json):
    path = tmp_path / "model.ifc"
    path.write_bytes(b"12345678")
    session = _session(config, _ok(sample_json))

    progress = []
    assert session.upload(path, progress=progress.append)
    assert progress == [50, 100]
    assert session.sync.state is DisplayState.POPULATED
    assert not session.loading
    assert session.last_error is None
    assert session.summary()["graph_nodes"] == 8


def test_failed_reupload_leaves_viewer_empty(config, tmp_path, sample_json):
    path = tmp_path / "model.ifc"
    path.write_bytes(b"12345678")
    status = {"code": 200}

    def handler(request):
        if status["code"] != 200:
            return httpx.Response(status["code"])
        return httpx.Response(200, content=sample_json)

    session = _session(config, handler)
    assert session.upload(path)
    session.sync.toggle_type("IfcWall")
    session.sync.select_node("w1")
    assert session.surface.node_ids()

    status["code"] = 503
    assert not session.upload(path)

    assert session.store.is_empty
    assert session.store.entity_types == ()
    assert session.sync.active_types == frozenset()
    assert session.sync.selected_node_id is None
    assert session.surface.node_ids() == frozenset()
    assert not session.loading
    assert "HTTP 503" in session.last_error


def test_source_file_vanishing_mid_upload_is_reported(
    config, tmp_path, sample_json, monkeypatch
):
    path = tmp_path / "model.ifc"
    path.write_bytes(b"12345678")
    session = _session(config, _ok(sample_json))
    assert session.upload(path)

    monkeypatch.setattr(Path, "is_file", lambda self: True)
    path.unlink()
    assert not session.upload(path)

    assert not session.loading
    assert "Cannot read source file" in session.last_error
    assert session.store.is_empty
    assert session.sync.state is DisplayState.EMPTY


def test_begin_upload_clears_before_any_request(config, tmp_path, sample_json):
    session = _session(config, _ok(sample_json))
    graph_file = tmp_path / "graph.json"
    graph_file.write_bytes(sample_json)
    assert session.load_graph_file(graph_file)
    session.sync.toggle_type("IfcDoor")

    session.begin_upload("next.ifc")
    assert session.loading
    assert session.store.is_empty
    assert session.surface.node_ids() == frozenset()


def test_bad_terminal_body_reports_no_graph_data(config, tmp_path):
    path = tmp_path / "model.ifc"
    path.write_bytes(b"1234")
    session = _session(config, lambda r: httpx.Response(200, text=""))
    assert not session.upload(path)
    assert "No graph data received" in session.last_error
    assert session.sync.state is DisplayState.EMPTY


def test_load_default_without_asset(config, sample_json):
    session = _session(config, _ok(sample_json))
    assert not session.load_default()
    assert session.last_error is None
    assert session.sync.state is DisplayState.EMPTY


def test_load_default_with_asset(config, tmp_path, sample_json):
    asset = tmp_path / "default_graph.json"
    asset.write_bytes(sample_json)
    session = _session(
        config.with_overrides(default_graph=asset), _ok(sample_json)
    )
    assert session.load_default()
    assert session.store.entity_types == ("IfcBuildingStorey", "IfcWall", "IfcDoor")


def test_trace_records_uploads_and_intents(config, tmp_path, sample_json):
    trace_path = tmp_path / "trace.jsonl"
    trace = TraceWriter(trace_path)
    graph_file = tmp_path / "graph.json"
    graph_file.write_bytes(sample_json)

    session = _session(config, _ok(sample_json), trace=trace, run_id="run-1")
    session.load_graph_file(graph_file)
    session.sync.toggle_type("IfcWall")
    trace.close()

    events = [json.loads(line) for line in trace_path.read_text().splitlines()]
    names = [e["event"] for e in events]
    # begin_upload clears first, load() clears again before framing the new graph
    assert names == [
        "clear",
        "upload_start",
        "clear",
        "load",
        "upload_complete",
        "toggle_type",
    ]
    assert all(e["run_id"] == "run-1" for e in events)
    toggle = next(e for e in events if e["event"] == "toggle_type")
    assert toggle["payload"]["added_nodes"] == 5
    assert [e["step_id"] for e in events] == list(range(1, len(events) + 1))


def test_write_html_exports_displayed_subgraph(config, tmp_path, sample_json):
    graph_file = tmp_path / "graph.json"
    graph_file.write_bytes(sample_json)
    session = _session(config, _ok(sample_json))
    session.load_graph_file(graph_file)
    session.sync.toggle_type("IfcWall")
    session.sync.toggle_type("IfcDoor")

    fig = build_figure(session.surface)
    names = [trace.name for trace in fig.data]
    assert names == ["edges", "IfcWall", "IfcDoor"]

    out = write_html(session.surface, tmp_path / "out" / "graph.html")
    assert out.is_file()
    assert "plotly" in out.read_text().lower()


def test_trace_records_failed_upload(config, tmp_path):
    path = tmp_path / "model.ifc"
    path.write_bytes(b"1234")
    trace = TraceWriter(tmp_path / "nested" / "trace.jsonl")
    session = _session(
        config, lambda r: httpx.Response(502), trace=trace, run_id="run-2"
    )
    assert not session.upload(path)
    trace.close()

    events = [json.loads(line) for line in trace.path.read_text().splitlines()]
    error = events[-1]
    assert error["event"] == "upload_error"
    assert error["payload"]["error_type"] == "IngestTransportError"
    assert "HTTP 502" in error["payload"]["error"]
    assert "\n" not in error["payload"]["error"]


def test_short_error_flattens_and_truncates():
    assert short_error(ValueError("bad\n  value")) == "bad value"
    assert short_error(KeyError()) == "KeyError"
    long = short_error(RuntimeError("x" * 300), max_length=20)
    assert long == "x" * 17 + "..."
