"""Tests for environment configuration and entity type resolution."""

from pathlib import Path

import pytest

from ifc_graph_viewer.config import (
    DEFAULT_BACKEND_URL,
    DEFAULT_CAP,
    DEFAULT_CHUNK_SIZE,
    ViewerConfig,
)
from ifc_graph_viewer.graph.entity_types import (
    normalize_entity_type,
    resolve_entity_type,
)


def test_defaults_from_empty_environment():
    config = ViewerConfig.from_env({})
    assert config.backend_url == DEFAULT_BACKEND_URL
    assert config.upload_mode == "chunked"
    assert config.chunk_size == DEFAULT_CHUNK_SIZE == 5 * 1024 * 1024
    assert config.default_cap == DEFAULT_CAP
    assert config.timeout == 120.0
    assert (config.hover_delay, config.hover_visible, config.hover_fade) == (
        0.3,
        3.0,
        0.3,
    )
    assert config.default_graph is not None
    assert config.default_graph.name == "default_graph.json"
    assert config.upload_url == "http://127.0.0.1:5050/upload"
    assert config.neighbors_url == "http://127.0.0.1:5050/fetch_neighbors"


def test_values_from_environment():
    config = ViewerConfig.from_env(
        {
            "IFC_VIEWER_BACKEND_URL": "http://ifc.example:8000/",
            "IFC_VIEWER_UPLOAD_MODE": "Multipart",
            "IFC_VIEWER_CHUNK_SIZE": "1024",
            "IFC_VIEWER_DEFAULT_CAP": "7",
            "IFC_VIEWER_DEFAULT_GRAPH": "/tmp/graph.json",
            "IFC_VIEWER_HOVER_DELAY": "0.5",
        }
    )
    assert config.upload_url == "http://ifc.example:8000/upload"
    assert config.upload_mode == "single"
    assert config.chunk_size == 1024
    assert config.default_cap == 7
    assert config.default_graph == Path("/tmp/graph.json")
    assert config.hover_delay == 0.5


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("IFC_VIEWER_CHUNK_SIZE", "big"),
        ("IFC_VIEWER_DEFAULT_CAP", "0"),
        ("IFC_VIEWER_UPLOAD_MODE", "carrier-pigeon"),
        ("IFC_VIEWER_TIMEOUT", "soon"),
    ],
)
def test_invalid_values_raise(name, value):
    with pytest.raises(ValueError):
        ViewerConfig.from_env({name: value})


def test_invalid_value_names_the_variable():
    with pytest.raises(ValueError, match="IFC_VIEWER_CHUNK_SIZE"):
        ViewerConfig.from_env({"IFC_VIEWER_CHUNK_SIZE": "big"})


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("IFC_VIEWER_CHUNK_SIZE", "0"),
        ("IFC_VIEWER_DEFAULT_CAP", "-2"),
        ("IFC_VIEWER_TIMEOUT", "0"),
        ("IFC_VIEWER_HOVER_DELAY", "-0.1"),
        ("IFC_VIEWER_HOVER_FADE", "-1"),
    ],
)
def test_out_of_range_value_names_the_variable(name, value):
    with pytest.raises(ValueError, match=name):
        ViewerConfig.from_env({name: value})


def test_zero_hover_timings_are_allowed():
    config = ViewerConfig.from_env(
        {"IFC_VIEWER_HOVER_DELAY": "0", "IFC_VIEWER_HOVER_FADE": "0"}
    )
    assert (config.hover_delay, config.hover_fade) == (0.0, 0.0)


def test_with_overrides_ignores_none():
    config = ViewerConfig()
    assert config.with_overrides(backend_url=None, default_cap=None) is config
    changed = config.with_overrides(default_cap=3, upload_mode="single")
    assert changed.default_cap == 3
    assert changed.upload_mode == "single"
    assert changed.backend_url == config.backend_url


def test_normalize_entity_type():
    assert normalize_entity_type("wall") == "IfcWall"
    assert normalize_entity_type("room") == "IfcSpace"
    assert normalize_entity_type("ifcdoor") == "IfcDoor"
    assert normalize_entity_type("CurtainWall") == "IfcCurtainWall"


def test_resolve_entity_type_against_universe():
    universe = ["IfcWall", "IfcDoor", "Wall"]
    assert resolve_entity_type("Wall", universe) == "Wall"
    assert resolve_entity_type("ifcwall", universe) == "IfcWall"
    assert resolve_entity_type("doors", universe) == "IfcDoor"
    assert resolve_entity_type("roof", universe) is None
    assert resolve_entity_type("  ", universe) is None
