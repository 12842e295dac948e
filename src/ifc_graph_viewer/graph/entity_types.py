from __future__ import annotations

from collections.abc import Iterable

# Plain-word aliases people type instead of the IFC class name.
_TYPE_ALIASES: dict[str, str] = {
    "wall": "IfcWall",
    "walls": "IfcWall",
    "door": "IfcDoor",
    "doors": "IfcDoor",
    "window": "IfcWindow",
    "windows": "IfcWindow",
    "slab": "IfcSlab",
    "floor": "IfcSlab",
    "beam": "IfcBeam",
    "column": "IfcColumn",
    "stair": "IfcStair",
    "roof": "IfcRoof",
    "space": "IfcSpace",
    "room": "IfcSpace",
    "storey": "IfcBuildingStorey",
    "level": "IfcBuildingStorey",
    "site": "IfcSite",
    "building": "IfcBuilding",
    "project": "IfcProject",
}


def normalize_entity_type(value: str) -> str:
    """Canonicalize a user-typed IFC class name (``wall`` -> ``IfcWall``)."""
    cleaned = value.strip()
    if not cleaned:
        return cleaned
    alias = _TYPE_ALIASES.get(cleaned.lower())
    if alias:
        return alias
    if not cleaned.lower().startswith("ifc"):
        cleaned = f"Ifc{cleaned}"
    core = cleaned[3:]
    if not core:
        return "Ifc"
    return "Ifc" + core[0].upper() + core[1:]


def resolve_entity_type(value: str, universe: Iterable[str]) -> str | None:
    """Match user input against the types actually present in the graph.

    Tries the exact value, then a case-insensitive match, then the
    IFC-normalized form. Non-IFC types (e.g. ``Wall`` from a test fixture)
    resolve through the first two steps.
    """
    known = list(universe)
    cleaned = value.strip()
    if not cleaned:
        return None
    if cleaned in known:
        return cleaned
    by_lower = {t.lower(): t for t in known}
    hit = by_lower.get(cleaned.lower())
    if hit is not None:
        return hit
    return by_lower.get(normalize_entity_type(cleaned).lower())
