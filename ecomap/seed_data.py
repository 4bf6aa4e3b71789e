"""Thin loader for the seed event collection in event_seeds.json.

The seed collection is the map's baseline GeoJSON: one polygon feature per
event, identified by its unique ``name``. It is never mutated at runtime;
accessors hand out deep copies so callers cannot corrupt the cache.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path

from ecomap.config import settings

_DATA: dict | None = None


def _load() -> dict:
    global _DATA
    if _DATA is None:
        path = Path(settings.seed_path) if settings.seed_path else Path(__file__).with_name("event_seeds.json")
        with open(path) as f:
            _DATA = json.load(f)
    return _DATA


def get_seed_collection() -> dict:
    """Return the full seed FeatureCollection."""
    return copy.deepcopy(_load())


def validate_seed_collection(data: dict) -> list[str]:
    """Return a list of problems found in a seed FeatureCollection.

    Checks that every feature has a non-empty, unique name and a polygon
    whose rings are closed and have at least four vertices.
    """
    problems: list[str] = []
    seen: set[str] = set()
    for idx, feature in enumerate(data.get("features", [])):
        name = (feature.get("properties") or {}).get("name")
        label = name or f"feature #{idx}"
        if not name:
            problems.append(f"{label}: missing name")
        elif name in seen:
            problems.append(f"{label}: duplicate name")
        else:
            seen.add(name)

        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "Polygon":
            problems.append(f"{label}: geometry is {geometry.get('type')!r}, expected 'Polygon'")
            continue
        for ring in geometry.get("coordinates", []):
            if len(ring) < 4:
                problems.append(f"{label}: ring has {len(ring)} vertices")
            elif ring[0] != ring[-1]:
                problems.append(f"{label}: ring is not closed")
    return problems
