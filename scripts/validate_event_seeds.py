#!/usr/bin/env python3
"""Validate ecomap/event_seeds.json for data quality issues.

Checks:
  A) Names: every feature has a non-empty, unique name
  B) Geometry: polygons with closed rings of at least four vertices
  C) Coordinate bounds: vertices within the continental US bounding box
  D) Dates: every feature carries an ISO date

Run:
    python3 scripts/validate_event_seeds.py [path/to/seeds.json]
"""

import json
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ecomap.seed_data import validate_seed_collection  # noqa: E402

# Continental US bounding box (generous)
US_LAT_MIN, US_LAT_MAX = 24.0, 50.0
US_LNG_MIN, US_LNG_MAX = -125.0, -66.0


def check_bounds(data: dict) -> list[str]:
    problems = []
    for feature in data.get("features", []):
        name = feature["properties"].get("name")
        for ring in feature.get("geometry", {}).get("coordinates", []):
            for lng, lat in ring:
                if not (US_LAT_MIN <= lat <= US_LAT_MAX and US_LNG_MIN <= lng <= US_LNG_MAX):
                    problems.append(f"{name}: vertex ({lat}, {lng}) outside the US")
                    break
    return problems


def check_dates(data: dict) -> list[str]:
    problems = []
    for feature in data.get("features", []):
        props = feature["properties"]
        try:
            date.fromisoformat(props.get("date") or "")
        except ValueError:
            problems.append(f"{props.get('name')}: bad date {props.get('date')!r}")
    return problems


def main() -> int:
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT / "ecomap" / "event_seeds.json"
    with open(path) as f:
        data = json.load(f)

    problems = validate_seed_collection(data) + check_bounds(data) + check_dates(data)
    print(f"Checked {len(data.get('features', []))} features in {path}")
    for problem in problems:
        print(f"  - {problem}")
    if problems:
        print(f"{len(problems)} problem(s) found")
        return 1
    print("No problems found")
    return 0


if __name__ == "__main__":
    sys.exit(main())
