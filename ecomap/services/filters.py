"""Filters over a GeoJSON FeatureCollection of events."""

from __future__ import annotations

from datetime import date
from typing import Iterable


def _feature_date(feature: dict) -> date | None:
    value = feature.get("properties", {}).get("date")
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def filter_by_date_range(collection: dict, start: date | None, end: date | None) -> dict:
    """Keep features dated within [start, end], whole days inclusive.

    With either bound missing the collection is returned unchanged.
    Features without a parsable date are dropped.
    """
    if start is None or end is None:
        return collection

    features = []
    for feature in collection["features"]:
        event_date = _feature_date(feature)
        if event_date is not None and start <= event_date <= end:
            features.append(feature)
    return {**collection, "features": features}


def filter_by_event_type(collection: dict, event_types: Iterable[str] | None) -> dict:
    wanted = {t.strip() for t in (event_types or []) if t and t.strip()}
    if not wanted:
        return collection
    features = [
        f for f in collection["features"]
        if f.get("properties", {}).get("eventType") in wanted
    ]
    return {**collection, "features": features}
