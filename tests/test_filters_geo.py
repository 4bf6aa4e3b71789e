"""Tests for collection filters and geometry helpers."""

from datetime import date

from ecomap.config import settings
from ecomap.services.filters import filter_by_date_range, filter_by_event_type
from ecomap.services.geo import (
    coords_for_location,
    event_type_label,
    split_time_label,
    square_polygon,
    time_label,
)


def _collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


def _feature(name, event_date=None, event_type="cleanup"):
    props = {"name": name, "eventType": event_type}
    if event_date is not None:
        props["date"] = event_date
    return {"type": "Feature", "properties": props, "geometry": {}}


class TestDateRange:
    def test_missing_bound_returns_unchanged(self):
        data = _collection(_feature("A", "2025-01-01"))
        assert filter_by_date_range(data, None, date(2025, 2, 1)) is data
        assert filter_by_date_range(data, date(2025, 2, 1), None) is data

    def test_bounds_are_inclusive(self):
        data = _collection(
            _feature("before", "2025-03-31"),
            _feature("start", "2025-04-01"),
            _feature("end", "2025-04-30T18:00:00"),
            _feature("after", "2025-05-01"),
        )
        result = filter_by_date_range(data, date(2025, 4, 1), date(2025, 4, 30))
        assert [f["properties"]["name"] for f in result["features"]] == ["start", "end"]
        assert result["type"] == "FeatureCollection"

    def test_undated_features_dropped(self):
        data = _collection(_feature("none"), _feature("bad", "soon"))
        assert filter_by_date_range(data, date(2025, 1, 1), date(2025, 12, 31))["features"] == []


class TestEventType:
    def test_filters_by_type(self):
        data = _collection(_feature("a"), _feature("b", event_type="garden"))
        result = filter_by_event_type(data, ["garden"])
        assert [f["properties"]["name"] for f in result["features"]] == ["b"]

    def test_empty_selection_returns_unchanged(self):
        data = _collection(_feature("a"))
        assert filter_by_event_type(data, None) is data
        assert filter_by_event_type(data, [" "]) is data


class TestGeo:
    def test_labels(self):
        assert event_type_label("treePlanting") == "Tree Planting"
        assert event_type_label("beeKeeping") == "beeKeeping"

    def test_time_label(self):
        assert time_label("9:00", "12:00") == "9:00 - 12:00"
        assert time_label("9:00", None) == "9:00"
        assert time_label(None, "12:00", "Time TBD") == "Time TBD"

    def test_split_time_label(self):
        assert split_time_label("9:00 AM - 12:00 PM") == ("9:00 AM", "12:00 PM")
        assert split_time_label("9:00 AM") == ("9:00 AM", None)
        assert split_time_label(None) == (None, None)

    def test_coords_for_location(self):
        assert coords_for_location("Charlestown") == (42.3875, -71.0995)
        assert coords_for_location("Trail behind Franklin Park Zoo") == (42.3188, -71.0846)
        assert coords_for_location("Somewhere else") == settings.map_center
        assert coords_for_location(None) == settings.map_center

    def test_square_polygon_is_closed_lng_lat(self):
        polygon = square_polygon(42.0, -71.0, half_size=0.5)
        ring = polygon["coordinates"][0]
        assert polygon["type"] == "Polygon"
        assert ring[0] == ring[-1] == [-71.5, 42.5]
        assert len(ring) == 5
