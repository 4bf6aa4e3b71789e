from __future__ import annotations

import logging

from ecomap.config import settings

logger = logging.getLogger(__name__)

POLYGON_HALF_SIZE = 0.008

EVENT_TYPE_LABELS = {
    "cleanup": "Environmental Cleanup",
    "treePlanting": "Tree Planting",
    "garden": "Community Garden",
    "education": "Education",
    "workshop": "Workshop",
}

# Boston-area neighbourhoods -> (lat, lng)
LOCATION_COORDS: dict[str, tuple[float, float]] = {
    "back bay": (42.3467, -71.0972),
    "beacon hill": (42.3588, -71.0707),
    "north end": (42.3647, -71.0542),
    "south end": (42.3467, -71.0972),
    "downtown": (42.3601, -71.0589),
    "financial district": (42.3601, -71.0589),
    "chinatown": (42.3467, -71.0972),
    "south boston": (42.3188, -71.0846),
    "east boston": (42.3188, -71.0846),
    "charlestown": (42.3875, -71.0995),
    "jamaica plain": (42.3188, -71.0846),
    "roxbury": (42.3188, -71.0846),
    "dorchester": (42.3188, -71.0846),
    "fenway": (42.3467, -71.0972),
    "boston common": (42.3550, -71.0656),
    "public garden": (42.3541, -71.0711),
    "franklin park": (42.3188, -71.0846),
    "charles river": (42.3601, -71.0589),
    "boston": (42.3601, -71.0589),
}


def event_type_label(event_type: str) -> str:
    return EVENT_TYPE_LABELS.get(event_type, event_type)


def time_label(start: str | None, end: str | None, fallback: str | None = None) -> str | None:
    if start and end:
        return f"{start} - {end}"
    return start or fallback


def split_time_label(label: str | None) -> tuple[str | None, str | None]:
    """Split ``"9:00 AM - 12:00 PM"`` into its start and end parts."""
    if not label:
        return None, None
    start, _, end = label.partition(" - ")
    return start.strip() or None, end.strip() or None


def coords_for_location(location: str | None) -> tuple[float, float]:
    """Resolve a free-text location to (lat, lng).

    Exact neighbourhood match first, then the first known name contained in
    the text, then the configured map centre.
    """
    cleaned = (location or "").lower().strip()
    if cleaned in LOCATION_COORDS:
        return LOCATION_COORDS[cleaned]
    for key, coords in LOCATION_COORDS.items():
        if key in cleaned:
            return coords
    logger.debug("No coordinates known for location %r, using map centre", location)
    return settings.map_center


def square_polygon(lat: float, lng: float, half_size: float = POLYGON_HALF_SIZE) -> dict:
    """GeoJSON polygon (``[lng, lat]`` order) centred on a point."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [lng - half_size, lat + half_size],
            [lng + half_size, lat + half_size],
            [lng + half_size, lat - half_size],
            [lng - half_size, lat - half_size],
            [lng - half_size, lat + half_size],
        ]],
    }
