"""
Coordinate-format adapters.

Stored records and live position feeds use several historical shapes for a
point ([lon, lat] arrays, {latitude, longitude}, {lat, lng}, GeoJSON Points,
position samples with nested coords). normalize_point() is applied at every
ingestion boundary so the rest of the engine only ever sees LonLat.
"""

import json
import logging
from typing import Any, List, NamedTuple

from shapely.geometry import shape

logger = logging.getLogger("farmreg.geometry")


class LonLat(NamedTuple):
    lon: float
    lat: float


def _pair(lon, lat):
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    try:
        return LonLat(float(lon), float(lat))
    except (TypeError, ValueError):
        return None


def normalize_point(point: Any):
    """
    Return a canonical LonLat for any recognised point shape.

    Unrecognised shapes (or recognised shapes with non-numeric values) are
    returned unchanged; callers that need a LonLat check with isinstance.
    """
    if isinstance(point, LonLat):
        return point
    if isinstance(point, (list, tuple)) and len(point) >= 2:
        return _pair(point[0], point[1]) or point
    if isinstance(point, dict):
        if point.get("type") == "Point":
            coords = point.get("coordinates")
            if not isinstance(coords, (list, tuple)) or len(coords) < 2:
                return point
            return _pair(coords[0], coords[1]) or point
        if isinstance(point.get("coords"), dict):
            return normalize_point(point["coords"])
        if "latitude" in point and "longitude" in point:
            return _pair(point["longitude"], point["latitude"]) or point
        if "lat" in point and "lng" in point:
            return _pair(point["lng"], point["lat"]) or point
        if "lat" in point and "lon" in point:
            return _pair(point["lon"], point["lat"]) or point
        return point
    if hasattr(point, "latitude") and hasattr(point, "longitude"):
        return _pair(point.longitude, point.latitude) or point
    return point


def to_ring(points) -> List[LonLat]:
    """Normalize every point; raises ValueError naming the first unusable index."""
    ring = []
    for idx, point in enumerate(points or []):
        normalized = normalize_point(point)
        if not isinstance(normalized, LonLat):
            raise ValueError(f"point at index {idx} is not a recognised coordinate")
        ring.append(normalized)
    return ring


def extract_ring(stored) -> List[LonLat]:
    """
    Pull the outer ring out of a stored farm polygon.

    Accepts a JSON string, a GeoJSON Polygon/MultiPolygon/Feature, a dict with a
    "coordinates" key, a ring of points, or a list of rings (outer ring first).
    A closing point that repeats the first one is dropped.
    """
    if isinstance(stored, (str, bytes)):
        stored = json.loads(stored)
    if isinstance(stored, dict):
        if stored.get("type") == "Feature":
            stored = stored.get("geometry") or {}
        if stored.get("type") in {"Polygon", "MultiPolygon"}:
            geom = shape(stored)
            if geom.geom_type == "MultiPolygon":
                geom = max(geom.geoms, key=lambda g: g.area)
            ring = [LonLat(x, y) for x, y, *_ in geom.exterior.coords]
            return ring[:-1] if len(ring) > 1 and ring[0] == ring[-1] else ring
        stored = stored.get("coordinates")
    if not isinstance(stored, (list, tuple)) or not stored:
        raise ValueError("stored polygon has no coordinates")
    first = stored[0]
    if isinstance(first, (list, tuple)) and first and isinstance(first[0], (list, tuple, dict)):
        stored = first
    ring = to_ring(stored)
    return ring[:-1] if len(ring) > 1 and ring[0] == ring[-1] else ring
