"""
Area calculation over geographic point rings.
"""

import logging
import math

from pyproj import Geod
from shapely.errors import ShapelyError

from farmreg.services.geometry.api.normalize import extract_ring, to_ring

geod = Geod(ellps="WGS84")
logger = logging.getLogger("farmreg.geometry")

EARTH_RADIUS_M = 6_371_000.0
SQ_METERS_PER_HECTARE = 10_000.0
HECTARES_TO_ACRES = 2.47105


def signed_polygon_area(points) -> float:
    """
    Spherical-excess form of the shoelace formula, in square meters.

    The sign follows the winding order of the ring; the closing edge from the
    last point back to the first is implicit. Fewer than 3 points gives 0.
    """
    ring = to_ring(points)
    n = len(ring)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        lon1, lat1 = ring[i]
        lon2, lat2 = ring[(i + 1) % n]
        total += math.radians(lon2 - lon1) * (
            2 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))
        )
    return total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2


def polygon_area(points) -> float:
    return abs(signed_polygon_area(points))


def geodesic_area(points) -> float:
    """WGS84 ellipsoidal area in square meters; 0 for fewer than 3 points."""
    ring = to_ring(points)
    if len(ring) < 3:
        return 0.0
    area, _ = geod.polygon_area_perimeter([p.lon for p in ring], [p.lat for p in ring])
    return abs(area)


def to_hectares(square_meters: float) -> float:
    return square_meters / SQ_METERS_PER_HECTARE


def to_acres(hectares: float) -> float:
    return hectares * HECTARES_TO_ACRES


def format_hectares(hectares: float) -> str:
    return f"{hectares:.2f} hectares"


def area_summary(points) -> dict:
    square_meters = polygon_area(points)
    hectares = to_hectares(square_meters)
    return {
        "square_meters": round(square_meters, 2),
        "hectares": round(hectares, 4),
        "acres": round(to_acres(hectares), 4),
        "display": format_hectares(hectares),
    }


def calculate_farm_size(stored_polygon) -> float:
    """
    Farm size in hectares (2 dp) from a stored polygon in any historical format.

    Returns 0 when the record cannot be parsed.
    """
    if not stored_polygon:
        return 0.0
    try:
        ring = extract_ring(stored_polygon)
    except (ValueError, TypeError, KeyError, IndexError, ShapelyError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.warning("Could not read stored farm polygon: %s", exc)
        return 0.0
    hectares = round(to_hectares(polygon_area(ring)), 2)
    logger.info("Computed farm size %.2f ha from %d stored points", hectares, len(ring))
    return hectares
