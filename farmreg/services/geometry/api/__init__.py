"""
Geometry engine API and service registry.

Internal callers and external routes should use these names. External services
are determined by config.EXTERNAL_SERVICES.
"""

import logging

from farmreg.services.geometry import config
from farmreg.services.geometry.api import calc_area
from farmreg.services.geometry.api.normalize import LonLat, extract_ring, normalize_point
from farmreg.services.geometry.api.session import (
    BoundaryPoint,
    FarmBoundarySession,
    FarmPolygon,
    SessionState,
    SessionStateError,
)
from farmreg.services.geometry.api.validate import (
    DEFAULT_BOUNDS,
    BoundaryValidation,
    Bounds,
    ValidationFailure,
    validate_boundary,
)

EXTERNAL_SERVICES = getattr(config, "EXTERNAL_SERVICES", {})
logger = logging.getLogger("farmreg.geometry")

# Re-export service functions for callers/monkeypatching
polygon_area = calc_area.polygon_area
signed_polygon_area = calc_area.signed_polygon_area
geodesic_area = calc_area.geodesic_area
to_hectares = calc_area.to_hectares
to_acres = calc_area.to_acres
area_summary = calc_area.area_summary
calculate_farm_size = calc_area.calculate_farm_size


def parse_points(payload: dict) -> list:
    """
    Pull the point list out of a request payload.
    """
    if not isinstance(payload, dict):
        raise ValueError("Invalid payload")
    points = payload.get("points")
    if points is None:
        points = payload.get("boundary")
    if not isinstance(points, list):
        raise ValueError("points must be a list of coordinates")
    return points
