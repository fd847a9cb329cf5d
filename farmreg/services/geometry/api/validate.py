"""
Farm boundary validation.

validate_boundary() never raises: failures are expected routinely during
interactive capture and come back as a BoundaryValidation with a reason the UI
can turn into an actionable message.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from farmreg.services.geometry import config
from farmreg.services.geometry.api import calc_area
from farmreg.services.geometry.api.normalize import LonLat, normalize_point

logger = logging.getLogger("farmreg.geometry")

MIN_POINTS = 3


@dataclass(frozen=True)
class Bounds:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def describe(self) -> str:
        return f"lat {self.min_lat:g}..{self.max_lat:g}, lon {self.min_lon:g}..{self.max_lon:g}"


DEFAULT_BOUNDS = Bounds(
    min_lat=config.MIN_LAT,
    max_lat=config.MAX_LAT,
    min_lon=config.MIN_LON,
    max_lon=config.MAX_LON,
)


class ValidationFailure(str, Enum):
    TOO_FEW_POINTS = "too_few_points"
    INVALID_POINT = "invalid_point"
    OUT_OF_BOUNDS = "out_of_bounds"
    AREA_TOO_SMALL = "area_too_small"
    AREA_TOO_LARGE = "area_too_large"


@dataclass(frozen=True)
class BoundaryValidation:
    valid: bool
    reason: Optional[ValidationFailure] = None
    message: Optional[str] = None
    offending_index: Optional[int] = None
    area_square_meters: Optional[float] = None
    area_hectares: Optional[float] = None
    area_display: Optional[str] = None

    @classmethod
    def failure(cls, reason: ValidationFailure, message: str, **extra) -> "BoundaryValidation":
        return cls(valid=False, reason=reason, message=message, **extra)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["reason"] = self.reason.value if self.reason else None
        return data


def validate_boundary(
    points,
    bounds: Bounds = DEFAULT_BOUNDS,
    min_area_m2: float = config.MIN_AREA_M2,
    max_area_ha: float = config.MAX_AREA_HA,
) -> BoundaryValidation:
    points = list(points or [])
    if len(points) < MIN_POINTS:
        return BoundaryValidation.failure(
            ValidationFailure.TOO_FEW_POINTS,
            f"Add at least {MIN_POINTS} boundary points (have {len(points)})",
        )

    ring = []
    for idx, point in enumerate(points):
        normalized = normalize_point(point)
        if not isinstance(normalized, LonLat) or not all(map(math.isfinite, normalized)):
            return BoundaryValidation.failure(
                ValidationFailure.INVALID_POINT,
                f"Boundary point at index {idx} is not a valid latitude/longitude",
                offending_index=idx,
            )
        if not bounds.contains(normalized.lat, normalized.lon):
            return BoundaryValidation.failure(
                ValidationFailure.OUT_OF_BOUNDS,
                f"Boundary point at index {idx} (lat {normalized.lat:.6f}, lon {normalized.lon:.6f}) "
                f"is outside the operating area ({bounds.describe()})",
                offending_index=idx,
            )
        ring.append(normalized)

    square_meters = calc_area.polygon_area(ring)
    hectares = calc_area.to_hectares(square_meters)
    display = calc_area.format_hectares(hectares)
    if square_meters < min_area_m2:
        return BoundaryValidation.failure(
            ValidationFailure.AREA_TOO_SMALL,
            f"Area too small ({square_meters:.1f} m2); check your boundary points",
            area_square_meters=square_meters,
            area_hectares=hectares,
            area_display=display,
        )
    if hectares > max_area_ha:
        return BoundaryValidation.failure(
            ValidationFailure.AREA_TOO_LARGE,
            f"Area too large ({display}); check for GPS jumps in your boundary points",
            area_square_meters=square_meters,
            area_hectares=hectares,
            area_display=display,
        )

    logger.debug("Boundary valid: %d points, %s", len(ring), display)
    return BoundaryValidation(
        valid=True,
        area_square_meters=square_meters,
        area_hectares=hectares,
        area_display=display,
    )
