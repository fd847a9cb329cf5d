"""
Interactive farm-boundary capture.

A FarmBoundarySession follows a live position stream, lets the user mark the
current fix (or push explicit points) as boundary corners, undo from the tail,
poll a running hectare estimate, and finally freeze the ring into a FarmPolygon.

    IDLE -> CAPTURING -> FINISHED
                      -> CANCELLED

Terminal states never transition again; start a new session for a new capture.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterable, List, Optional, Tuple, Union

from shapely.geometry import Polygon, mapping

from farmreg.services.geometry.api import calc_area
from farmreg.services.geometry.api.normalize import LonLat, normalize_point
from farmreg.services.geometry.api.validate import (
    DEFAULT_BOUNDS,
    MIN_POINTS,
    BoundaryValidation,
    Bounds,
    validate_boundary,
)

logger = logging.getLogger("farmreg.geometry")


class SessionState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class SessionStateError(RuntimeError):
    """Raised when a session operation is called from a state that does not allow it."""


def _epoch_seconds(value) -> float:
    """Epoch seconds from a number, a numeric string or an ISO-8601 string (naive means UTC)."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"unrecognised timestamp {value!r}") from None
    else:
        return float(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


@dataclass(frozen=True)
class BoundaryPoint:
    latitude: float
    longitude: float
    timestamp: Optional[float] = None
    accuracy_meters: Optional[float] = None

    @classmethod
    def from_sample(cls, sample) -> "BoundaryPoint":
        """
        Build a point from a position sample.

        Accepts {latitude, longitude, accuracy, timestamp}, the nested
        {coords: {...}, timestamp} shape device location services emit, an
        existing BoundaryPoint, or any shape normalize_point() understands.
        Timestamps are epoch seconds or ISO-8601 strings.
        """
        if isinstance(sample, BoundaryPoint):
            return sample
        coords = normalize_point(sample)
        if not isinstance(coords, LonLat):
            raise ValueError("position sample has no usable latitude/longitude")
        accuracy = timestamp = None
        if isinstance(sample, dict):
            inner = sample.get("coords") if isinstance(sample.get("coords"), dict) else sample
            accuracy = inner.get("accuracy", inner.get("accuracy_meters"))
            timestamp = sample.get("timestamp")
        return cls(
            latitude=coords.lat,
            longitude=coords.lon,
            timestamp=_epoch_seconds(timestamp) if timestamp is not None else time.time(),
            accuracy_meters=float(accuracy) if accuracy is not None else None,
        )

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
            "accuracy_meters": self.accuracy_meters,
        }


@dataclass(frozen=True)
class FarmPolygon:
    """Finalized, immutable boundary ring (closing edge implicit, not stored)."""

    points: Tuple[BoundaryPoint, ...]
    area_square_meters: float
    area_hectares: float
    finalized_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def ring(self) -> List[List[float]]:
        return [[p.longitude, p.latitude] for p in self.points]

    @property
    def geodesic_area_hectares(self) -> float:
        return calc_area.to_hectares(calc_area.geodesic_area(self.points))

    def to_geojson(self) -> dict:
        return mapping(Polygon(self.ring()))

    def to_dict(self) -> dict:
        return {
            "points": [p.to_dict() for p in self.points],
            "area_square_meters": self.area_square_meters,
            "area_hectares": round(self.area_hectares, 4),
            "area_display": calc_area.format_hectares(self.area_hectares),
            "geometry": self.to_geojson(),
            "finalized_at": self.finalized_at.isoformat(),
        }


class FarmBoundarySession:
    def __init__(self, bounds: Bounds = DEFAULT_BOUNDS, **limits):
        self.bounds = bounds
        self.limits = limits
        self.state = SessionState.IDLE
        self.polygon: Optional[FarmPolygon] = None
        self.current_fix: Optional[BoundaryPoint] = None
        self._points: List[BoundaryPoint] = []

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise SessionStateError(f"operation requires session state {allowed} (current: {self.state.value})")

    @property
    def points(self) -> Tuple[BoundaryPoint, ...]:
        return tuple(self._points)

    def start(self) -> None:
        self._require(SessionState.IDLE)
        self._points = []
        self.current_fix = None
        self.state = SessionState.CAPTURING
        logger.info("Boundary capture started")

    def add_point(self, point) -> BoundaryPoint:
        """Append a point at the tail. Envelope checks are deferred to finish()."""
        self._require(SessionState.CAPTURING)
        point = BoundaryPoint.from_sample(point)
        if not point.is_finite:
            raise ValueError("boundary point coordinates must be finite numbers")
        self._points.append(point)
        logger.debug("Boundary point %d added (accuracy=%s)", len(self._points), point.accuracy_meters)
        return point

    def update_position(self, sample) -> BoundaryPoint:
        """Record the latest fix from the position stream without marking it."""
        self._require(SessionState.CAPTURING)
        fix = BoundaryPoint.from_sample(sample)
        if not fix.is_finite:
            raise ValueError("position fix coordinates must be finite numbers")
        self.current_fix = fix
        return fix

    def mark_current_position(self) -> Optional[BoundaryPoint]:
        """Add the latest fix as a boundary point; None while no fix has arrived yet."""
        self._require(SessionState.CAPTURING)
        if self.current_fix is None:
            logger.warning("No position fix available yet; point not added")
            return None
        return self.add_point(self.current_fix)

    async def consume(self, stream: AsyncIterable) -> None:
        """
        Follow a position stream until the session leaves CAPTURING.

        Callers throttle the stream; every fix pushed here is taken.
        """
        async for sample in stream:
            if self.state is not SessionState.CAPTURING:
                break
            try:
                self.update_position(sample)
            except ValueError as exc:
                logger.warning("Skipping position sample: %s", exc)

    def remove_last(self) -> Optional[BoundaryPoint]:
        self._require(SessionState.CAPTURING)
        if not self._points:
            return None
        return self._points.pop()

    def current_estimate(self) -> Optional[float]:
        if len(self._points) < MIN_POINTS:
            return None
        return calc_area.to_hectares(calc_area.polygon_area(self._points))

    def finish(self) -> Union[FarmPolygon, BoundaryValidation]:
        """
        Validate and freeze the ring.

        A failed validation leaves the session CAPTURING so the user can add or
        remove points and try again.
        """
        self._require(SessionState.CAPTURING)
        result = validate_boundary(self._points, bounds=self.bounds, **self.limits)
        if not result.valid:
            logger.info("Boundary finish rejected (%s): %s", result.reason.value, result.message)
            return result
        self.polygon = FarmPolygon(
            points=tuple(self._points),
            area_square_meters=result.area_square_meters,
            area_hectares=result.area_hectares,
        )
        self.state = SessionState.FINISHED
        logger.info("Boundary capture finished: %d points, %s", len(self._points), result.area_display)
        return self.polygon

    def cancel(self) -> None:
        if self.state in (SessionState.IDLE, SessionState.CANCELLED):
            return
        self._require(SessionState.CAPTURING)
        self._points = []
        self.current_fix = None
        self.state = SessionState.CANCELLED
        logger.info("Boundary capture cancelled")
