"""
Platform utilities and validation helpers.
"""

import secrets
from datetime import datetime, timezone
from typing import Any, Dict

from farmreg.services.locations.api import LocationPath, normalize_id

# Accepted spellings for each location level, in hierarchy order.
_LOCATION_KEYS = (
    ("state_id", ("state_id", "stateId", "state", "farmState")),
    ("lga_id", ("lga_id", "lgaId", "lga", "farmLocalGovernment")),
    ("ward_id", ("ward_id", "wardId", "ward", "farmWard")),
    ("polling_unit_id", ("polling_unit_id", "pollingUnitId", "polling_unit", "farmPollingUnit")),
)

OPTIONAL_FARM_FIELDS = ("name", "primary_crop", "secondary_crop", "ownership", "farming_season")


def _clean_id(value) -> str | None:
    if value is None:
        return None
    cleaned = normalize_id(value)
    return cleaned or None


def validate_location(payload: dict) -> LocationPath:
    """
    Build a LocationPath and enforce the no-gaps rule.

    State, LGA and ward are mandatory for a farm record; the polling unit is optional.
    """
    if not isinstance(payload, dict):
        raise ValueError("location must be an object")
    values = {}
    for field_name, aliases in _LOCATION_KEYS:
        raw = next((payload[key] for key in aliases if payload.get(key)), None)
        values[field_name] = _clean_id(raw)
    path = LocationPath(**values)
    if path.has_gaps():
        raise ValueError("location has gaps: select state, LGA and ward in order")
    if not path.is_complete:
        raise ValueError("state, LGA and ward are required")
    return path


def validate_farm_create(payload: dict) -> Dict[str, Any]:
    """
    Validate required fields for farm-record creation.
    """
    if not isinstance(payload, dict):
        raise ValueError("Invalid payload")
    farmer_id = payload.get("farmer_id") or payload.get("farmerId")
    location = payload.get("location")
    boundary = payload.get("boundary")
    if not farmer_id or location is None or boundary is None:
        raise ValueError("farmer_id, location and boundary are required")
    if not isinstance(boundary, list):
        raise ValueError("boundary must be a list of points")
    cleaned = {
        "farmer_id": str(farmer_id).strip(),
        "location": validate_location(location),
        "boundary": boundary,
    }
    for key in OPTIONAL_FARM_FIELDS:
        if payload.get(key) is not None:
            cleaned[key] = str(payload.get(key)).strip()
    return cleaned


def build_farm_record(cleaned: dict, location_names: dict, polygon, now: datetime | None = None) -> Dict[str, Any]:
    """
    Assemble the stored farm document from a validated payload, resolved location and polygon.
    """
    now = now or datetime.now(timezone.utc)
    path: LocationPath = cleaned["location"]
    record = {
        "farm_id": secrets.token_hex(8),
        "farmer_id": cleaned["farmer_id"],
        "location": {
            "state_id": path.state_id,
            "lga_id": path.lga_id,
            "ward_id": path.ward_id,
            "polling_unit_id": path.polling_unit_id,
            "names": location_names,
        },
        "boundary": polygon.to_dict(),
        "area_hectares": round(polygon.area_hectares, 2),
        "created": now.isoformat(),
    }
    for key in OPTIONAL_FARM_FIELDS:
        if cleaned.get(key):
            record[key] = cleaned[key]
    return record
