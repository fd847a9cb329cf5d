"""
Configuration for the locations service (remote lookup endpoint, timeouts, fallbacks).
"""

import os

# Services marked external will be exposed over HTTP by the platform/router.
EXTERNAL_SERVICES = {
    "states": True,
    "children": True,
    "stats": True,
}

# Remote lookup tier. Leaving the base URL unset skips the remote tier entirely.
REMOTE_BASE_URL = os.getenv("LOCATION_API_BASE_URL") or None
REMOTE_TIMEOUT = float(os.getenv("LOCATION_API_TIMEOUT", "10"))
REMOTE_ENDPOINTS = {
    "lga": "/api/locations/local-governments",
    "ward": "/api/locations/wards",
    "polling_unit": "/api/locations/polling-units",
}

# Placeholder rows keep cascading selectors populated when no real source answers.
ALLOW_SYNTHETIC = os.getenv("LOCATION_ALLOW_SYNTHETIC", "true").strip().lower() not in {"0", "false", "no", "off"}
