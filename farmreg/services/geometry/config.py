"""
Configuration for the geometry service (operating envelope and area limits).
"""

import os

# Services marked external will be exposed over HTTP by the platform/router.
EXTERNAL_SERVICES = {
    "area": True,
    "validate": True,
}

# Operating envelope for boundary points (Nigeria by default).
MIN_LAT = float(os.getenv("BOUNDARY_MIN_LAT", "4"))
MAX_LAT = float(os.getenv("BOUNDARY_MAX_LAT", "14"))
MIN_LON = float(os.getenv("BOUNDARY_MIN_LON", "2.5"))
MAX_LON = float(os.getenv("BOUNDARY_MAX_LON", "15"))

# Plausibility limits for a captured farm plot.
MIN_AREA_M2 = float(os.getenv("BOUNDARY_MIN_AREA_M2", "100"))
MAX_AREA_HA = float(os.getenv("BOUNDARY_MAX_AREA_HA", "10000"))
