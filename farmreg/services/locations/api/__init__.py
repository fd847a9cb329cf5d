"""
Locations engine API and service registry.

Internal callers and external routes should use these names. External services
are determined by config.EXTERNAL_SERVICES.
"""

import logging
from typing import Optional

import httpx

from farmreg.services.locations import config
from farmreg.services.locations.api.dataset import HierarchyDataSource, format_name, normalize_id, slugify
from farmreg.services.locations.api.models import (
    AdministrativeLevel,
    AdministrativeUnit,
    LocationPath,
    UnitSource,
)
from farmreg.services.locations.api.resolver import LocationResolver
from farmreg.services.locations.api.tiers import BundledTier, RemoteTier, SyntheticTier, TierResult

EXTERNAL_SERVICES = getattr(config, "EXTERNAL_SERVICES", {})
logger = logging.getLogger("farmreg.locations")


def build_resolver(http_client: Optional[httpx.AsyncClient] = None) -> LocationResolver:
    """Construct a resolver from the current environment configuration."""
    return LocationResolver(
        source=HierarchyDataSource(),
        remote_base_url=config.REMOTE_BASE_URL,
        timeout=config.REMOTE_TIMEOUT,
        allow_synthetic=config.ALLOW_SYNTHETIC,
        http_client=http_client,
    )


async def initialize(resolver: LocationResolver):
    """
    Warm the resolver: load the bundled tree and the state list.
    """
    logger.info("Locations initialize: starting")
    resolver.get_states()
    stats = resolver.source.stats()
    logger.info(
        "Locations initialize: completed (lgas=%d wards=%d polling_units=%d)",
        stats["total_lgas"],
        stats["total_wards"],
        stats["total_polling_units"],
    )
    return None


__all__ = [
    "AdministrativeLevel",
    "AdministrativeUnit",
    "BundledTier",
    "HierarchyDataSource",
    "LocationPath",
    "LocationResolver",
    "RemoteTier",
    "SyntheticTier",
    "TierResult",
    "UnitSource",
    "build_resolver",
    "format_name",
    "initialize",
    "normalize_id",
    "slugify",
]
