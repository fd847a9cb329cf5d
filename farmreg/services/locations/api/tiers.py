"""
Resolution strategies for the location hierarchy.

Each tier answers "children of <parent_id> at <level>" with a TierResult. The
resolver walks an ordered list of tiers and stops at the first ok result, so
the fallback order is plain data rather than nested error handling.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from farmreg.services.locations import config
from farmreg.services.locations.api.dataset import HierarchyDataSource, format_name, slugify
from farmreg.services.locations.api.models import AdministrativeLevel, AdministrativeUnit, UnitSource

logger = logging.getLogger("farmreg.locations")

_QUERY_PARAMS = {
    AdministrativeLevel.LGA: "stateId",
    AdministrativeLevel.WARD: "lgaId",
    AdministrativeLevel.POLLING_UNIT: "wardId",
}


@dataclass
class TierResult:
    tier: str
    ok: bool
    units: List[AdministrativeUnit] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def miss(cls, tier: str, error: str) -> "TierResult":
        return cls(tier=tier, ok=False, error=error)


class RemoteTier:
    """
    Remote lookup API: GET {base}{endpoint}?{parentParam}=<id> -> {success, data: [{id, name, code?}]}.

    Anything short of a successful, non-empty payload within the deadline is a miss;
    a hung request is cut off by the timeout and treated like any other failure.
    """

    name = "remote"

    def __init__(
        self,
        base_url: str,
        timeout: float = config.REMOTE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        endpoints: Optional[dict] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client
        self.endpoints = endpoints or config.REMOTE_ENDPOINTS

    def url_for(self, level: AdministrativeLevel) -> str:
        return f"{self.base_url}{self.endpoints[level.value]}"

    async def _get(self, url: str, params: dict) -> httpx.Response:
        if self.client is not None:
            return await self.client.get(url, params=params, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params)

    async def fetch(self, level: AdministrativeLevel, parent_id: str) -> dict:
        url = self.url_for(level)
        params = {_QUERY_PARAMS[level]: parent_id}
        resp = await asyncio.wait_for(self._get(url, params), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    async def resolve(self, level: AdministrativeLevel, parent_id: str) -> TierResult:
        try:
            payload = await self.fetch(level, parent_id)
        except asyncio.TimeoutError:
            return TierResult.miss(self.name, f"timed out after {self.timeout}s")
        except (httpx.HTTPError, ValueError) as exc:
            return TierResult.miss(self.name, str(exc) or exc.__class__.__name__)

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("message") if isinstance(payload, dict) else None
            return TierResult.miss(self.name, message or "remote lookup reported failure")
        rows = payload.get("data")
        if not isinstance(rows, list) or not rows:
            return TierResult.miss(self.name, "remote lookup returned no rows")

        units = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            raw_id = row.get("id") or row.get("value") or row.get("name")
            unit_id = slugify(raw_id)
            if not unit_id:
                continue
            code = row.get("code")
            units.append(
                AdministrativeUnit(
                    id=unit_id,
                    display_name=format_name(row.get("name") or unit_id),
                    level=level,
                    parent_id=parent_id,
                    code=str(code) if code is not None else None,
                    source=UnitSource.REMOTE,
                )
            )
        if not units:
            return TierResult.miss(self.name, "remote rows carried no usable ids")
        return TierResult(tier=self.name, ok=True, units=units)


class BundledTier:
    """Searches the bundled hierarchy tree shipped with the package."""

    name = "bundled"

    def __init__(self, source: HierarchyDataSource):
        self.source = source

    async def resolve(self, level: AdministrativeLevel, parent_id: str) -> TierResult:
        lookup = {
            AdministrativeLevel.LGA: self.source.lgas,
            AdministrativeLevel.WARD: self.source.wards,
            AdministrativeLevel.POLLING_UNIT: self.source.polling_units,
        }[level]
        child_ids = lookup(parent_id)
        if not child_ids:
            return TierResult.miss(self.name, f"'{parent_id}' not found in bundled dataset")
        units = [
            AdministrativeUnit(
                id=slugify(child_id),
                display_name=format_name(child_id),
                level=level,
                parent_id=parent_id,
                source=UnitSource.BUNDLED,
            )
            for child_id in child_ids
        ]
        return TierResult(tier=self.name, ok=True, units=units)


class SyntheticTier:
    """
    Deterministic placeholder children derived from the parent id.

    Keeps cascading selectors usable when no real source answers; every unit is
    tagged UnitSource.SYNTHETIC so callers can detect degraded mode.
    """

    name = "synthetic"

    COUNTS = {
        AdministrativeLevel.LGA: 2,
        AdministrativeLevel.WARD: 3,
        AdministrativeLevel.POLLING_UNIT: 3,
    }

    async def resolve(self, level: AdministrativeLevel, parent_id: str) -> TierResult:
        return TierResult(tier=self.name, ok=True, units=self.placeholders(level, parent_id))

    def placeholders(self, level: AdministrativeLevel, parent_id: str) -> List[AdministrativeUnit]:
        base = slugify(parent_id)
        label = format_name(base)
        units = []
        for n in range(1, self.COUNTS[level] + 1):
            if level is AdministrativeLevel.LGA:
                suffix, name = f"lga-{n}", f"{label} LGA {n}"
            elif level is AdministrativeLevel.WARD:
                suffix, name = f"ward-{n}", f"{label} Ward {n}"
            else:
                suffix, name = f"pu-{n:03d}", f"{label} PU {n:03d}"
            units.append(
                AdministrativeUnit(
                    id=f"{base}-{suffix}",
                    display_name=name,
                    level=level,
                    parent_id=parent_id,
                    source=UnitSource.SYNTHETIC,
                )
            )
        return units
