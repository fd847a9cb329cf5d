"""
Lazy, tiered, cached resolver for the State -> LGA -> Ward -> Polling Unit hierarchy.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence

import httpx

from farmreg.services.locations import config
from farmreg.services.locations.api.dataset import HierarchyDataSource, format_name, normalize_id
from farmreg.services.locations.api.models import (
    AdministrativeLevel,
    AdministrativeUnit,
    LocationPath,
    UnitSource,
)
from farmreg.services.locations.api.tiers import BundledTier, RemoteTier, SyntheticTier

logger = logging.getLogger("farmreg.locations")


class _CacheTier:
    """
    Append-only map of parent id -> resolved children.

    Reads are lock-free; a miss is resolved outside the lock and published with
    setdefault under it, so racing misses for one key converge on a single list.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, List[AdministrativeUnit]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[AdministrativeUnit]]:
        return self._entries.get(key)

    def publish(self, key: str, units: List[AdministrativeUnit]) -> List[AdministrativeUnit]:
        with self._lock:
            return self._entries.setdefault(key, units)

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)


class LocationResolver:
    """
    Owns the four cache tiers and the ordered fallback chain.

    Construct one per process (or per session) and pass it to consumers; nothing
    here is module-global.
    """

    def __init__(
        self,
        source: Optional[HierarchyDataSource] = None,
        remote_base_url: Optional[str] = config.REMOTE_BASE_URL,
        timeout: float = config.REMOTE_TIMEOUT,
        allow_synthetic: bool = config.ALLOW_SYNTHETIC,
        http_client: Optional[httpx.AsyncClient] = None,
        tiers: Optional[Sequence] = None,
    ):
        self.source = source or HierarchyDataSource()
        if tiers is None:
            tiers = []
            if remote_base_url:
                tiers.append(RemoteTier(remote_base_url, timeout=timeout, client=http_client))
            tiers.append(BundledTier(self.source))
            if allow_synthetic:
                tiers.append(SyntheticTier())
        self.tiers = list(tiers)
        self._states: Optional[List[AdministrativeUnit]] = None
        self._states_lock = threading.Lock()
        self._cache = {
            AdministrativeLevel.LGA: _CacheTier("lgas_by_state"),
            AdministrativeLevel.WARD: _CacheTier("wards_by_lga"),
            AdministrativeLevel.POLLING_UNIT: _CacheTier("polling_units_by_ward"),
        }
        logger.info("LocationResolver ready with tiers: %s", [t.name for t in self.tiers])

    # --- states ---

    def get_states(self) -> List[AdministrativeUnit]:
        if self._states is not None:
            return self._states
        states = [
            AdministrativeUnit(
                id=state_id,
                display_name=name,
                level=AdministrativeLevel.STATE,
                code=code,
                source=UnitSource.BUNDLED,
            )
            for state_id, name, code in self.source.states()
        ]
        with self._states_lock:
            if self._states is None:
                self._states = states
                logger.info("Loaded %d states from bundle", len(states))
        return self._states

    # --- children ---

    async def get_children(self, parent_level: AdministrativeLevel, parent_id: str) -> List[AdministrativeUnit]:
        """
        Resolve the children of parent_id one level below parent_level.

        Blank parent ids mean "nothing selected yet" and yield []. Cache hits are
        returned verbatim. On a miss each tier is tried in order; the first ok
        result is cached and returned. No tier raises to the caller.
        """
        level = AdministrativeLevel(parent_level).child
        if level is None:
            raise ValueError("polling units have no children")
        key = normalize_id(parent_id)
        if not key:
            return []

        tier_cache = self._cache[level]
        cached = tier_cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s of %s (%d units)", level.value, key, len(cached))
            return cached

        for tier in self.tiers:
            result = await tier.resolve(level, key)
            if result.ok:
                if tier.name == SyntheticTier.name:
                    logger.warning("Using synthetic %s placeholders for %s", level.value, key)
                else:
                    logger.info("Loaded %d %s units for %s from %s tier", len(result.units), level.value, key, tier.name)
                return tier_cache.publish(key, result.units)
            logger.warning("%s tier missed %s for %s: %s", tier.name, level.value, key, result.error)

        logger.warning("No tier resolved %s for %s; data unavailable", level.value, key)
        return []

    async def get_lgas(self, state_id: str) -> List[AdministrativeUnit]:
        return await self.get_children(AdministrativeLevel.STATE, state_id)

    async def get_wards(self, lga_id: str) -> List[AdministrativeUnit]:
        return await self.get_children(AdministrativeLevel.LGA, lga_id)

    async def get_polling_units(self, ward_id: str) -> List[AdministrativeUnit]:
        return await self.get_children(AdministrativeLevel.WARD, ward_id)

    # --- maintenance ---

    def clear_cache(self) -> None:
        """Drop every cache tier and re-read the bundled dataset on next use."""
        self.source.reload()
        with self._states_lock:
            self._states = None
        for tier_cache in self._cache.values():
            tier_cache.clear()
        logger.info("Location caches cleared")

    @staticmethod
    def format_name(raw_id: str) -> str:
        return format_name(raw_id)

    def stats(self) -> dict:
        stats = self.source.stats()
        stats["cached"] = {
            "states": len(self._states or []),
            **{tier_cache.name: len(tier_cache) for tier_cache in self._cache.values()},
        }
        return stats

    async def resolve_path(self, path: LocationPath) -> dict:
        """
        Walk a LocationPath level by level and return display names.

        Raises ValueError when the path has gaps or an id is not among its parent's
        resolved children.
        """
        if path.has_gaps():
            raise ValueError("location path has gaps: each level requires the one above it")
        state_id = normalize_id(path.state_id)
        state = next((s for s in self.get_states() if s.id == state_id), None)
        if state is None:
            raise ValueError(f"unknown state '{path.state_id}'")

        resolved = {"state": state}
        parent = state
        for field_name, label in (("lga_id", "lga"), ("ward_id", "ward"), ("polling_unit_id", "polling_unit")):
            value = getattr(path, field_name)
            if not value:
                break
            children = await self.get_children(parent.level, parent.id)
            wanted = normalize_id(value)
            match = next((c for c in children if c.id == wanted), None)
            if match is None:
                raise ValueError(f"{label.replace('_', ' ')} '{value}' is not in {parent.display_name}")
            resolved[label] = match
            parent = match
        return {
            label: {"id": unit.id, "name": unit.display_name, "source": unit.source.value}
            for label, unit in resolved.items()
        }
